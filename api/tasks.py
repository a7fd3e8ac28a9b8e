from __future__ import annotations

from flask import Blueprint, request, jsonify, abort, g
from sqlalchemy import or_, func

from api.context import get_storage
from api.pagination import parse_pagination, parse_sort, paginate
from models.task import Task, TaskStatus
from models.schemas.task import TaskOutSchema
from utils.decorators import jwt_required, validate_body

bp = Blueprint("tasks", __name__)

task_out_schema = TaskOutSchema()
tasks_out_schema = TaskOutSchema(many=True)

# Sorting allowlist: API field -> SQLAlchemy column
SORT_COLUMNS = {
    "title": Task.title,
    "status": Task.status,
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
}


def apply_filters(query):
    status = request.args.get("status")
    search = request.args.get("search")

    if status:
        try:
            query = query.filter(Task.status == TaskStatus(status))
        except ValueError:
            allowed = ", ".join(s.value for s in TaskStatus)
            abort(400, description=f"Invalid status. Must be one of: {allowed}")

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Task.title).like(pattern),
                func.lower(Task.description).like(pattern),
            )
        )
    return query


@bp.get("/tasks")
@jwt_required()
def list_tasks():
    """
    List the current user's tasks
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: query
        name: status
        type: string
        enum: [pending, in_progress, completed, cancelled]
      - in: query
        name: search
        type: string
        description: "Case-insensitive substring search on title and description"
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 10
      - in: query
        name: sort
        type: string
        default: "-createdAt"
    responses:
      200:
        description: List of tasks
      401:
        description: Unauthorized
    """
    session = get_storage().get_session()
    page, limit = parse_pagination()
    order_by = parse_sort(SORT_COLUMNS, "-createdAt")

    query = session.query(Task).filter(Task.user_id == g.current_user.id)
    query = apply_filters(query)
    rows, meta = paginate(query, order_by, page, limit)

    return jsonify({"success": True, "data": tasks_out_schema.dump(rows), "meta": meta})


@bp.get("/tasks/<task_id>")
@jwt_required()
def get_task(task_id: str):
    """
    Get one of the current user's tasks
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      200:
        description: Task found
      404:
        description: Not found
    """
    task = get_storage().get(Task, task_id)
    # Someone else's task is indistinguishable from a missing one
    if task is None or task.user_id != g.current_user.id:
        abort(404, description="Task not found")
    return jsonify({"success": True, "data": task_out_schema.dump(task)})


@bp.post("/tasks")
@jwt_required()
@validate_body("create_task")
def create_task():
    """
    Create a task owned by the current user
    ---
    tags:
      - Tasks
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: { type: string, maxLength: 255 }
            description: { type: string }
            status: { type: string, enum: [pending, in_progress, completed, cancelled], default: pending }
    responses:
      201:
        description: Created
      400:
        description: Validation error
    """
    storage = get_storage()
    data = g.body
    task = Task(
        title=data["title"],
        description=data.get("description"),
        status=data["status"],
        user_id=g.current_user.id,
    )
    storage.new(task)
    storage.save()

    return jsonify({"success": True, "data": task_out_schema.dump(task)}), 201
