from marshmallow import Schema, fields, validate

from models.task import TaskStatus


class TaskCreateSchema(Schema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    status = fields.Enum(TaskStatus, by_value=True, load_default=TaskStatus.PENDING)


class TaskOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String(allow_none=True)
    status = fields.Enum(TaskStatus, by_value=True)
    user_id = fields.String(data_key="userId")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
