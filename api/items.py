from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, abort, g
from sqlalchemy import or_, func

from api.context import get_storage
from api.pagination import parse_pagination, parse_sort, paginate
from models.item import Item
from models.schemas.item import ItemOutSchema, ItemSummarySchema
from utils.decorators import jwt_required, roles_required, validate_body

bp = Blueprint("items", __name__)

item_out_schema = ItemOutSchema()
items_out_schema = ItemOutSchema(many=True)
item_summaries_schema = ItemSummarySchema(many=True)

SORT_COLUMNS = {
    "name": Item.name,
    "cost": Item.cost,
    "category": Item.category,
    "createdAt": Item.created_at,
}

# Equality filters: query param -> column
EQUALITY_FILTERS = {
    "category": Item.category,
    "color": Item.color,
    "size": Item.size,
}

CHEAP_KEYWORDS = ("cheaper", "lowest price")
EXPENSIVE_KEYWORDS = ("expensive", "highest price")
ATTRIBUTE_MATCH_BONUS = 10


def _parse_price(name: str):
    val = request.args.get(name)
    if val is None:
        return None
    try:
        return Decimal(val)
    except InvalidOperation:
        abort(400, description=f"Invalid {name}")


def apply_filters(query):
    for param, column in EQUALITY_FILTERS.items():
        value = request.args.get(param)
        if value:
            query = query.filter(func.lower(column) == value.strip().lower())

    price_min = _parse_price("price_min")
    price_max = _parse_price("price_max")
    if price_min is not None:
        query = query.filter(Item.cost >= price_min)
    if price_max is not None:
        query = query.filter(Item.cost <= price_max)

    q = request.args.get("q")
    if q:
        pattern = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(func.lower(Item.name).like(pattern), func.lower(Item.description).like(pattern))
        )
    return query


def relevance_score(item: Item, prompt: str) -> float:
    """
    Keyword score of ``item`` for a free-text prompt: price words pull cheap
    or expensive items up, naming the item's color or size adds a bonus.
    """
    text = prompt.lower()
    cost = float(item.cost)
    score = 0.0
    if any(k in text for k in CHEAP_KEYWORDS):
        score -= cost
    if any(k in text for k in EXPENSIVE_KEYWORDS):
        score += cost
    if item.color and item.color.lower() in text:
        score += ATTRIBUTE_MATCH_BONUS
    if item.size and item.size.lower() in text:
        score += ATTRIBUTE_MATCH_BONUS
    return score


@bp.get("/items")
def list_items():
    """
    List items with pagination, sorting and filtering
    ---
    tags:
      - Items
    parameters:
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
        description: "Comma-separated fields; prefix with '-' for desc. Allowed: name, cost, category, createdAt"
        default: "name"
      - in: query
        name: category
        type: string
      - in: query
        name: color
        type: string
      - in: query
        name: size
        type: string
      - in: query
        name: price_min
        type: string
      - in: query
        name: price_max
        type: string
      - in: query
        name: q
        type: string
        description: "Case-insensitive substring search on name and description"
    responses:
      200:
        description: List of items
    """
    session = get_storage().get_session()
    page, limit = parse_pagination()
    order_by = parse_sort(SORT_COLUMNS, "name")

    query = apply_filters(session.query(Item))
    rows, meta = paginate(query, order_by, page, limit)

    return jsonify({"success": True, "data": item_summaries_schema.dump(rows), "meta": meta})


@bp.get("/items/<item_id>")
def get_item(item_id: str):
    """
    Get a single item by id
    ---
    tags:
      - Items
    parameters:
      - in: path
        name: item_id
        type: string
        required: true
    responses:
      200:
        description: Item found
      404:
        description: Not found
    """
    item = get_storage().get(Item, item_id)
    if item is None:
        abort(404, description="Item not found")
    return jsonify({"success": True, "data": item_out_schema.dump(item)})


@bp.post("/items")
@roles_required(["admin"])
@validate_body("create_item")
def create_item():
    """
    Create an item (admin)
    ---
    tags:
      - Items
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
          required: [name, category, description, cost, thumbnailUrl, imageUrl]
          properties:
            name: { type: string }
            category: { type: string }
            description: { type: string }
            cost: { type: string, example: "29.99" }
            thumbnailUrl: { type: string }
            imageUrl: { type: string }
            size: { type: string }
            color: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      403:
        description: Insufficient permissions
    """
    storage = get_storage()
    item = Item(**g.body)
    storage.new(item)
    storage.save()
    return jsonify({"success": True, "data": item_out_schema.dump(item)}), 201


@bp.post("/items/search")
@jwt_required()
@validate_body("search_items")
def search_items():
    """
    Rank a set of items against a free-text prompt
    ---
    tags:
      - Items
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
          properties:
            items:
              type: array
              items: { type: string }
            prompt: { type: string, example: "cheaper blue shirt" }
    responses:
      200:
        description: Items sorted by relevance
    """
    session = get_storage().get_session()
    prompt = g.body["prompt"]
    rows = session.query(Item).filter(Item.id.in_(g.body["items"])).all()

    results = []
    for item in rows:
        entry = item_out_schema.dump(item)
        entry["relevanceScore"] = relevance_score(item, prompt)
        results.append(entry)
    results.sort(key=lambda r: r["relevanceScore"], reverse=True)

    return jsonify(
        {
            "success": True,
            "data": {"results": results, "prompt": prompt, "totalItems": len(results)},
        }
    )
