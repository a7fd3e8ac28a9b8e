from marshmallow import Schema, fields, validate, validates

from models.schemas.common import to_decimal_2


class ItemCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    category = fields.String(required=True, validate=validate.Length(min=1, max=100))
    description = fields.String(required=True)
    cost = fields.Decimal(required=True, as_string=True)
    thumbnail_url = fields.Url(data_key="thumbnailUrl", required=True)
    image_url = fields.Url(data_key="imageUrl", required=True)
    size = fields.String(allow_none=True, validate=validate.Length(max=32))
    color = fields.String(allow_none=True, validate=validate.Length(max=32))

    @validates("cost")
    def _validate_cost(self, value, **kwargs):
        to_decimal_2(value)


class ItemSearchSchema(Schema):
    items = fields.List(fields.String(), required=True, validate=validate.Length(min=1))
    prompt = fields.String(required=True, validate=validate.Length(min=1))


class ItemOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    category = fields.String()
    description = fields.String()
    cost = fields.Decimal(as_string=True)
    thumbnail_url = fields.String(data_key="thumbnailUrl")
    image_url = fields.String(data_key="imageUrl")
    size = fields.String(allow_none=True)
    color = fields.String(allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ItemSummarySchema(Schema):
    id = fields.String()
    name = fields.String()
    category = fields.String()
    cost = fields.Decimal(as_string=True)
    thumbnail_url = fields.String(data_key="thumbnailUrl")
