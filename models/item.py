from sqlalchemy import Column, String, Numeric, Text, CheckConstraint, Index

from models.base_model import BaseModel, Base


class Item(BaseModel, Base):
    __tablename__ = "items"

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)  # validated >= 0 (in schema)
    thumbnail_url = Column(String(512), nullable=False)
    image_url = Column(String(512), nullable=False)
    size = Column(String(32), nullable=True)
    color = Column(String(32), nullable=True)

    __table_args__ = (
        CheckConstraint("cost >= 0", name="ck_items_cost_nonnegative"),
        Index("ix_items_name", "name"),
    )
