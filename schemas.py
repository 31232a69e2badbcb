"""
Database Schemas for the Bistro Ordering API

Each collection model below corresponds to a MongoDB collection. Documents
are schema-less: apart from the presence of a user's email, fields are not
checked and are stored exactly as the client sent them.
"""
from pydantic import BaseModel, ConfigDict, Field

ADMIN_ROLE = "@Admin"


class Document(BaseModel):
    model_config = ConfigDict(extra="allow")


class User(Document):
    email: str = Field(..., description="Unique lookup key")


class MenuItem(Document):
    pass


class CartItem(Document):
    pass


class PaymentIntentRequest(BaseModel):
    price: float = Field(..., ge=0)
