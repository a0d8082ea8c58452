from typing import Any, Optional

from pydantic import BaseModel, field_validator


def _to_str(v):
    # the SPA sometimes sends numeric ids
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return v


class CustomerIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None


class OfferIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    customerId: Optional[str] = None
    status: Optional[str] = None

    @field_validator("customerId", mode="before")
    @classmethod
    def _customer_id_as_text(cls, v):
        return _to_str(v)


class StatusPatch(BaseModel):
    newStatus: Optional[str] = None


class CommentIn(BaseModel):
    text: Optional[str] = None


class TagIn(BaseModel):
    text: Optional[str] = None


class TagSearchIn(BaseModel):
    # validated by the task manager so the messages match the service's
    tags: Any = None
    substring: Any = True
    caseInsensitive: Any = True
