"""Shared schema base classes.

The web client speaks camelCase; Python code and the database use
snake_case. ``CamelModel`` accepts either on input and always dumps
camelCase.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Pagination(CamelModel):
    current: int
    pages: int
    total: int


def dump_many(items: Any) -> list:
    return [item.to_wire() for item in items]


def reject_null(value: Any) -> Any:
    """Validator body for optional patch fields backed by NOT NULL columns.

    Leaving the field out keeps the stored value; sending null is an error.
    """
    if value is None:
        raise ValueError("Giá trị không được để trống")
    return value
