"""Recipient unit schemas."""

import datetime as dt
from typing import Optional

from pydantic import Field, field_validator

from quartermaster.schemas.base import CamelModel, reject_null


class UnitCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=20)
    personnel: int = Field(default=0, ge=0)
    commander: Optional[str] = Field(default=None, max_length=200)
    parent_unit_id: Optional[int] = None


class UnitUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    personnel: Optional[int] = Field(default=None, ge=0)
    commander: Optional[str] = Field(default=None, max_length=200)
    parent_unit_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "code", "personnel", "is_active")
    @classmethod
    def required_not_null(cls, v):
        return reject_null(v)


class UnitResponse(CamelModel):
    id: int
    name: str
    code: str
    personnel: int
    commander: Optional[str] = None
    parent_unit_id: Optional[int] = None
    is_active: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
