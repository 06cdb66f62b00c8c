"""
Base schemas with standardized field types for consistent API responses.
"""
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema


class StandardizedModel(BaseModel):
    """Response base; reads straight from ORM rows and dataclasses."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class Money(Decimal):
    """Money field: accepts numbers or numeric strings, serializes as a 2-place string."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, bool):
                raise ValueError("Amount must be a number")
            if isinstance(value, (int, float, str)):
                try:
                    value = Decimal(str(value))
                except ArithmeticError as exc:
                    raise ValueError("Amount must be a number") from exc
            if not isinstance(value, Decimal):
                raise ValueError(f"Cannot convert {type(value)} to Money")
            if not value.is_finite():
                raise ValueError("Amount must be a finite number")
            return value

        return core_schema.no_info_plain_validator_function(
            validate_money,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: f"{Decimal(value):.2f}",
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )
