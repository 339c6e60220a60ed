"""Validated inputs for auction operations."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from pharmabid.domain.errors import ValidationError


class BidRequestItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    product_id: int = Field(alias="productId", gt=0)
    quantity: int = Field(ge=1)


class BidSubmission(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    bid_request_id: uuid.UUID = Field(alias="bidRequestId")
    discount_percent: float = Field(alias="discountPercent", ge=0, le=100)
    mrp: float | None = Field(default=None, ge=0.01)
    expiry: datetime | None = None
    is_custom: bool = Field(default=False, alias="isCustom")

    @field_validator("expiry")
    @classmethod
    def _ensure_aware(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def parse_command[TModel: BaseModel](model: type[TModel], data: Any) -> TModel:
    """Validate ``data`` into ``model``, re-raising failures as domain validation errors."""

    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        details = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ValidationError(
            f"Invalid {model.__name__}: {'; '.join(details)}", details=details
        ) from exc
