"""Flexible header resolution for distributor inventory sheets."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, field_validator

from pharmabid.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

NAME_FIELD: Final[str] = "product_name"
MANUFACTURER_FIELD: Final[str] = "manufacturer"
PRICE_FIELD: Final[str] = "mrp"
BATCH_FIELD: Final[str] = "batch"
EXPIRY_FIELD: Final[str] = "expiry"

TARGET_FIELDS: Final[tuple[str, ...]] = (
    NAME_FIELD,
    MANUFACTURER_FIELD,
    PRICE_FIELD,
    BATCH_FIELD,
    EXPIRY_FIELD,
)

SYNONYMS: Final[dict[str, tuple[str, ...]]] = {
    NAME_FIELD: (
        "product name",
        "product",
        "medicine name",
        "medicine",
        "product-name",
        "product_name",
        "medicine_name",
        "productname",
        "medicinename",
        "item name",
        "name",
    ),
    MANUFACTURER_FIELD: (
        "manufacturer",
        "company",
        "company name",
        "manufacturer_name",
        "company_name",
        "manufacturer-name",
        "company-name",
        "manufacturername",
        "companyname",
        "brandname",
        "mfg",
        "mfg name",
        "mfg-name",
    ),
    PRICE_FIELD: ("mrp", "price", "mrp price", "m.r.p", "mrp rs", "rate"),
    BATCH_FIELD: ("batch", "batch no", "batch number", "batchno"),
    EXPIRY_FIELD: ("expiry", "expiry date", "exp", "exp date", "expirydate"),
}

_SEPARATORS: Final = re.compile(r"[_\s-]+")


def normalize_column_name(header: str) -> str:
    """Lowercase ``header`` and collapse separator runs to a single underscore."""

    return _SEPARATORS.sub("_", header.strip().lower()).strip("_")


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Resolved source header for each target field (``None`` when absent)."""

    name: str
    manufacturer: str | None = None
    price: str | None = None
    batch: str | None = None
    expiry: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {
            NAME_FIELD: self.name,
            MANUFACTURER_FIELD: self.manufacturer,
            PRICE_FIELD: self.price,
            BATCH_FIELD: self.batch,
            EXPIRY_FIELD: self.expiry,
        }


def _find_header(target: str, headers: Sequence[str]) -> str | None:
    for header in headers:
        if header == target:
            return header

    normalized_target = normalize_column_name(target)
    normalized = {normalize_column_name(header): header for header in reversed(headers)}
    if normalized_target in normalized:
        return normalized[normalized_target]

    for synonym in SYNONYMS.get(target, ()):
        candidate = normalized.get(normalize_column_name(synonym))
        if candidate is not None:
            return candidate
    return None


def resolve_columns(headers: Sequence[str]) -> ColumnMapping:
    """Map arbitrary ``headers`` onto the target fields.

    Raises ``ValidationError`` when no header resolves to the product name.
    """

    cleaned = [header for header in headers if header and header.strip()]
    if not cleaned:
        raise ValidationError("No headers found in inventory data")

    name = _find_header(NAME_FIELD, cleaned)
    if name is None:
        raise ValidationError(
            "Could not find a product name column",
            details=[f"available headers: {', '.join(cleaned)}"],
        )
    return ColumnMapping(
        name=name,
        manufacturer=_find_header(MANUFACTURER_FIELD, cleaned),
        price=_find_header(PRICE_FIELD, cleaned),
        batch=_find_header(BATCH_FIELD, cleaned),
        expiry=_find_header(EXPIRY_FIELD, cleaned),
    )


class InventoryRow(BaseModel):
    """One raw row, reduced to the fields reconciliation understands."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    manufacturer: str | None = None
    price: float | None = None
    batch: str | None = None
    expiry: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("manufacturer", "batch", "expiry", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int | float):
            parsed = float(value)
        else:
            try:
                parsed = float(str(value).strip().replace(",", ""))
            except ValueError:
                return None
        return None if math.isnan(parsed) or math.isinf(parsed) else parsed


def headers_of(records: Iterable[Mapping[str, object]]) -> list[str]:
    """Return the union of record keys in first-seen order."""

    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(str(key), None)
    return list(seen)


def extract_rows(
    records: Iterable[Mapping[str, object]], mapping: ColumnMapping
) -> list[InventoryRow]:
    """Project ``records`` through ``mapping``, dropping rows without a name."""

    rows: list[InventoryRow] = []
    for record in records:
        row = InventoryRow(
            name=record.get(mapping.name),
            manufacturer=record.get(mapping.manufacturer) if mapping.manufacturer else None,
            price=record.get(mapping.price) if mapping.price else None,
            batch=record.get(mapping.batch) if mapping.batch else None,
            expiry=record.get(mapping.expiry) if mapping.expiry else None,
        )
        if row.name:
            rows.append(row)
    return rows
