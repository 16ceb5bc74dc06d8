"""Mapping of raw spreadsheet rows to CatalogItem records.

Rows are addressed by header name, so column order and extra columns in the
source do not matter. Closed-set fields are validated leniently: unknown list
values are dropped and unknown singular values fall back to a default.
"""

import json
import logging
from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

from catalog_sync_service.errors import RowValidationError
from catalog_sync_service.models.catalog_models import (
    CatalogItem,
    DrinkCategory,
    DrinkStrength,
    FlavorTag,
    Occasion,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

PARTITION_CATEGORIES: dict[str, DrinkCategory] = {
    "Beer": DrinkCategory.BEER,
    "Wine": DrinkCategory.WINE,
    "Cocktail": DrinkCategory.COCKTAIL,
    "Spirit": DrinkCategory.SPIRIT,
    "Non_Alcoholic": DrinkCategory.NON_ALCOHOLIC,
}

DEFAULT_CATEGORY = DrinkCategory.BEER
DEFAULT_STRENGTH = DrinkStrength.LIGHT


def partition_to_category(partition: str) -> DrinkCategory:
    """Map a partition (sheet) name to its catalog category."""
    return PARTITION_CATEGORIES.get(partition, DEFAULT_CATEGORY)


def parse_list(raw: str | None) -> list[str]:
    """Parse a list cell written either as a JSON array or comma-separated."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None

    if isinstance(parsed, list):
        return [str(value).strip() for value in parsed if str(value).strip()]

    return [value.strip() for value in raw.split(",") if value.strip()]


def parse_enum_list(raw: str | None, enum_cls: type[E]) -> list[E]:
    """Parse a list cell, keeping only members of the closed set."""
    allowed = {member.value: member for member in enum_cls}
    result: list[E] = []
    for value in parse_list(raw):
        member = allowed.get(value.lower())
        if member is None:
            logger.debug(f"Dropping unknown {enum_cls.__name__} value {value!r}")
            continue
        if member not in result:
            result.append(member)
    return result


def parse_strength(raw: str | None) -> DrinkStrength:
    try:
        return DrinkStrength((raw or "").strip().lower())
    except ValueError:
        return DEFAULT_STRENGTH


def parse_abv(raw: str | None) -> float:
    """Parse an ABV cell; unparseable or out-of-range values become 0."""
    try:
        value = float((raw or "").strip().rstrip("%"))
    except ValueError:
        return 0.0
    if not 0 <= value <= 100:
        return 0.0
    return value


def parse_bool(raw: str | None) -> bool:
    return (raw or "").strip().lower() == "true"


def parse_weather_match(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _optional(raw: str | None) -> str | None:
    value = (raw or "").strip()
    return value or None


def row_to_record(headers: list[str], row: list[Any]) -> dict[str, str]:
    """Zip a row with the header row; missing trailing cells become ''."""
    record: dict[str, str] = {}
    for index, header in enumerate(headers):
        key = str(header).strip()
        if not key:
            continue
        record[key] = str(row[index]) if index < len(row) and row[index] is not None else ""
    return record


def map_row(
    headers: list[str], row: list[Any], partition: str, row_number: int = 0
) -> CatalogItem | None:
    """Convert one source row to a CatalogItem.

    Args:
        headers: Header row of the partition
        row: Raw cell values
        partition: Partition the row came from (decides the category)
        row_number: 1-based data row number, for log context

    Returns:
        CatalogItem, or None when the row is blank or lacks id/name

    Raises:
        RowValidationError: If the row has id and name but still fails validation
    """
    record = row_to_record(headers, row)
    if not any(value.strip() for value in record.values()):
        return None

    item_id = record.get("id", "").strip()
    name = record.get("name", "").strip()
    if not item_id or not name:
        logger.warning(
            f"Skipping {partition} row {row_number}: missing required field",
            extra={"partition": partition, "item_id": item_id, "item_name": name},
        )
        return None

    try:
        return CatalogItem(
            id=item_id,
            name=name,
            category=partition_to_category(partition),
            description=record.get("description", "").strip(),
            ingredients=parse_list(record.get("ingredients")),
            abv=parse_abv(record.get("abv")),
            strength=parse_strength(record.get("strength")),
            flavor_profile=parse_enum_list(record.get("flavor_profile"), FlavorTag),
            occasions=parse_enum_list(record.get("occasions"), Occasion),
            serving_suggestions=parse_list(record.get("serving_suggestions")),
            weather_match=parse_weather_match(record.get("weather_match")),
            image_url=record.get("image_url", "").strip(),
            glass_type=_optional(record.get("glass_type")),
            preparation=_optional(record.get("preparation")),
            price=_optional(record.get("price")) or "$0",
            price_16oz=_optional(record.get("price_16oz")),
            price_24oz=_optional(record.get("price_24oz")),
            happy_hour=parse_bool(record.get("happy_hour")),
            happy_hour_price=_optional(record.get("happy_hour_price")),
            happy_hour_times=_optional(record.get("happy_hour_times")),
            featured=parse_bool(record.get("featured")),
            fun_for_twenty_one=parse_bool(record.get("funForTwentyOne")),
            good_for_birthday=parse_bool(record.get("goodForBDay")),
        )
    except ValidationError as e:
        raise RowValidationError(partition, row_number, str(e)) from e
