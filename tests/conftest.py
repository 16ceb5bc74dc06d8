"""Shared pytest fixtures and configuration for all tests."""

import os
from typing import Any

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from catalog_sync_service.models.catalog_models import (  # noqa: E402
    CatalogItem,
    Coordinates,
    DrinkCategory,
    DrinkStrength,
    FlavorTag,
    Occasion,
    Venue,
)


class FakeBatchWriter:
    """Context manager mimicking boto3's Table.batch_writer()."""

    def __init__(self, table: "FakeTable") -> None:
        self.table = table

    def __enter__(self) -> "FakeBatchWriter":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def put_item(self, Item: dict[str, Any]) -> None:  # noqa: N803
        self.table.put_item(Item=Item)

    def delete_item(self, Key: dict[str, Any]) -> None:  # noqa: N803
        self.table.delete_item(Key=Key)


class FakeTable:
    """In-memory stand-in for a DynamoDB Table keyed by a single hash key.

    Supports the subset of the Table API the repositories use. Projections
    are ignored and results are never paginated.
    """

    def __init__(self, key_name: str = "id") -> None:
        self.key_name = key_name
        self.items: dict[str, dict[str, Any]] = {}

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        return {"Items": [dict(item) for item in self.items.values()]}

    def query(self, **kwargs: Any) -> dict[str, Any]:
        category = kwargs["ExpressionAttributeValues"][":cat"]
        return {
            "Items": [dict(item) for item in self.items.values() if item["category"] == category]
        }

    def get_item(self, Key: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        item = self.items.get(Key[self.key_name])
        return {"Item": dict(item)} if item is not None else {}

    def put_item(self, Item: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        self.items[Item[self.key_name]] = dict(Item)
        return {}

    def delete_item(self, Key: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        self.items.pop(Key[self.key_name], None)
        return {}

    def batch_writer(self, overwrite_by_pkeys: list[str] | None = None) -> FakeBatchWriter:
        return FakeBatchWriter(self)


class FakeDynamoDBResource:
    """Hands out one FakeTable per table name."""

    def __init__(self) -> None:
        self.tables: dict[str, FakeTable] = {}

    def Table(self, name: str) -> FakeTable:  # noqa: N802
        key_name = "source_id" if "metadata" in name else "id"
        return self.tables.setdefault(name, FakeTable(key_name))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_dynamodb() -> FakeDynamoDBResource:
    """Fixture providing an in-memory DynamoDB resource."""
    return FakeDynamoDBResource()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fixture providing a controllable monotonic clock."""
    return FakeClock()


@pytest.fixture
def mock_source_id() -> str:
    """Fixture providing a standard test spreadsheet ID."""
    return "sheet_123456"


@pytest.fixture
def sample_items() -> list[CatalogItem]:
    """Fixture providing catalog items across three categories."""
    return [
        CatalogItem(
            id="beer_1",
            name="Hazy IPA",
            category=DrinkCategory.BEER,
            description="Juicy and soft",
            abv=6.5,
            strength=DrinkStrength.MEDIUM,
            flavor_profile=[FlavorTag.FRUITY, FlavorTag.BITTER],
            occasions=[Occasion.CASUAL],
            price="$8",
        ),
        CatalogItem(
            id="wine_1",
            name="Pinot Noir",
            category=DrinkCategory.WINE,
            abv=13.0,
            strength=DrinkStrength.MEDIUM,
            occasions=[Occasion.ROMANTIC],
            price="$12",
        ),
        CatalogItem(
            id="cocktail_1",
            name="Margarita",
            category=DrinkCategory.COCKTAIL,
            ingredients=["tequila", "lime", "triple sec"],
            abv=18.0,
            strength=DrinkStrength.STRONG,
            flavor_profile=[FlavorTag.SOUR],
            occasions=[Occasion.PARTY, Occasion.BIRTHDAY],
            happy_hour=True,
            happy_hour_price="$7",
            good_for_birthday=True,
        ),
    ]


@pytest.fixture
def sample_venue() -> Venue:
    """Fixture providing a venue with its own source spreadsheet."""
    return Venue(
        id="venue_1",
        name="The Tap Room",
        coordinates=Coordinates(latitude=40.7128, longitude=-74.006),
        source_locator="sheet_venue_1",
    )


@pytest.fixture
def beer_sheet() -> list[list[str]]:
    """Fixture providing raw Beer partition values, header row first."""
    return [
        ["id", "name", "description", "abv", "strength", "flavor_profile", "price"],
        ["beer_1", "Hazy IPA", "Juicy and soft", "6.5%", "medium", "fruity, bitter", "$8"],
        ["beer_2", "Pilsner", "Crisp", "4.8", "light", '["refreshing"]', "$6"],
    ]
