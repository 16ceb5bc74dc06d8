"""Catalog data models.

These models represent drink catalog items and the venues whose menus are
synchronized from the external spreadsheet source.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DrinkCategory(str, Enum):
    """Closed set of catalog categories, one per source partition."""

    BEER = "beer"
    WINE = "wine"
    COCKTAIL = "cocktail"
    SPIRIT = "spirit"
    NON_ALCOHOLIC = "non-alcoholic"


class DrinkStrength(str, Enum):
    """Closed set of strength labels."""

    LIGHT = "light"
    MEDIUM = "medium"
    STRONG = "strong"
    NON_ALCOHOLIC = "non-alcoholic"


class FlavorTag(str, Enum):
    """Closed set of flavor tags."""

    SWEET = "sweet"
    BITTER = "bitter"
    SOUR = "sour"
    SAVORY = "savory"
    REFRESHING = "refreshing"
    FRUITY = "fruity"
    SPICY = "spicy"
    SMOKY = "smoky"
    HERBAL = "herbal"
    SMOOTH = "smooth"


class Occasion(str, Enum):
    """Closed set of occasion tags."""

    CASUAL = "casual"
    PARTY = "party"
    ROMANTIC = "romantic"
    BUSINESS = "business"
    RELAXING = "relaxing"
    CELEBRATION = "celebration"
    SPORTS = "sports"
    EXPLORING = "exploring"
    NEWLY21 = "newly21"
    BIRTHDAY = "birthday"


class CatalogItem(BaseModel):
    """A single drink as fetched from the source.

    Items are immutable once fetched; identity is the ``id`` field.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(..., min_length=1, description="Unique identifier within a sync generation")
    name: str = Field(..., min_length=1, description="Display name")
    category: DrinkCategory = Field(..., description="Catalog category")
    description: str = Field(default="", description="Free-text description")
    ingredients: list[str] = Field(default_factory=list, description="Ingredient list")
    abv: float = Field(default=0.0, ge=0, le=100, description="Alcohol by volume percentage")
    strength: DrinkStrength = Field(default=DrinkStrength.LIGHT, description="Strength label")
    flavor_profile: list[FlavorTag] = Field(default_factory=list, description="Flavor tags")
    occasions: list[Occasion] = Field(default_factory=list, description="Occasion tags")
    serving_suggestions: list[str] = Field(default_factory=list)
    weather_match: dict[str, Any] = Field(default_factory=dict)
    image_url: str = Field(default="")
    glass_type: str | None = None
    preparation: str | None = None
    price: str = Field(default="$0", description="Display price")
    price_16oz: str | None = None
    price_24oz: str | None = None
    happy_hour: bool = False
    happy_hour_price: str | None = None
    happy_hour_times: str | None = None
    featured: bool = False
    fun_for_twenty_one: bool = False
    good_for_birthday: bool = False

    def to_dynamodb_item(self, updated_at: datetime | None = None) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        The full item is stored as a JSON document under ``data`` so that
        float fields never need Decimal conversion.

        Args:
            updated_at: Write timestamp (defaults to now)

        Returns:
            dict: DynamoDB-compatible representation
        """
        timestamp = (updated_at or datetime.now(UTC)).isoformat()
        return {
            "id": self.id,
            "category": self.category.value,
            "data": self.model_dump_json(),
            "created_at": timestamp,
            "updated_at": timestamp,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "CatalogItem":
        """Create CatalogItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            CatalogItem: Parsed model instance
        """
        return cls.model_validate(json.loads(item["data"]))


class Coordinates(BaseModel):
    """Geographic coordinates of a venue."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Venue(BaseModel):
    """A venue whose menu lives in its own source spreadsheet.

    Venues are maintained by an administrative feed; the sync engine only
    reads them. ``source_locator`` may be repointed at any time, which is why
    the menu cache compares it on every read.
    """

    id: str = Field(..., description="Venue identifier")
    name: str = Field(..., description="Display name")
    coordinates: Coordinates
    source_locator: str = Field(..., description="Spreadsheet id that supplies the menu")
    active: bool = Field(default=True)
