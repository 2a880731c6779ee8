"""Catalog of promotable items and the loader for JSON catalog files.

Items are frozen after construction. The only lifecycle changes are appending new items and
swapping an item for an inactive copy; relevance scores never live on the item itself.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import InvalidInputError
from .utils import require_text
from .vocabulary import UserMood

logger = logging.getLogger("adrelevance.catalog")

ID_KEYS = ["id", "item_id", "ad_id"]
TITLE_KEYS = ["title", "name"]
DESC_KEYS = ["description", "desc"]
BRAND_KEYS = ["brand", "brand_name"]
CTA_KEYS = ["call_to_action", "cta"]
CATEGORY_KEYS = ["categories", "category"]
KEYWORD_KEYS = ["keywords", "tags"]
AUDIENCE_KEYS = ["target_audience", "audience"]
TOPIC_KEYS = ["topic_relevance", "topics"]
MOOD_KEYS = ["mood_relevance", "moods"]
TEMPLATE_KEYS = ["template", "conversational_template", "response_template"]
TYPE_KEYS = ["type", "item_type", "ad_type"]
URL_KEYS = ["url", "link"]
ACTIVE_KEYS = ["active", "is_active"]


class ItemType(str, Enum):
    PRODUCT_PROMOTION = "product_promotion"
    BRAND_AWARENESS = "brand_awareness"
    SPECIAL_OFFER = "special_offer"
    EDUCATIONAL = "educational"
    ENTERTAINMENT = "entertainment"
    RECOMMENDATION = "recommendation"
    COMPARISON = "comparison"
    TESTIMONIAL = "testimonial"
    EVENT_PROMOTION = "event_promotion"
    SEASONAL = "seasonal"


@dataclass(frozen=True)
class Item:
    """Promotable catalog entry with targeting metadata; immutable once built."""
    id: str
    title: str
    description: str
    brand: str
    call_to_action: str = ""
    categories: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    target_audience: Tuple[str, ...] = ()
    topic_relevance: Mapping[str, float] = field(default_factory=dict)
    mood_relevance: Mapping[UserMood, float] = field(default_factory=dict)
    template: str = ""
    item_type: ItemType = ItemType.PRODUCT_PROMOTION
    url: str = ""
    active: bool = True

    def __post_init__(self) -> None:
        require_text(self.id, "item id")
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "target_audience", tuple(self.target_audience))
        topics = {str(topic): float(weight) for topic, weight in dict(self.topic_relevance).items()}
        moods = {UserMood(mood): float(weight) for mood, weight in dict(self.mood_relevance).items()}
        for label, weight in list(topics.items()) + list(moods.items()):
            if not 0.0 <= weight <= 1.0:
                raise InvalidInputError(f"item {self.id}: weight for {label} must be within [0, 1]")
        object.__setattr__(self, "topic_relevance", MappingProxyType(topics))
        object.__setattr__(self, "mood_relevance", MappingProxyType(moods))
        object.__setattr__(self, "item_type", ItemType(self.item_type))

    def __hash__(self) -> int:
        # The relevance mappings are read-only proxies and cannot be hashed.
        return hash(self.id)


@dataclass
class CatalogMeta:
    """Metadata describing a loaded catalog file for logging."""
    file_name: str
    updated_at: str
    sha256: str


class Catalog:
    """Append-only, insertion-ordered item set shared by every request."""

    def __init__(self, items: Optional[Iterable[Item]] = None) -> None:
        self._lock = threading.Lock()
        self._items: List[Item] = []
        self._index: Dict[str, int] = {}
        for item in items or []:
            self.add(item)

    def add(self, item: Item) -> None:
        """Purpose: Append an item to the end of the catalog.
        Inputs/Outputs: Input is an Item; no return value.
        Side Effects / State: Extends the item list and the id index under the lock.
        Dependencies: None beyond Item.
        Failure Modes: Raises InvalidInputError when the id is already present.
        If Removed: Runtime catalog growth (add_item) stops working.
        Testing Notes: Add two items and verify order; add a duplicate id and expect an error.
        """
        # Keep ids unique and preserve insertion order for ranking tie-breaks.
        with self._lock:
            if item.id in self._index:
                raise InvalidInputError(f"duplicate item id: {item.id}")
            self._index[item.id] = len(self._items)
            self._items.append(item)
        logger.info("catalog add item=%s active=%s", item.id, item.active)

    def deactivate(self, item_id: str) -> Optional[Item]:
        """Swap the item for an inactive copy in place; returns the copy, or None if unknown."""
        with self._lock:
            position = self._index.get(item_id)
            if position is None:
                return None
            inactive = replace(self._items[position], active=False)
            self._items[position] = inactive
        logger.info("catalog deactivate item=%s", item_id)
        return inactive

    def get(self, item_id: str) -> Optional[Item]:
        with self._lock:
            position = self._index.get(item_id)
            return self._items[position] if position is not None else None

    def items(self) -> Tuple[Item, ...]:
        # Snapshot so rankers never observe a half-applied append.
        with self._lock:
            return tuple(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class CatalogLoader:
    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> Tuple[List[Item], CatalogMeta]:
        """Purpose: Load and normalize catalog data from a JSON file.
        Inputs/Outputs: No inputs; returns a list of Item and CatalogMeta.
        Side Effects / State: Reads file contents and computes hash/mtime.
        Dependencies: Uses json, hashlib, and item_from_record.
        Failure Modes: JSON decode errors and IO errors propagate; malformed records raise
            InvalidInputError.
        If Removed: Deployments can only serve the built-in seed items.
        Testing Notes: Write a temp JSON file with one record and validate field mapping.
        """
        # Read bytes for hashing and parse JSON into normalized items.
        raw_bytes = self._path.read_bytes()
        sha256 = hashlib.sha256(raw_bytes).hexdigest()
        updated_at = datetime.fromtimestamp(self._path.stat().st_mtime).isoformat()

        data = json.loads(raw_bytes.decode("utf-8-sig"))
        records: List[Any]
        if isinstance(data, dict):
            records = data.get("items", [])
        elif isinstance(data, list):
            records = data
        else:
            records = []

        items = [item_from_record(record) for record in records if isinstance(record, dict)]
        meta = CatalogMeta(file_name=self._path.name, updated_at=updated_at, sha256=sha256)
        logger.info("catalog file=%s items=%d sha256=%s", meta.file_name, len(items), sha256[:12])
        return items, meta


def item_from_record(record: Dict[str, Any]) -> Item:
    """Purpose: Build an Item from a loosely keyed dict (snake_case or camelCase).
    Inputs/Outputs: Input is a raw dict; output is an Item.
    Side Effects / State: None.
    Dependencies: Uses _get_first_value for key synonyms and Item validation.
    Failure Modes: Missing id, unknown mood/type labels, or out-of-range weights raise
        InvalidInputError (ValueError from enum lookups is re-raised as InvalidInputError).
    If Removed: CatalogLoader and the HTTP add-item endpoint cannot build items.
    Testing Notes: {"id": "x", "brandName": "B", "moodRelevance": {"happy": 0.5}} maps cleanly.
    """
    # Resolve each field through its synonym list, then let Item validate.
    try:
        return Item(
            id=str(_get_first_value(record, ID_KEYS) or ""),
            title=str(_get_first_value(record, TITLE_KEYS) or ""),
            description=str(_get_first_value(record, DESC_KEYS) or ""),
            brand=str(_get_first_value(record, BRAND_KEYS) or ""),
            call_to_action=str(_get_first_value(record, CTA_KEYS) or ""),
            categories=_as_strings(_get_first_value(record, CATEGORY_KEYS)),
            keywords=_as_strings(_get_first_value(record, KEYWORD_KEYS)),
            target_audience=_as_strings(_get_first_value(record, AUDIENCE_KEYS)),
            topic_relevance=dict(_get_first_value(record, TOPIC_KEYS) or {}),
            mood_relevance={
                UserMood(str(mood).lower()): weight
                for mood, weight in dict(_get_first_value(record, MOOD_KEYS) or {}).items()
            },
            template=str(_get_first_value(record, TEMPLATE_KEYS) or ""),
            item_type=ItemType(str(_get_first_value(record, TYPE_KEYS) or "product_promotion").lower()),
            url=str(_get_first_value(record, URL_KEYS) or ""),
            active=bool(_get_first_value(record, ACTIVE_KEYS, default=True)),
        )
    except InvalidInputError:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"malformed catalog record: {exc}") from exc


def _normalize_key(key: str) -> str:
    return "".join(ch for ch in str(key).lower() if ch.isalnum())


def _get_first_value(record: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    normalized_map = {_normalize_key(k): k for k in record.keys()}
    for key in keys:
        actual = normalized_map.get(_normalize_key(key))
        if actual is not None and record[actual] is not None:
            return record[actual]
    return default


def _as_strings(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(entry) for entry in value)


def default_items() -> List[Item]:
    """Built-in seed catalog used when no catalog file is configured."""
    return [
        Item(
            id="fashion_001",
            title="Summer Collection",
            description="Discover the latest summer fashion trends",
            brand="FashionBrand",
            call_to_action="Shop Now",
            categories=("fashion",),
            keywords=("style", "trendy", "fashion", "clothes", "outfit", "dress", "shoes", "bag", "accessories"),
            topic_relevance={"fashion": 0.9},
            mood_relevance={UserMood.HAPPY: 0.8, UserMood.EXCITED: 0.7},
            template=(
                "Hey! I noticed you're into style. Our new summer collection is absolutely stunning! 🌸 "
                "<a href='https://fashionbrand.com/summer-collection' target='_blank'>Shop Now</a>"
            ),
            item_type=ItemType.PRODUCT_PROMOTION,
            url="https://fashionbrand.com/summer-collection",
        ),
        Item(
            id="tech_001",
            title="Latest Smartphone",
            description="Experience cutting-edge technology",
            brand="TechCorp",
            call_to_action="Learn More",
            categories=("electronics", "technology"),
            keywords=("smartphone", "phone", "mobile", "tech", "technology", "innovation", "device"),
            topic_relevance={"electronics": 0.95, "technology": 0.9},
            mood_relevance={UserMood.CURIOUS: 0.8, UserMood.EXCITED: 0.9},
            template=(
                "Speaking of tech, have you seen the latest smartphone? It's pretty amazing! 📱 "
                "<a href='https://techcorp.com/latest-smartphone' target='_blank'>Learn More</a>"
            ),
            item_type=ItemType.PRODUCT_PROMOTION,
            url="https://techcorp.com/latest-smartphone",
        ),
        Item(
            id="travel_001",
            title="Dream Vacation",
            description="Plan your perfect getaway",
            brand="TravelAgency",
            call_to_action="Book Now",
            categories=("travel",),
            keywords=("vacation", "trip", "travel", "destination", "getaway", "holiday"),
            topic_relevance={"travel": 0.9},
            mood_relevance={UserMood.EXCITED: 0.9, UserMood.HAPPY: 0.7},
            template=(
                "Dreaming of a vacation? I know the perfect place for your next adventure! ✈️ "
                "<a href='https://travelagency.com/dream-vacation' target='_blank'>Book Now</a>"
            ),
            item_type=ItemType.SPECIAL_OFFER,
            url="https://travelagency.com/dream-vacation",
        ),
        Item(
            id="food_001",
            title="Delicious Recipes",
            description="Cook like a chef at home",
            brand="FoodNetwork",
            call_to_action="Get Recipes",
            categories=("food",),
            keywords=("cooking", "recipes"),
            topic_relevance={"food": 0.9},
            mood_relevance={UserMood.HAPPY: 0.6, UserMood.CURIOUS: 0.7},
            template=(
                "Love cooking? I've got some amazing recipes that'll make you look like a pro chef! 👨‍🍳 "
                "<a href='https://foodnetwork.com/delicious-recipes' target='_blank'>Get Recipes</a>"
            ),
            item_type=ItemType.EDUCATIONAL,
            url="https://foodnetwork.com/delicious-recipes",
        ),
        Item(
            id="fitness_001",
            title="Get Fit Fast",
            description="Transform your body in 30 days",
            brand="FitLife",
            call_to_action="Start Today",
            categories=("health", "sports"),
            keywords=("fitness", "workout"),
            topic_relevance={"sports": 0.9, "health": 0.8},
            mood_relevance={UserMood.EXCITED: 0.8, UserMood.CURIOUS: 0.6},
            template=(
                "Ready to crush your fitness goals? This program is a game-changer! 💪 "
                "<a href='https://fitlife.com/get-fit-fast' target='_blank'>Start Today</a>"
            ),
            item_type=ItemType.PRODUCT_PROMOTION,
            url="https://fitlife.com/get-fit-fast",
        ),
        Item(
            id="beauty_001",
            title="Natural Skincare",
            description="Glow from within",
            brand="BeautyBrand",
            call_to_action="Shop Collection",
            categories=("beauty",),
            keywords=("skincare", "natural"),
            topic_relevance={"beauty": 0.9},
            mood_relevance={UserMood.HAPPY: 0.7, UserMood.CALM: 0.8},
            template=(
                "Want that natural glow? This skincare line is absolutely magical! ✨ "
                "<a href='https://beautybrand.com/natural-skincare' target='_blank'>Shop Collection</a>"
            ),
            item_type=ItemType.BRAND_AWARENESS,
            url="https://beautybrand.com/natural-skincare",
        ),
    ]
