from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .catalog import Item
from .engine import ConversationAnalytics, EngineStats, RankedSuggestion
from .session_store import UserProfile


class ProcessMessageRequest(BaseModel):
    """Request payload for one chat turn."""
    conversation_id: str
    user_id: str
    message: str


class ItemView(BaseModel):
    """Catalog item as exposed to API clients."""
    id: str
    title: str
    description: str
    brand: str
    call_to_action: str
    categories: List[str]
    item_type: str
    url: str
    active: bool

    @classmethod
    def from_item(cls, item: Item) -> "ItemView":
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            brand=item.brand,
            call_to_action=item.call_to_action,
            categories=list(item.categories),
            item_type=item.item_type.value,
            url=item.url,
            active=item.active,
        )


class SuggestionResponse(BaseModel):
    """Suggestion returned for a chat turn; item is null for the neutral fallback."""
    item: Optional[ItemView] = None
    response: str
    score: float

    @classmethod
    def from_suggestion(cls, suggestion: RankedSuggestion) -> "SuggestionResponse":
        item = ItemView.from_item(suggestion.item) if suggestion.item is not None else None
        return cls(item=item, response=suggestion.response, score=suggestion.score)


class AdResponseRequest(BaseModel):
    conversation_id: str
    item_id: str
    reply: Optional[str] = None


class AdResponseResponse(BaseModel):
    response: str


class PreferencesRequest(BaseModel):
    """Wholesale replacement of a user's preferences; omitted fields are left unchanged."""
    user_id: str
    interests: Optional[List[str]] = None
    blocked_categories: Optional[List[str]] = None
    suggestions_enabled: Optional[bool] = None


class ProfileView(BaseModel):
    user_id: str
    interests: List[str]
    blocked_categories: List[str]
    current_mood: Optional[str] = None
    suggestions_enabled: bool
    interaction_counts: Dict[str, int]

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ProfileView":
        return cls(
            user_id=profile.user_id,
            interests=list(profile.interests),
            blocked_categories=list(profile.blocked_categories),
            current_mood=profile.current_mood.value if profile.current_mood is not None else None,
            suggestions_enabled=profile.suggestions_enabled,
            interaction_counts=dict(profile.interaction_counts),
        )


class AddItemRequest(BaseModel):
    """New catalog item; mood keys use the profile mood labels (happy, excited, ...)."""
    id: str
    title: str
    description: str = ""
    brand: str = ""
    call_to_action: str = ""
    categories: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    target_audience: List[str] = Field(default_factory=list)
    topic_relevance: Dict[str, float] = Field(default_factory=dict)
    mood_relevance: Dict[str, float] = Field(default_factory=dict)
    template: str = ""
    item_type: str = "product_promotion"
    url: str = ""


class ClearConversationResponse(BaseModel):
    conversation_id: str
    removed: bool


class AnalyticsResponse(BaseModel):
    conversation_id: str
    message_count: int
    mood: str
    intents: List[str]
    topic_weights: Dict[str, float]

    @classmethod
    def from_analytics(cls, analytics: ConversationAnalytics) -> "AnalyticsResponse":
        return cls(
            conversation_id=analytics.conversation_id,
            message_count=analytics.message_count,
            mood=analytics.mood.value,
            intents=list(analytics.intents),
            topic_weights=dict(analytics.topic_weights),
        )


class StatsResponse(BaseModel):
    active_sessions: int
    catalog_size: int
    total_users: int

    @classmethod
    def from_stats(cls, stats: EngineStats) -> "StatsResponse":
        return cls(
            active_sessions=stats.active_sessions,
            catalog_size=stats.catalog_size,
            total_users=stats.total_users,
        )


class HealthResponse(BaseModel):
    status: str
    llm_enabled: bool
