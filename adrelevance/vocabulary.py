"""Fixed signal vocabulary shared by the analyzer, the catalog, and the composer.

Keyword tables are built once at import time as read-only mappings of tuples; nothing in the
package mutates them. Catalog items must key their topic relevance against TOPIC_KEYWORDS and
their mood relevance against UserMood, otherwise they can never be matched.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class ConversationMood(str, Enum):
    """Mood of a conversation as detected from its recent text. Order is the tie-break order."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    EXCITED = "excited"
    FRUSTRATED = "frustrated"
    CURIOUS = "curious"
    FORMAL = "formal"
    CASUAL = "casual"
    HUMOROUS = "humorous"
    SERIOUS = "serious"


class UserMood(str, Enum):
    """Mood attributed to a user profile; the key space of item mood relevance."""
    HAPPY = "happy"
    EXCITED = "excited"
    CALM = "calm"
    NEUTRAL = "neutral"
    ANXIOUS = "anxious"
    FRUSTRATED = "frustrated"
    SAD = "sad"
    ANGRY = "angry"
    CURIOUS = "curious"
    SURPRISED = "surprised"


KeywordTable = Mapping[str, Tuple[str, ...]]

INTENT_KEYWORDS: KeywordTable = MappingProxyType(
    {
        "shopping": ("buy", "purchase", "shop", "order", "shopping", "store"),
        "research": ("research", "compare", "review", "information", "details"),
        "entertainment": ("watch", "movie", "game", "music", "fun", "entertainment"),
        "travel": ("travel", "trip", "vacation", "hotel", "flight", "destination"),
        "food": ("food", "restaurant", "cook", "recipe", "dining", "meal"),
        "health": ("health", "fitness", "exercise", "wellness", "medical"),
        "technology": ("tech", "computer", "phone", "software", "app", "device"),
    }
)

MOOD_KEYWORDS: Mapping[ConversationMood, Tuple[str, ...]] = MappingProxyType(
    {
        ConversationMood.POSITIVE: ("great", "awesome", "amazing", "love", "happy", "excited"),
        ConversationMood.NEGATIVE: ("bad", "terrible", "hate", "angry", "frustrated", "disappointed"),
        ConversationMood.EXCITED: ("wow", "incredible", "fantastic", "thrilled", "excited"),
        ConversationMood.FRUSTRATED: ("annoying", "frustrating", "difficult", "problem", "issue"),
        ConversationMood.CURIOUS: ("wonder", "curious", "interesting", "tell me", "how"),
        ConversationMood.HUMOROUS: ("funny", "joke", "hilarious", "lol", "haha"),
        ConversationMood.SERIOUS: ("important", "serious", "critical", "urgent", "necessary"),
    }
)

TOPIC_KEYWORDS: KeywordTable = MappingProxyType(
    {
        "fashion": ("clothes", "fashion", "style", "outfit", "dress", "shoes"),
        "electronics": ("phone", "computer", "laptop", "tablet", "electronics"),
        "automotive": ("car", "vehicle", "automotive", "driving", "transport"),
        "home": ("home", "house", "furniture", "decor", "kitchen"),
        "sports": ("sports", "fitness", "exercise", "gym", "athletic"),
        "beauty": ("beauty", "cosmetics", "skincare", "makeup", "personal care"),
        "finance": ("money", "finance", "banking", "investment", "budget"),
    }
)

CONVERSATION_TO_USER_MOOD: Mapping[ConversationMood, UserMood] = MappingProxyType(
    {
        ConversationMood.POSITIVE: UserMood.HAPPY,
        ConversationMood.EXCITED: UserMood.EXCITED,
        ConversationMood.NEGATIVE: UserMood.FRUSTRATED,
        ConversationMood.FRUSTRATED: UserMood.FRUSTRATED,
        ConversationMood.CURIOUS: UserMood.CURIOUS,
        ConversationMood.HUMOROUS: UserMood.HAPPY,
        ConversationMood.SERIOUS: UserMood.NEUTRAL,
    }
)

CONVERSATION_MOOD_EMOJI: Mapping[ConversationMood, str] = MappingProxyType(
    {
        ConversationMood.POSITIVE: "😊",
        ConversationMood.EXCITED: "🎉",
        ConversationMood.HUMOROUS: "😄",
        ConversationMood.CURIOUS: "🤔",
        ConversationMood.FRUSTRATED: "😤",
        ConversationMood.NEGATIVE: "😔",
    }
)

USER_MOOD_EMOJI: Mapping[UserMood, str] = MappingProxyType(
    {
        UserMood.HAPPY: "😊",
        UserMood.EXCITED: "🎉",
        UserMood.CURIOUS: "🤔",
        UserMood.FRUSTRATED: "😤",
        UserMood.SAD: "😔",
        UserMood.ANGRY: "😠",
    }
)

DEFAULT_EMOJI = "✨"
