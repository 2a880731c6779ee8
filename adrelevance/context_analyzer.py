from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .session_store import Message
from .vocabulary import (
    CONVERSATION_TO_USER_MOOD,
    INTENT_KEYWORDS,
    MOOD_KEYWORDS,
    TOPIC_KEYWORDS,
    ConversationMood,
    KeywordTable,
    UserMood,
)

logger = logging.getLogger("adrelevance.analyzer")

DEFAULT_RECENT_WINDOW = 5


@dataclass(frozen=True)
class ContextSignals:
    """Result of one analysis pass over a conversation tail."""
    mood: ConversationMood = ConversationMood.NEUTRAL
    intents: Tuple[str, ...] = ()
    topic_weights: Dict[str, float] = field(default_factory=dict)


class ContextAnalyzer:
    """Keyword-based extraction of mood, intents, and topic weights from recent messages."""

    def __init__(
        self,
        recent_window: int = DEFAULT_RECENT_WINDOW,
        intent_keywords: Optional[KeywordTable] = None,
        mood_keywords: Optional[Mapping[ConversationMood, Tuple[str, ...]]] = None,
        topic_keywords: Optional[KeywordTable] = None,
    ) -> None:
        """Purpose: Bind the analyzer to its window size and keyword tables.
        Inputs/Outputs: Inputs are the window and optional table overrides; no return value.
        Side Effects / State: Lower-cases keywords once; tables are never mutated afterwards.
        Dependencies: Defaults come from vocabulary.
        Failure Modes: None.
        If Removed: Sessions never receive mood/intent/topic signals and nothing ranks.
        Testing Notes: Pass a small custom table to isolate one signal kind.
        """
        # Pre-lower every keyword so analyze() only lower-cases the text.
        self._recent_window = recent_window
        self._intent_keywords = _lowered(INTENT_KEYWORDS if intent_keywords is None else intent_keywords)
        self._mood_keywords = _lowered(MOOD_KEYWORDS if mood_keywords is None else mood_keywords)
        self._topic_keywords = _lowered(TOPIC_KEYWORDS if topic_keywords is None else topic_keywords)

    def analyze(self, messages: Sequence[Message]) -> ContextSignals:
        """Purpose: Derive signals from at most the last `recent_window` messages.
        Inputs/Outputs: Input is the ordered message history; output is ContextSignals.
        Side Effects / State: None; pure with respect to the session.
        Dependencies: combine_text, detect_intents, detect_mood, extract_topics.
        Failure Modes: None; empty history yields neutral mood and empty signals.
        If Removed: The engine cannot refresh session signals before ranking.
        Testing Notes: "I need a new smartphone" -> intents ["technology"],
            topics {"electronics": 1.0}, mood neutral.
        """
        # Analyze the combined, lower-cased tail of the conversation.
        if not messages:
            return ContextSignals()
        text = combine_text(messages[-self._recent_window :])
        signals = ContextSignals(
            mood=detect_mood(text, self._mood_keywords),
            intents=tuple(detect_intents(text, self._intent_keywords)),
            topic_weights=extract_topics(text, self._topic_keywords),
        )
        logger.debug(
            "analysis mood=%s intents=%s topics=%s",
            signals.mood.value,
            list(signals.intents),
            signals.topic_weights,
        )
        return signals


def combine_text(messages: Sequence[Message]) -> str:
    """Join message contents oldest-first and lower-case the result."""
    return " ".join(message.content for message in messages if message.content).lower().strip()


def detect_intents(text: str, table: KeywordTable) -> List[str]:
    # Table order is discovery order; a label is added at most once.
    return [intent for intent, keywords in table.items() if any(keyword in text for keyword in keywords)]


def detect_mood(text: str, table: Mapping[ConversationMood, Tuple[str, ...]]) -> ConversationMood:
    """Purpose: Pick the mood with the most keyword hits.
    Inputs/Outputs: Inputs are lower-cased text and the mood table; output is one mood.
    Side Effects / State: None.
    Dependencies: ConversationMood enumeration order for tie-breaks.
    Failure Modes: None; zero hits everywhere returns NEUTRAL.
    If Removed: Mood-keyed templates and profile mood learning stop working.
    Testing Notes: "love it, so excited" scores positive 2, excited 1 -> POSITIVE;
        "excited" alone ties positive/excited -> POSITIVE (earlier in enumeration).
    """
    # Every label competes; strict > keeps the earliest label on ties.
    best_mood = ConversationMood.NEUTRAL
    best_score = 0
    for mood in ConversationMood:
        score = sum(1 for keyword in table.get(mood, ()) if keyword in text)
        if score > best_score:
            best_mood, best_score = mood, score
    return best_mood


def extract_topics(text: str, table: KeywordTable) -> Dict[str, float]:
    # Weight is the raw hit count; topics without hits are omitted, not zeroed.
    weights: Dict[str, float] = {}
    for topic, keywords in table.items():
        hits = sum(1 for keyword in keywords if keyword in text)
        if hits:
            weights[topic] = float(hits)
    return weights


def to_user_mood(mood: ConversationMood) -> UserMood:
    """Map a conversation mood onto the profile mood scale."""
    return CONVERSATION_TO_USER_MOOD.get(mood, UserMood.NEUTRAL)


def _lowered(table: Mapping) -> Mapping:
    return MappingProxyType(
        {label: tuple(keyword.lower() for keyword in keywords) for label, keywords in table.items()}
    )
