from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .catalog import Item
from .session_store import Session, UserProfile

logger = logging.getLogger("adrelevance.ranker")

DEFAULT_MIN_RELEVANCE = 0.1
INTENT_MATCH_SCORE = 0.8
INTEREST_MATCH_SCORE = 0.3
INTERACTION_STEP = 0.1
INTERACTION_CAP = 0.4


@dataclass(frozen=True)
class RankingWeights:
    topic: float = 0.4
    mood: float = 0.3
    intent: float = 0.2
    preference: float = 0.1


@dataclass(frozen=True)
class ScoredItem:
    """One ranking result; scores live here, never on the shared catalog item."""
    item: Item
    score: float

    @property
    def item_id(self) -> str:
        return self.item.id


class Ranker:
    """Weighted-sum relevance model over topic, mood, intent, and preference signals."""

    def __init__(
        self,
        weights: Optional[RankingWeights] = None,
        min_relevance: float = DEFAULT_MIN_RELEVANCE,
    ) -> None:
        self._weights = weights or RankingWeights()
        self._min_relevance = min_relevance

    @property
    def min_relevance(self) -> float:
        return self._min_relevance

    def rank(
        self,
        items: Iterable[Item],
        session: Optional[Session],
        profile: Optional[UserProfile],
        max_results: int,
    ) -> List[ScoredItem]:
        """Purpose: Score active items against a session and profile and keep the top results.
        Inputs/Outputs: Inputs are catalog items (insertion order), the session, the profile,
            and max_results; output is a fresh list of ScoredItem sorted by score descending.
        Side Effects / State: None; items are not mutated.
        Dependencies: score_item and the configured minimum relevance.
        Failure Modes: Returns [] when session is None or max_results < 1.
        If Removed: The engine cannot choose an item for any message.
        Testing Notes: Equal scores keep catalog order (stable sort); scores never exceed 1.0.
        """
        # Score, filter by the floor, then stable-sort so ties keep insertion order.
        if session is None or max_results < 1:
            return []
        scored: List[ScoredItem] = []
        for item in items:
            if not item.active:
                continue
            score = self.score_item(item, session, profile)
            if score > self._min_relevance:
                scored.append(ScoredItem(item=item, score=score))
        scored.sort(key=lambda entry: entry.score, reverse=True)
        results = scored[:max_results]
        logger.debug(
            "ranked conversation=%s eligible=%d returned=%d",
            session.conversation_id,
            len(scored),
            len(results),
        )
        return results

    def score_item(self, item: Item, session: Session, profile: Optional[UserProfile]) -> float:
        """Purpose: Compute one item's relevance for a session and profile.
        Inputs/Outputs: Inputs are the item, the session, and the profile; output is a score in
            [0, 1].
        Side Effects / State: None; logs the component scores at DEBUG.
        Dependencies: topic_score, mood_score, intent_score, preference_score, RankingWeights.
        Failure Modes: None; a missing profile zeroes the mood and preference terms.
        If Removed: rank has nothing to sort by.
        Testing Notes: Topic hit counts can push the raw sum past 1.0; the result is clamped.
        """
        topic = topic_score(item, session)
        mood = mood_score(item, profile)
        intent = intent_score(item, session)
        preference = preference_score(item, profile)
        total = (
            topic * self._weights.topic
            + mood * self._weights.mood
            + intent * self._weights.intent
            + preference * self._weights.preference
        )
        logger.debug(
            "score item=%s topic=%.3f mood=%.3f intent=%.3f preference=%.3f total=%.3f",
            item.id,
            topic,
            mood,
            intent,
            preference,
            total,
        )
        return min(1.0, total)


def topic_score(item: Item, session: Session) -> float:
    # Best single overlap; topic weights are hit counts, so this can exceed 1.
    best = 0.0
    for topic, weight in session.topic_weights.items():
        relevance = item.topic_relevance.get(topic)
        if relevance is not None:
            best = max(best, weight * relevance)
    return best


def mood_score(item: Item, profile: Optional[UserProfile]) -> float:
    """Relevance of the item to the profile's mood; the session's own mood is not consulted."""
    if profile is None or profile.current_mood is None:
        return 0.0
    return item.mood_relevance.get(profile.current_mood, 0.0)


def intent_score(item: Item, session: Session) -> float:
    labels = set(item.categories) | set(item.keywords) | set(item.target_audience)
    if any(intent in labels for intent in session.intents):
        return INTENT_MATCH_SCORE
    return 0.0


def preference_score(item: Item, profile: Optional[UserProfile]) -> float:
    if profile is None:
        return 0.0
    score = sum(INTEREST_MATCH_SCORE for category in item.categories if category in profile.interests)
    count = profile.interaction_count(item.id)
    if count > 0:
        score += min(INTERACTION_CAP, count * INTERACTION_STEP)
    return min(1.0, score)
