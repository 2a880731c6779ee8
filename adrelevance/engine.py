from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .catalog import Catalog, CatalogLoader, Item, default_items
from .config import Settings, load_settings
from .context_analyzer import ContextAnalyzer, to_user_mood
from .pipeline import PipelineStep, StepRunner
from .ranker import Ranker, ScoredItem
from .response_composer import ResponseComposer
from .session_store import Message, MessageType, Session, SessionStore, UserProfile
from .suggestion_cache import CacheKey, SuggestionCache, make_cache_key
from .utils import require_text
from .vocabulary import ConversationMood

logger = logging.getLogger("adrelevance.engine")

BOT_SENDER_ID = "bot"
NO_SUGGESTION_REPLY = "I'm here to help! What are you interested in today? 🤔"
UNKNOWN_CONVERSATION_REPLY = "I'm not sure what you're referring to. Let's start a new conversation! 😊"
UNKNOWN_ITEM_REPLY = "I can't find that specific ad, but I'd love to help you find something else! 🤔"


@dataclass(frozen=True)
class RankedSuggestion:
    """One answer to one message: the chosen item (if any), the reply, and its score."""
    item: Optional[Item]
    response: str
    score: float


@dataclass(frozen=True)
class ConversationAnalytics:
    conversation_id: str
    message_count: int
    mood: ConversationMood
    intents: Tuple[str, ...]
    topic_weights: Dict[str, float]


@dataclass(frozen=True)
class EngineStats:
    active_sessions: int
    catalog_size: int
    total_users: int


@dataclass
class TurnContext:
    """Mutable per-request state threaded through the message steps."""
    conversation_id: str
    user_id: str
    text: str
    cache_key: Optional[CacheKey] = None
    cache_generation: Optional[int] = None
    session: Optional[Session] = None
    profile: Optional[UserProfile] = None
    ranked: List[ScoredItem] = field(default_factory=list)
    suggestion: Optional[RankedSuggestion] = None
    cache_hit: bool = False


class RelevanceEngine:
    """Keyword-driven suggestion service: analyze the conversation, rank the catalog, reply."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[Catalog] = None,
        store: Optional[SessionStore] = None,
        analyzer: Optional[ContextAnalyzer] = None,
        ranker: Optional[Ranker] = None,
        composer: Optional[ResponseComposer] = None,
        cache: Optional[SuggestionCache] = None,
    ) -> None:
        """Purpose: Wire the collaborators, defaulting each from Settings.
        Inputs/Outputs: Inputs are optional settings and collaborator overrides; no return value.
        Side Effects / State: May read the catalog file named by settings.catalog_path.
        Dependencies: Catalog, SessionStore, ContextAnalyzer, Ranker, ResponseComposer,
            SuggestionCache, StepRunner.
        Failure Modes: A malformed catalog file raises InvalidInputError.
        If Removed: Nothing ties the per-message steps together.
        Testing Notes: Inject ResponseComposer(rng=random.Random(seed)) and a fake-clock cache.
        """
        # Collaborators are built once; only the session store and cache hold mutable state.
        self._settings = settings if settings is not None else load_settings()
        self._catalog = catalog if catalog is not None else _initial_catalog(self._settings)
        self._store = store if store is not None else SessionStore()
        self._analyzer = (
            analyzer if analyzer is not None else ContextAnalyzer(recent_window=self._settings.recent_window)
        )
        self._ranker = ranker if ranker is not None else Ranker(min_relevance=self._settings.min_relevance)
        self._composer = composer if composer is not None else ResponseComposer()
        self._cache = cache
        if self._cache is None:
            self._cache = SuggestionCache(
                ttl_sec=self._settings.cache_ttl_sec,
                max_entries=self._settings.cache_max_entries,
            )
        self._executor: Optional[ThreadPoolExecutor] = None
        self._runner = StepRunner(
            [
                PipelineStep("cache_lookup", self._step_cache_lookup),
                PipelineStep("record_message", self._step_record_message, skip_if=_is_cached),
                PipelineStep("analyze_context", self._step_analyze_context, skip_if=_is_cached),
                PipelineStep("rank_items", self._step_rank_items, skip_if=_is_cached),
                PipelineStep("compose_reply", self._step_compose_reply, skip_if=_is_cached),
                PipelineStep("cache_store", self._step_cache_store, skip_if=_is_cached),
            ]
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def cache(self) -> SuggestionCache:
        return self._cache

    def process_message(self, conversation_id: str, user_id: str, text: str) -> RankedSuggestion:
        """Purpose: Produce a suggestion for one incoming user message.
        Inputs/Outputs: Inputs are conversation id, user id, and message text; output is a
            RankedSuggestion (item None and score 0.0 when nothing clears the floor).
        Side Effects / State: Appends the message, refreshes session signals, may update the
            profile's mood/interests, and writes the result cache.
        Dependencies: StepRunner over the six message steps.
        Failure Modes: Blank ids or text raise InvalidInputError before any state changes.
        If Removed: No suggestions are produced.
        Testing Notes: Same text twice within the TTL returns the identical object and does not
            append a second message.
        """
        # Validate up front, then run the steps; a cache hit skips everything after lookup.
        require_text(conversation_id, "conversation_id")
        require_text(user_id, "user_id")
        require_text(text, "message text")
        started = time.perf_counter()
        context = TurnContext(conversation_id=conversation_id, user_id=user_id, text=text)
        self._runner.run(context)
        suggestion = context.suggestion
        if suggestion is None:
            raise RuntimeError("message pipeline finished without a suggestion")
        logger.info(
            "suggestion conversation=%s item=%s score=%.3f cached=%s elapsed_ms=%d",
            conversation_id,
            suggestion.item.id if suggestion.item is not None else "-",
            suggestion.score,
            context.cache_hit,
            (time.perf_counter() - started) * 1000,
        )
        return suggestion

    def process_message_async(self, conversation_id: str, user_id: str, text: str) -> "Future[RankedSuggestion]":
        return self._pool().submit(self.process_message, conversation_id, user_id, text)

    def process_ad_response(self, conversation_id: str, item_id: str, reply_text: Optional[str]) -> str:
        """Purpose: Answer the user's reaction to a previously suggested item.
        Inputs/Outputs: Inputs are conversation id, the suggested item id, and the user's reply
            (None asks for an opinion); output is the follow-up sentence.
        Side Effects / State: Records one interaction and appends the follow-up to the session.
        Dependencies: Ranker with lookup_k depth, SessionStore.record_interaction, composer.
        Failure Modes: Unknown conversation or an item outside the lookup ranking returns a
            fixed sentence; blank ids raise InvalidInputError.
        If Removed: Follow-up turns are never answered or counted.
        Testing Notes: After "I need a new smartphone", replying "yes" to tech_001 increments
            the interaction count to 1.
        """
        # Re-resolve the item through a wider ranking pass so only relevant items can match.
        require_text(conversation_id, "conversation_id")
        require_text(item_id, "item_id")
        session = self._store.get_session(conversation_id)
        if session is None:
            return UNKNOWN_CONVERSATION_REPLY
        profile = self._bind_profile(session)
        ranked = self._ranker.rank(self._catalog.items(), session, profile, self._settings.lookup_k)
        match = next((entry.item for entry in ranked if entry.item_id == item_id), None)
        if match is None:
            logger.info("ad response unresolved conversation=%s item=%s", conversation_id, item_id)
            return UNKNOWN_ITEM_REPLY
        self._store.record_interaction(session.user_id, item_id)
        follow_up = self._composer.compose_follow_up(match, reply_text)
        session.add_message(Message(content=follow_up, sender_id=BOT_SENDER_ID, type=MessageType.SYSTEM_RESPONSE))
        return follow_up

    def update_preferences(
        self,
        user_id: str,
        interests: Optional[Iterable[str]] = None,
        blocked_categories: Optional[Iterable[str]] = None,
        suggestions_enabled: Optional[bool] = None,
    ) -> UserProfile:
        """Purpose: Replace a user's stated preferences and drop cached replies.
        Inputs/Outputs: Inputs are the user id and any fields to replace; output is the new profile.
        Side Effects / State: Swaps the profile in the store; clears the whole result cache.
        Dependencies: SessionStore.replace_preferences, SuggestionCache.clear.
        Failure Modes: A blank user id raises InvalidInputError.
        If Removed: Preference changes would not reach ranking until cached replies expire.
        Testing Notes: A repeated message after an update must be recomputed, not replayed.
        """
        require_text(user_id, "user_id")
        profile = self._store.replace_preferences(
            user_id,
            interests=interests,
            blocked_categories=blocked_categories,
            suggestions_enabled=suggestions_enabled,
        )
        dropped = self._cache.clear()
        logger.info("preferences updated user=%s cache_dropped=%d", user_id, dropped)
        return profile

    def add_item(self, item: Item) -> None:
        """Purpose: Append an item to the live catalog.
        Inputs/Outputs: Input is a validated Item; no return value.
        Side Effects / State: Grows the catalog; clears the whole result cache.
        Dependencies: Catalog.add, SuggestionCache.clear.
        Failure Modes: A duplicate id raises InvalidInputError from the catalog.
        If Removed: The catalog is fixed at startup.
        Testing Notes: An unmatched message becomes a match once a fitting item is added.
        """
        self._catalog.add(item)
        self._cache.clear()

    def deactivate_item(self, item_id: str) -> bool:
        """Take an item out of ranking; returns False for an unknown id."""
        require_text(item_id, "item_id")
        deactivated = self._catalog.deactivate(item_id)
        if deactivated is None:
            return False
        self._cache.clear()
        return True

    def clear_conversation(self, conversation_id: str) -> bool:
        require_text(conversation_id, "conversation_id")
        dropped = self._cache.invalidate(lambda key: key[0] == conversation_id)
        removed = self._store.clear_session(conversation_id)
        logger.info("conversation reset conversation=%s removed=%s cache_dropped=%d", conversation_id, removed, dropped)
        return removed

    def get_session(self, conversation_id: str) -> Optional[Session]:
        return self._store.get_session(conversation_id)

    def get_analytics(self, conversation_id: str) -> Optional[ConversationAnalytics]:
        session = self._store.get_session(conversation_id)
        if session is None:
            return None
        return ConversationAnalytics(
            conversation_id=conversation_id,
            message_count=session.message_count,
            mood=session.mood,
            intents=tuple(session.intents),
            topic_weights=dict(session.topic_weights),
        )

    def get_stats(self) -> EngineStats:
        """Purpose: Report engine-wide counts.
        Inputs/Outputs: No inputs; output is EngineStats with sessions, catalog size, and users.
        Side Effects / State: None.
        Dependencies: SessionStore counters, Catalog length.
        Failure Modes: None.
        If Removed: /api/stats has nothing to report.
        Testing Notes: Counts grow by one per new conversation and per new user.
        """
        return EngineStats(
            active_sessions=self._store.session_count(),
            catalog_size=len(self._catalog),
            total_users=self._store.profile_count(),
        )

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._cache.clear()

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._settings.max_workers,
                thread_name_prefix="adrelevance",
            )
        return self._executor

    def _bind_profile(self, session: Session) -> UserProfile:
        # The owner's current profile, in case preferences were swapped since the last turn.
        profile = self._store.get_or_create_profile(session.user_id)
        session.profile = profile
        return profile

    def _step_cache_lookup(self, context: TurnContext) -> None:
        context.cache_key = make_cache_key(context.conversation_id, context.user_id, context.text)
        context.cache_generation = self._cache.generation
        cached = self._cache.get(context.cache_key)
        if cached is not None:
            context.suggestion = cached
            context.cache_hit = True
            logger.debug("cache hit conversation=%s", context.conversation_id)

    def _step_record_message(self, context: TurnContext) -> None:
        session = self._store.get_or_create_session(context.conversation_id, context.user_id)
        context.profile = self._bind_profile(session)
        session.add_message(
            Message(content=context.text, sender_id=context.user_id, type=MessageType.USER_MESSAGE)
        )
        context.session = session

    def _step_analyze_context(self, context: TurnContext) -> None:
        session = context.session
        signals = self._analyzer.analyze(session.recent_messages(self._settings.recent_window))
        session.apply_signals(signals.mood, signals.intents, signals.topic_weights)
        if self._settings.learn_from_signals:
            self._store.learn_from_signals(session.user_id, to_user_mood(signals.mood), signals.intents)

    def _step_rank_items(self, context: TurnContext) -> None:
        context.ranked = self._ranker.rank(
            self._catalog.items(), context.session, context.profile, self._settings.top_k
        )

    def _step_compose_reply(self, context: TurnContext) -> None:
        if not context.ranked:
            context.suggestion = RankedSuggestion(item=None, response=NO_SUGGESTION_REPLY, score=0.0)
            return
        best = context.ranked[0]
        context.suggestion = RankedSuggestion(
            item=best.item,
            response=self._composer.compose(best.item, context.session),
            score=best.score,
        )

    def _step_cache_store(self, context: TurnContext) -> None:
        # Skipped when an invalidation ran while this turn was being computed.
        stored = self._cache.put(context.cache_key, context.suggestion, generation=context.cache_generation)
        if not stored:
            logger.debug("cache write skipped conversation=%s", context.conversation_id)


def _is_cached(context: TurnContext) -> bool:
    return context.cache_hit


def _initial_catalog(settings: Settings) -> Catalog:
    if settings.catalog_path is None:
        return Catalog(default_items())
    items, _meta = CatalogLoader(settings.catalog_path).load()
    return Catalog(items)
