from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from .config import Settings, load_settings
from .engine import RankedSuggestion
from .errors import UpstreamError
from .llm_suggester import LLMSuggestion, SuggestionProvider
from .session_store import Message, MessageType, SessionStore
from .utils import require_text

logger = logging.getLogger("adrelevance.llm")

ASSISTANT_SENDER_ID = "assistant"
NO_ITEM_FALLBACK = (
    "I don't have ad suggestions for this product right now. "
    "Try asking about technology, fashion, travel, food, fitness, or beauty products! 💡"
)


class LLMEnhancedEngine:
    """Suggestion service that delegates item choice and wording to a language model."""

    def __init__(
        self,
        provider: SuggestionProvider,
        settings: Optional[Settings] = None,
        store: Optional[SessionStore] = None,
    ) -> None:
        """Purpose: Bind the provider, its timeout and threshold, and the shared session store.
        Inputs/Outputs: Inputs are a SuggestionProvider, optional Settings and SessionStore.
        Side Effects / State: Creates a worker pool that runs provider calls.
        Dependencies: SuggestionProvider, SessionStore, Settings.llm_* fields.
        Failure Modes: None at construction.
        If Removed: The /api/enhanced route has no engine.
        Testing Notes: A provider double that sleeps past llm_timeout_sec triggers UpstreamError.
        """
        # Provider calls run on the pool so the caller can stop waiting at the timeout.
        self._provider = provider
        self._settings = settings if settings is not None else load_settings()
        self._store = store if store is not None else SessionStore()
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix="adrelevance-llm",
        )
        self._caller_pool: Optional[ThreadPoolExecutor] = None

    @property
    def store(self) -> SessionStore:
        return self._store

    def process_message(self, conversation_id: str, user_id: str, text: str) -> RankedSuggestion:
        """Purpose: Record the message, ask the provider, and record the assistant reply.
        Inputs/Outputs: Inputs are conversation id, user id, and text; output is a
            RankedSuggestion scored by the provider's confidence.
        Side Effects / State: Appends the user message and the assistant reply to the session.
        Dependencies: _call_provider, SessionStore.
        Failure Modes: Blank inputs raise InvalidInputError; provider failures and timeouts raise
            UpstreamError and leave the user message recorded without a reply.
        If Removed: LLM-backed suggestions are unavailable.
        Testing Notes: Confidence below the threshold yields item None and score 0.0.
        """
        # Only an item at or above the confidence threshold is surfaced.
        require_text(conversation_id, "conversation_id")
        require_text(user_id, "user_id")
        require_text(text, "message text")
        started = time.perf_counter()
        session = self._store.get_or_create_session(conversation_id, user_id)
        profile = self._store.get_or_create_profile(session.user_id)
        session.profile = profile
        history = session.messages
        session.add_message(Message(content=text, sender_id=user_id, type=MessageType.USER_MESSAGE))

        suggestion = self._call_provider(conversation_id, text, history, profile)
        threshold = self._settings.llm_confidence_threshold
        if suggestion.is_actionable(threshold):
            result = RankedSuggestion(
                item=suggestion.item,
                response=suggestion.item.template or suggestion.reply,
                score=suggestion.confidence,
            )
        else:
            result = RankedSuggestion(item=None, response=suggestion.reply or NO_ITEM_FALLBACK, score=0.0)
        session.add_message(
            Message(content=result.response, sender_id=ASSISTANT_SENDER_ID, type=MessageType.SYSTEM_RESPONSE)
        )
        logger.info(
            "llm suggestion conversation=%s item=%s confidence=%.2f elapsed_ms=%d",
            conversation_id,
            result.item.id if result.item is not None else "-",
            suggestion.confidence,
            (time.perf_counter() - started) * 1000,
        )
        return result

    def process_message_async(self, conversation_id: str, user_id: str, text: str) -> "Future[RankedSuggestion]":
        # A separate pool, so a waiting caller never occupies a provider worker.
        if self._caller_pool is None:
            self._caller_pool = ThreadPoolExecutor(
                max_workers=self._settings.max_workers,
                thread_name_prefix="adrelevance-llm-caller",
            )
        return self._caller_pool.submit(self.process_message, conversation_id, user_id, text)

    def shutdown(self) -> None:
        if self._caller_pool is not None:
            self._caller_pool.shutdown(wait=True)
            self._caller_pool = None
        self._executor.shutdown(wait=False)

    def _call_provider(self, conversation_id, text, history, profile) -> LLMSuggestion:
        timeout = self._settings.llm_timeout_sec
        future = self._executor.submit(self._provider.suggest, text, history, profile)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.warning("llm timeout conversation=%s timeout_sec=%.1f", conversation_id, timeout)
            raise UpstreamError(f"language model did not answer within {timeout:.1f}s") from exc
        except UpstreamError:
            raise
        except Exception as exc:
            logger.warning("llm failure conversation=%s error=%s", conversation_id, exc)
            raise UpstreamError(f"language model request failed: {exc}") from exc
