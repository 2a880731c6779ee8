from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .vocabulary import ConversationMood, UserMood

logger = logging.getLogger("adrelevance.sessions")


class MessageType(str, Enum):
    USER_MESSAGE = "user_message"
    SYSTEM_RESPONSE = "system_response"


class SessionState(str, Enum):
    """Per-session lifecycle: NEW -> ACTIVE -> ANALYZED -> ACTIVE on the next message."""
    NEW = "new"
    ACTIVE = "active"
    ANALYZED = "analyzed"


@dataclass(frozen=True)
class Message:
    """Immutable chat message owned by exactly one session."""
    content: str
    sender_id: str
    type: MessageType
    timestamp: float = field(default_factory=time.time)


@dataclass
class UserProfile:
    """Per-user preferences, mood, and interaction counters."""
    user_id: str
    interests: List[str] = field(default_factory=list)
    blocked_categories: List[str] = field(default_factory=list)
    current_mood: Optional[UserMood] = None
    interaction_counts: Dict[str, int] = field(default_factory=dict)
    suggestions_enabled: bool = True

    def interaction_count(self, item_id: str) -> int:
        return self.interaction_counts.get(item_id, 0)


@dataclass
class Session:
    """Conversation context: append-only message history plus the latest derived signals."""
    conversation_id: str
    user_id: str
    profile: Optional[UserProfile] = None
    mood: ConversationMood = ConversationMood.NEUTRAL
    intents: List[str] = field(default_factory=list)
    topic_weights: Dict[str, float] = field(default_factory=dict)
    state: SessionState = SessionState.NEW
    last_activity: float = field(default_factory=time.time)
    _messages: List[Message] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_message(self, message: Message) -> None:
        """Append a message and mark the session's signals as stale."""
        with self._lock:
            self._messages.append(message)
            self.last_activity = message.timestamp
            self.state = SessionState.ACTIVE

    def apply_signals(
        self, mood: ConversationMood, intents: Iterable[str], topic_weights: Dict[str, float]
    ) -> None:
        # Signals describe only the latest analysis pass; earlier values are discarded.
        with self._lock:
            self.mood = mood
            self.intents = list(intents)
            self.topic_weights = dict(topic_weights)
            self.state = SessionState.ANALYZED

    @property
    def messages(self) -> Tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def recent_messages(self, count: int) -> Tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages[-count:]) if count > 0 else ()

    @property
    def message_count(self) -> int:
        with self._lock:
            return len(self._messages)


class SessionStore:
    """In-memory owner of conversation sessions and user profiles."""

    def __init__(self) -> None:
        """Purpose: Initialize the two keyed maps and the lock guarding them.
        Inputs/Outputs: No inputs; no return value.
        Side Effects / State: Creates empty session and profile maps.
        Dependencies: threading.RLock; Session and UserProfile dataclasses.
        Failure Modes: None.
        If Removed: The engine has nowhere to keep conversation history or profiles.
        Testing Notes: A fresh store reports zero sessions and zero profiles.
        """
        # One re-entrant lock so session creation can create the owning profile atomically.
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}
        self._profiles: Dict[str, UserProfile] = {}

    def get_or_create_session(self, conversation_id: str, user_id: str) -> Session:
        """Purpose: Return the session for a conversation, creating it on first reference.
        Inputs/Outputs: Inputs are conversation_id and user_id; output is the Session.
        Side Effects / State: May insert a new Session and a new UserProfile.
        Dependencies: Uses get_or_create_profile under the same lock.
        Failure Modes: None; ids are validated by the engine.
        If Removed: Concurrent first messages could create divergent sessions.
        Testing Notes: Call from many threads with one id; every caller gets the same object.
        """
        # Atomic get-or-insert: the check and the insert happen under one lock hold.
        with self._lock:
            session = self._sessions.get(conversation_id)
            if session is not None:
                return session
            session = Session(
                conversation_id=conversation_id,
                user_id=user_id,
                profile=self.get_or_create_profile(user_id),
            )
            self._sessions[conversation_id] = session
        logger.info("session created conversation=%s user=%s", conversation_id, user_id)
        return session

    def get_session(self, conversation_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(conversation_id)

    def clear_session(self, conversation_id: str) -> bool:
        """Remove a session entirely; returns False when it did not exist."""
        with self._lock:
            removed = self._sessions.pop(conversation_id, None)
        if removed is not None:
            logger.info("session cleared conversation=%s", conversation_id)
        return removed is not None

    def get_or_create_profile(self, user_id: str) -> UserProfile:
        """Purpose: Return the profile for a user, creating an empty one lazily.
        Inputs/Outputs: Input is user_id; output is the UserProfile.
        Side Effects / State: May insert a new UserProfile.
        Dependencies: None beyond the profile map.
        Failure Modes: None.
        If Removed: Preferences and interaction counts have no owner.
        Testing Notes: Two calls with the same id return the identical object.
        """
        # Same get-or-insert discipline as sessions.
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is not None:
                return profile
            profile = UserProfile(user_id=user_id)
            self._profiles[user_id] = profile
        logger.info("profile created user=%s", user_id)
        return profile

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._profiles.get(user_id)

    def update_profile(self, user_id: str, profile: UserProfile) -> None:
        """Replace the stored profile; holders of the old reference keep a stale copy."""
        with self._lock:
            self._profiles[user_id] = profile
            for session in self._sessions.values():
                if session.user_id == user_id:
                    session.profile = profile
        logger.info("profile replaced user=%s", user_id)

    def replace_preferences(
        self,
        user_id: str,
        interests: Optional[Iterable[str]] = None,
        blocked_categories: Optional[Iterable[str]] = None,
        suggestions_enabled: Optional[bool] = None,
    ) -> UserProfile:
        """Purpose: Overwrite a profile's interests/blocked categories wholesale.
        Inputs/Outputs: Inputs are user_id and optional replacement lists/flag; returns the
            new profile. None leaves the corresponding field untouched.
        Side Effects / State: Builds a fresh UserProfile and swaps it in via update_profile.
        Dependencies: get_or_create_profile and update_profile under one lock hold.
        Failure Modes: None.
        If Removed: Preference updates would race with interaction recording.
        Testing Notes: Interaction counts survive; old interests do not (no merge).
        """
        # Copy-on-write so readers never see a half-updated preference set.
        with self._lock:
            current = self.get_or_create_profile(user_id)
            updated = UserProfile(
                user_id=user_id,
                interests=list(interests) if interests is not None else list(current.interests),
                blocked_categories=(
                    list(blocked_categories)
                    if blocked_categories is not None
                    else list(current.blocked_categories)
                ),
                current_mood=current.current_mood,
                interaction_counts=dict(current.interaction_counts),
                suggestions_enabled=(
                    suggestions_enabled if suggestions_enabled is not None else current.suggestions_enabled
                ),
            )
            self.update_profile(user_id, updated)
        return updated

    def record_interaction(self, user_id: str, item_id: str) -> int:
        """Increment the interaction counter for (user, item); returns the new count."""
        with self._lock:
            profile = self.get_or_create_profile(user_id)
            count = profile.interaction_counts.get(item_id, 0) + 1
            profile.interaction_counts[item_id] = count
        logger.debug("interaction recorded user=%s item=%s count=%d", user_id, item_id, count)
        return count

    def learn_from_signals(self, user_id: str, mood: Optional[UserMood], intents: Iterable[str]) -> None:
        """Fold a turn's mood and intents into the owning profile."""
        with self._lock:
            profile = self.get_or_create_profile(user_id)
            if mood is not None:
                profile.current_mood = mood
            for intent in intents:
                if intent not in profile.interests:
                    profile.interests.append(intent)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def profile_count(self) -> int:
        with self._lock:
            return len(self._profiles)
