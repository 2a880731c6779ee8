from __future__ import annotations

import random
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from .catalog import Item
from .session_store import Session
from .vocabulary import (
    CONVERSATION_MOOD_EMOJI,
    DEFAULT_EMOJI,
    USER_MOOD_EMOJI,
    ConversationMood,
    UserMood,
)

MOOD_EMOJI_PLACEHOLDER = "{mood_emoji}"
NO_ITEM_REPLY = "Check out this amazing offer!"

MOOD_TEMPLATES: Mapping[ConversationMood, Tuple[str, ...]] = MappingProxyType(
    {
        ConversationMood.POSITIVE: (
            "You seem to be in a great mood! Perfect time to check out {brand}! 😊",
            "Your positive energy is contagious! You'll love {title}! ✨",
            "Love your vibe! {brand} has something amazing for you! 🌟",
        ),
        ConversationMood.EXCITED: (
            "Your excitement is infectious! Wait till you see {title}! 🎉",
            "I can feel your energy! {brand} is going to blow your mind! 🚀",
            "You're pumped up! Perfect timing for {title}! 💪",
        ),
        ConversationMood.CURIOUS: (
            "I sense your curiosity! Let me tell you about {title}... 🤔",
            "Your inquisitive mind will love discovering {brand}! 🔍",
            "Since you're curious, you should definitely check out {title}! 💡",
        ),
        ConversationMood.HUMOROUS: (
            "You're hilarious! {brand} has a sense of humor too! 😄",
            "Love your jokes! {title} is no joke though - it's amazing! 😂",
            "Your wit is sharp! {brand} is pretty sharp too! 😎",
        ),
        ConversationMood.FRUSTRATED: (
            "I hear you're frustrated. Maybe {title} can help turn things around? 💪",
            "When things get tough, {brand} has your back! 💪",
            "Don't let frustration get you down! {title} might be the solution! ✨",
        ),
    }
)

INTENT_TEMPLATES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "shopping": (
            "Since you're in shopping mode, you have to see {title}! 🛍️",
            "Shopping spree? Don't forget to check out {brand}! 💳",
            "Your shopping list needs {title}! 📝",
        ),
        "research": (
            "Doing some research? {brand} has all the details you need! 🔍",
            "Research mode activated! {title} is worth investigating! 📊",
            "Since you're researching, {brand} should be on your list! 📋",
        ),
        "entertainment": (
            "Looking for entertainment? {title} is pure fun! 🎮",
            "Entertainment time! {brand} knows how to keep you entertained! 🎬",
            "Fun seeker alert! {title} is your next entertainment fix! 🎉",
        ),
        "travel": (
            "Planning a trip? {brand} has amazing travel deals! ✈️",
            "Wanderlust calling? {title} is your travel companion! 🌍",
            "Adventure awaits with {brand}! 🗺️",
        ),
        "food": (
            "Foodie alert! {title} is a culinary delight! 🍽️",
            "Hungry for something new? {brand} has you covered! 🍕",
            "Your taste buds will thank you for {title}! 👨‍🍳",
        ),
    }
)

DEFAULT_TEMPLATES: Tuple[str, ...] = (
    "Hey! I think you might love {brand} - {title}!",
    "Speaking of {category}, have you checked out {brand}?",
    "I came across {title} and thought of you!",
    "You know what's awesome? {title} from {brand}!",
    "Just discovered {brand} and it's pretty amazing!",
)

AFFIRMATIVE_TERMS = ("yes", "love", "great")
NEGATIVE_TERMS = ("no", "not", "don't")
HESITANT_TERMS = ("maybe", "think")

NEGATIVE_FOLLOW_UP = "No worries! Maybe next time. What else are you interested in? 🤔"
GENERIC_FOLLOW_UP = "Interesting! Tell me more about what you're looking for! 💬"


class ResponseComposer:
    """Turns a chosen item plus session signals into a conversational reply."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        mood_templates: Optional[Mapping[ConversationMood, Sequence[str]]] = None,
        intent_templates: Optional[Mapping[str, Sequence[str]]] = None,
        default_templates: Optional[Sequence[str]] = None,
    ) -> None:
        """Purpose: Configure template tables and the randomness source.
        Inputs/Outputs: Inputs are an optional Random and optional template overrides.
        Side Effects / State: Stores the Random; template tables are read-only afterwards.
        Dependencies: Module-level template tables as defaults.
        Failure Modes: None.
        If Removed: Suggestions have no reply text.
        Testing Notes: Pass random.Random(seed) for reproducible template choice.
        """
        # A seeded Random makes template choice reproducible in tests.
        self._rng = rng or random.Random()
        self._mood_templates = MOOD_TEMPLATES if mood_templates is None else mood_templates
        self._intent_templates = INTENT_TEMPLATES if intent_templates is None else intent_templates
        self._default_templates = tuple(DEFAULT_TEMPLATES if default_templates is None else default_templates)

    def compose(self, item: Optional[Item], session: Optional[Session]) -> str:
        """Purpose: Produce the reply for a chosen item.
        Inputs/Outputs: Inputs are the item and its session; output is reply text.
        Side Effects / State: Consumes randomness from the injected Random.
        Dependencies: personalize_template, _compose_for_mood, _compose_for_intent, format_template.
        Failure Modes: Missing item or session returns a generic offer line.
        If Removed: The engine cannot turn a ranking into a message.
        Testing Notes: Force each branch: item template present; no template with a templated
            mood; neutral mood with a templated intent; neutral mood and no templated intents.
        """
        # Fallback chain: item template, mood templates, intent templates, generic templates.
        if item is None or session is None:
            return NO_ITEM_REPLY
        if item.template and item.template.strip():
            profile_mood = session.profile.current_mood if session.profile is not None else None
            return personalize_template(item.template, profile_mood)
        response = self._compose_for_mood(item, session)
        if response is not None:
            return response
        response = self._compose_for_intent(item, session)
        if response is not None:
            return response
        template = self._rng.choice(self._default_templates)
        return format_template(template, item, session.mood)

    def compose_follow_up(self, item: Item, reply_text: Optional[str]) -> str:
        """Purpose: Answer the user's reaction to a suggestion.
        Inputs/Outputs: Inputs are the suggested item and the user's reply; output is text.
        Side Effects / State: None.
        Dependencies: classify_reply.
        Failure Modes: None reply asks for the user's opinion of the item.
        If Removed: processAdResponse cannot answer follow-ups.
        Testing Notes: "No thanks, not interested" -> negative sentence without a call to action.
        """
        # Bucket order is affirmative, negative, hesitant, generic.
        if reply_text is None:
            return f"What do you think about {item.title}?"
        bucket = classify_reply(reply_text)
        if bucket == "affirmative":
            return f"Awesome! I knew you'd love {item.brand}! {item.call_to_action} 🎉"
        if bucket == "negative":
            return NEGATIVE_FOLLOW_UP
        if bucket == "hesitant":
            return f"Take your time! {item.title} will be here when you're ready! 😊"
        return GENERIC_FOLLOW_UP

    def _compose_for_mood(self, item: Item, session: Session) -> Optional[str]:
        templates = self._mood_templates.get(session.mood)
        if not templates:
            return None
        return format_template(self._rng.choice(list(templates)), item, session.mood)

    def _compose_for_intent(self, item: Item, session: Session) -> Optional[str]:
        for intent in session.intents:
            templates = self._intent_templates.get(intent)
            if templates:
                return format_template(self._rng.choice(list(templates)), item, session.mood)
        return None


def classify_reply(reply_text: str) -> str:
    lowered = reply_text.lower()
    if any(term in lowered for term in AFFIRMATIVE_TERMS):
        return "affirmative"
    if any(term in lowered for term in NEGATIVE_TERMS):
        return "negative"
    if any(term in lowered for term in HESITANT_TERMS):
        return "hesitant"
    return "generic"


def personalize_template(template: str, profile_mood: Optional[UserMood]) -> str:
    """Fill the mood emoji placeholder and make sure the line ends on an exclamation."""
    personalized = template
    if profile_mood is not None:
        personalized = personalized.replace(MOOD_EMOJI_PLACEHOLDER, USER_MOOD_EMOJI.get(profile_mood, DEFAULT_EMOJI))
    if "!" not in personalized and "?" not in personalized:
        personalized += "!"
    return personalized


def format_template(template: str, item: Item, mood: Optional[ConversationMood]) -> str:
    response = (
        template.replace("{brand}", item.brand)
        .replace("{title}", item.title)
        .replace("{description}", item.description)
    )
    if item.categories:
        response = response.replace("{category}", item.categories[0])
    if mood is not None and "!" not in response:
        response += " " + CONVERSATION_MOOD_EMOJI.get(mood, DEFAULT_EMOJI)
    return response
