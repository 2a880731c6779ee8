"""LLM boundary for suggestions: one request in, an optional item plus a reply out."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

from .catalog import Item, ItemType
from .errors import UpstreamError
from .gemini_client import GeminiClient
from .prompt_loader import render_prompt
from .session_store import Message, MessageType, UserProfile
from .utils import safe_json_loads

logger = logging.getLogger("adrelevance.llm")

PROMPT_FILE = "ad_suggestion.txt"
HISTORY_LIMIT = 10
LLM_BRAND = "Gemini"


@dataclass(frozen=True)
class LLMSuggestion:
    item: Optional[Item]
    reply: str
    confidence: float

    def is_actionable(self, threshold: float) -> bool:
        return self.item is not None and self.confidence >= threshold


class SuggestionProvider(Protocol):
    def suggest(
        self,
        message: str,
        history: Sequence[Message],
        profile: Optional[UserProfile],
    ) -> LLMSuggestion:
        ...


class GeminiSuggestionProvider:
    """SuggestionProvider backed by a Gemini prompt that answers in JSON."""

    def __init__(self, client: GeminiClient, prompts_dir: Path) -> None:
        """Purpose: Bind the Gemini client and locate the suggestion prompt.
        Inputs/Outputs: Inputs are a configured GeminiClient and the prompts directory.
        Side Effects / State: None; the prompt file is read on each suggest call.
        Dependencies: GeminiClient, PROMPT_FILE under prompts_dir.
        Failure Modes: None at construction; a missing prompt file fails in suggest.
        If Removed: The enhanced engine has no Gemini-backed provider.
        Testing Notes: Pass a stub client and the package prompts directory.
        """
        self._client = client
        self._prompt_path = prompts_dir / PROMPT_FILE

    def suggest(
        self,
        message: str,
        history: Sequence[Message],
        profile: Optional[UserProfile],
    ) -> LLMSuggestion:
        """Purpose: Ask Gemini for a reply and an optional item for the current message.
        Inputs/Outputs: Inputs are the message, prior history, and the profile; output is an
            LLMSuggestion.
        Side Effects / State: One network call through GeminiClient.
        Dependencies: render_prompt, GeminiClient.generate_text, parse_suggestion.
        Failure Modes: Output without a JSON object or with a non-numeric confidence raises
            UpstreamError; SDK exceptions propagate to the caller.
        If Removed: The LLM-enhanced engine has no default provider.
        Testing Notes: Swap the client for a stub returning canned JSON text.
        """
        # Render, call, and parse; parsing is separate so it can be tested offline.
        prompt = render_prompt(
            self._prompt_path,
            {"CONTEXT": build_context(history, profile), "MESSAGE": message},
        )
        raw = self._client.generate_text(prompt)
        data = safe_json_loads(raw)
        if data is None:
            raise UpstreamError("language model returned no JSON object")
        return parse_suggestion(data)


def build_context(history: Sequence[Message], profile: Optional[UserProfile]) -> str:
    lines = []
    if profile is not None:
        lines.append("User profile:")
        lines.append(f"- Interests: {', '.join(profile.interests) or 'unknown'}")
        mood = profile.current_mood.value if profile.current_mood is not None else "unknown"
        lines.append(f"- Current mood: {mood}")
        lines.append(f"- Blocked categories: {', '.join(profile.blocked_categories) or 'none'}")
        lines.append("")
    recent = list(history)[-HISTORY_LIMIT:]
    if recent:
        lines.append("Recent conversation:")
        for message in recent:
            role = "User" if message.type == MessageType.USER_MESSAGE else "Assistant"
            lines.append(f"{role}: {message.content}")
    return "\n".join(lines)


def parse_suggestion(data: Dict[str, Any]) -> LLMSuggestion:
    """Purpose: Turn the model's JSON object into an LLMSuggestion.
    Inputs/Outputs: Input is the decoded object; output is an LLMSuggestion whose item is
        built from "ad_suggestion" when present.
    Side Effects / State: None; a fresh llm_<hex> id is generated per suggested item.
    Dependencies: Item, ItemType.
    Failure Modes: Non-numeric confidence raises UpstreamError; confidence is clamped to [0, 1].
    If Removed: Model output cannot be consumed.
    Testing Notes: An object without "ad_suggestion" yields item None and keeps the reply.
    """
    # The reply is the conversational text; the item template adds a link when a url is given.
    reply = str(data.get("conversational_response") or data.get("response") or "").strip()
    try:
        confidence = float(data.get("confidence") or 0.0)
    except (TypeError, ValueError) as exc:
        raise UpstreamError(f"language model returned a non-numeric confidence: {exc}") from exc
    confidence = min(1.0, max(0.0, confidence))

    ad = data.get("ad_suggestion")
    if not isinstance(ad, dict) or not ad.get("title"):
        return LLMSuggestion(item=None, reply=reply, confidence=confidence)

    call_to_action = str(ad.get("call_to_action") or "Learn More")
    url = str(ad.get("url") or "")
    template = reply
    if url:
        template = f"{reply} <a href='{url}' target='_blank'>{call_to_action}</a>".strip()
    category = str(ad.get("category") or "other").lower()
    item = Item(
        id=f"llm_{uuid.uuid4().hex[:12]}",
        title=str(ad["title"]),
        description=str(ad.get("description") or ""),
        brand=LLM_BRAND,
        call_to_action=call_to_action,
        categories=(category,),
        template=template,
        item_type=ItemType.RECOMMENDATION,
        url=url,
    )
    logger.debug("llm item=%s category=%s confidence=%.2f", item.id, category, confidence)
    return LLMSuggestion(item=item, reply=reply, confidence=confidence)
