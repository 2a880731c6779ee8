from __future__ import annotations

import logging
from typing import Dict, Optional

import google.generativeai as genai
from google.generativeai import types as genai_types

from .config import Settings

logger = logging.getLogger("adrelevance.llm")

# Block only high-probability harms in these categories.
BLOCKED_CATEGORIES = (
    genai_types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    genai_types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    genai_types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    genai_types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)
SAFETY_SETTINGS = [
    {"category": category, "threshold": genai_types.HarmBlockThreshold.BLOCK_ONLY_HIGH}
    for category in BLOCKED_CATEGORIES
]


class GeminiClient:
    """Thin wrapper around the Gemini SDK with per-model caching."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK for the suggestion provider.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Sets the SDK's global API key and caches the default model.
        Dependencies: google.generativeai and Settings.gemini_* fields.
        Failure Modes: Raises ValueError if the API key or model name is missing.
        If Removed: The LLM-enhanced engine has no backend to call.
        Testing Notes: Settings without a key raise ValueError before any network use.
        """
        # Configure the key once and warm the default model.
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self._default_model = _normalize_model_name(settings.gemini_model)
        if not self._default_model:
            raise ValueError("Gemini model name is required")
        self._request_timeout = settings.llm_timeout_sec
        genai.configure(api_key=settings.gemini_api_key)
        self._models: Dict[str, genai.GenerativeModel] = {
            self._default_model: genai.GenerativeModel(self._default_model)
        }

    @property
    def default_model(self) -> str:
        return self._default_model

    def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
    ) -> str:
        """Send one prompt and return the stripped text of the reply ("" when the SDK gives none)."""
        model_name = _normalize_model_name(model) if model else self._default_model
        if model_name not in self._models:
            self._models[model_name] = genai.GenerativeModel(model_name)
        logger.debug("gemini request model=%s prompt_chars=%d", model_name, len(prompt))
        response = self._models[model_name].generate_content(
            prompt,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            },
            safety_settings=SAFETY_SETTINGS,
            request_options={"timeout": self._request_timeout},
        )
        text: Optional[str] = getattr(response, "text", None)
        return (text or "").strip()


def _normalize_model_name(name: Optional[str]) -> str:
    # "models/gemini-2.5-flash" and " gemini-2.5-flash " both become "gemini-2.5-flash".
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
