from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional

from .errors import InvalidInputError


def require_text(value: Optional[str], field_name: str) -> str:
    """Purpose: Validate that a caller-supplied id or message is a non-blank string.
    Inputs/Outputs: Input is the raw value and its field name; output is the value unchanged.
    Side Effects / State: None; pure function.
    Dependencies: Raises InvalidInputError from errors.
    Failure Modes: None, empty, or whitespace-only values raise InvalidInputError.
    If Removed: Empty ids would silently create anonymous sessions and profiles.
    Testing Notes: "" and "   " raise; "abc" is returned as-is (no stripping).
    """
    # Reject missing or blank values before any state is touched.
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field_name} must be a non-empty string")
    return value


def content_hash(text: str) -> str:
    """Stable digest of message text, used to key the suggestion cache."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def extract_json_block(text: str) -> Optional[str]:
    # Outermost braces only; model replies often wrap the object in prose or a code fence.
    if not text:
        return None
    first, last = text.find("{"), text.rfind("}")
    if first < 0 or last <= first:
        return None
    return text[first : last + 1]


def safe_json_loads(text: str) -> Optional[Dict[str, Any]]:
    """Decode the JSON object embedded in a model reply; None when there is no usable object."""
    block = extract_json_block(text)
    if block is None:
        return None
    try:
        decoded = json.loads(block)
    except json.JSONDecodeError:
        return None
    if not isinstance(decoded, dict):
        return None
    return decoded
