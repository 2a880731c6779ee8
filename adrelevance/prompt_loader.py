from __future__ import annotations

from pathlib import Path
from typing import Mapping


def load_prompt(prompt_path: Path) -> str:
    """Read a prompt template as UTF-8, dropping a leading BOM; undecodable bytes are ignored."""
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        return prompt_path.read_bytes().decode("utf-8", errors="ignore").lstrip("\ufeff")


def render_prompt(prompt_path: Path, values: Mapping[str, str]) -> str:
    """Purpose: Load a template and fill its <<NAME>> placeholders.
    Inputs/Outputs: Inputs are the template path and a NAME -> text mapping; output is the prompt.
    Side Effects / State: Reads the filesystem.
    Dependencies: load_prompt.
    Failure Modes: A missing file raises FileNotFoundError; unknown placeholders stay verbatim.
    If Removed: The Gemini suggester has no prompt to send.
    Testing Notes: {"MESSAGE": "hi"} replaces every <<MESSAGE>> occurrence.
    """
    # Plain replacement; user text may contain braces, so str.format is unsafe here.
    prompt = load_prompt(prompt_path)
    for name, value in values.items():
        prompt = prompt.replace(f"<<{name}>>", value)
    return prompt
