"""
LLM Response Parsing Utilities Module

Provides shared parsing functionality for LLM responses:
- Removing code block formatting
- JSON parsing with automatic recovery
- Tag suggestion extraction and filtering
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List, Optional, Set, Tuple


logger = logging.getLogger(__name__)


class LLMParseError(RuntimeError):
    """LLM response parsing error"""
    pass


def strip_code_fences(text: str) -> str:
    """
    Remove various code block formats.

    Handles:
    - ```json\\n...\\n```
    - ```\\n...\\n```
    - `...`
    - Surrounding whitespace

    Args:
        text: Original text

    Returns:
        Text after removing code blocks
    """
    t = text.strip()

    # Handle ```...``` format (optionally with language identifier)
    if t.startswith("```"):
        lines = t.splitlines()
        if len(lines) >= 2:
            end_idx = len(lines)
            for i in range(len(lines) - 1, 0, -1):
                if lines[i].strip().startswith("```"):
                    end_idx = i
                    break
            return "\n".join(lines[1:end_idx]).strip()

    # Handle single backticks `{...}`
    if t.startswith("`") and t.endswith("`") and not t.startswith("```"):
        return t[1:-1].strip()

    return t


def try_parse_json(
    text: str,
    raise_on_error: bool = True,
) -> Optional[dict]:
    """
    Attempt to parse JSON with multiple recovery strategies.

    Parsing sequence:
    1. Direct parse
    2. Parse after stripping code blocks
    3. Regex extraction of JSON object
    4. Repair common formatting issues (e.g., trailing commas)

    Args:
        text: Text to parse
        raise_on_error: Whether to raise an exception on failure

    Returns:
        Parsed value, or None on failure when raise_on_error is False

    Raises:
        LLMParseError: When raise_on_error=True and parsing fails
    """
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    raw = strip_code_fences(text)
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    match = re.search(r'\{[\s\S]*\}', raw)
    if match:
        extracted = match.group()
        try:
            return json.loads(extracted)
        except json.JSONDecodeError:
            fixed = re.sub(r',(\s*[}\]])', r'\1', extracted)
            try:
                return json.loads(fixed)
            except json.JSONDecodeError:
                pass

    logger.warning("LLM returned unparseable content: %s", raw[:200])
    if raise_on_error:
        raise LLMParseError(f"LLM returned non-JSON content: {raw[:200]}")
    return None


def parse_tag_suggestion(content: str) -> Tuple[List[str], str]:
    """
    Extract `{tags, reasoning}` from a suggestion response.

    Args:
        content: LLM response content

    Returns:
        (tags, reasoning); tags keep the model's order, reasoning defaults to ""

    Raises:
        LLMParseError: If the content is not JSON or has no tags array
    """
    data = try_parse_json(content)
    if not isinstance(data, dict):
        raise LLMParseError(f"Expected a JSON object, got: {str(data)[:200]}")

    tags = data.get("tags")
    if not isinstance(tags, list):
        raise LLMParseError("Response is missing the 'tags' array")

    reasoning = data.get("reasoning", "")
    if not isinstance(reasoning, str):
        reasoning = ""

    cleaned = []
    for tag in tags:
        if isinstance(tag, str):
            tag = tag.strip()
            if tag:
                cleaned.append(tag)

    return cleaned, reasoning


def filter_new_tags(
    suggested: Iterable[str],
    current: Iterable[str],
    allowed: Optional[Set[str]] = None,
) -> List[str]:
    """
    Deduplicate suggestions and drop tags the item already carries.

    Order of first occurrence is preserved. When `allowed` is given, tags
    outside it are dropped too. Running the filter on its own output is a no-op.

    Args:
        suggested: Tags proposed by the model
        current: Tags already on the item
        allowed: Optional vocabulary restriction

    Returns:
        Filtered tag list
    """
    existing = set(current)
    seen: Set[str] = set()
    result: List[str] = []
    for tag in suggested:
        if tag in seen or tag in existing:
            continue
        if allowed is not None and tag not in allowed:
            continue
        seen.add(tag)
        result.append(tag)
    return result
