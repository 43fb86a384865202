"""Text substitutions for normalizing event and venue names."""
import re
from dataclasses import replace
from typing import Dict, List, Optional, Pattern, Tuple

from config import TEXT_SUBSTITUTIONS
from processor.models import NormalizedEvent


def _compile(substitutions: List[Dict[str, str]]) -> List[Tuple[Pattern, str]]:
    compiled = []
    for item in substitutions:
        pattern = item['pattern']
        escaped = re.escape(pattern)
        # Whole-word match only when the pattern starts and ends with a letter
        if pattern[:1].isalpha() and pattern[-1:].isalpha():
            escaped = rf'\b{escaped}\b'
        compiled.append((re.compile(escaped, re.IGNORECASE), item['replacement']))
    return compiled


_SUBSTITUTIONS = _compile(TEXT_SUBSTITUTIONS)


def apply_text_substitutions(text: Optional[str]) -> Optional[str]:
    """
    Apply the configured substitutions to a string.

    Matching is case-insensitive; the replacement keeps its own casing.
    None and empty strings are returned unchanged.

    Args:
        text: Text to normalize

    Returns:
        Text with substitutions applied
    """
    if not text or not isinstance(text, str):
        return text

    result = text
    for regex, replacement in _SUBSTITUTIONS:
        result = regex.sub(lambda _match: replacement, result)
    return result


def apply_event_substitutions(event: Optional[NormalizedEvent]) -> Optional[NormalizedEvent]:
    """Return a copy of the event with name, venue and description substituted."""
    if event is None:
        return event

    return replace(
        event,
        name=apply_text_substitutions(event.name),
        venue=apply_text_substitutions(event.venue),
        description=apply_text_substitutions(event.description),
    )
