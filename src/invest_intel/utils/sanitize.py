"""Text sanitization utilities."""

import re


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Sanitize caller-supplied text fields.

    Removes control characters and truncates to max_length.
    Apply to: lessons recorded when a thesis is closed.

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text or None if input was None
    """
    if text is None:
        return None

    # Remove control characters (including \r, \x00-\x1f, \x7f-\x9f)
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", text)

    # Truncate if needed
    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text.strip()


def first_sentence(text: str) -> str:
    """Text up to the first period, without the period."""
    return text.split(".")[0].strip()
