"""
Utility module for recovering JSON from language model completions.

Models asked to "respond ONLY with JSON" still wrap the object in code fences,
lead with prose, use typographic punctuation or leave trailing commas. Every
generating service runs the raw completion through ``extract_json`` and falls
back to fixed content when it raises.
"""
import re
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Stages, in the order they are applied
_FENCE_OPEN = re.compile(r'^```[A-Za-z0-9_-]*\s*')
_FENCE_CLOSE = re.compile(r'\s*```$')
_CONTROL_CHARS = re.compile(r'[\u0000-\u001F\u007F-\u009F]')
_NON_ASCII = re.compile(r'[^\x00-\x7F]')

_SMART_DOUBLE_QUOTES = '“”'
_SMART_PUNCTUATION = {
    '‘': "'",
    '’': "'",
    '–': '-',
    '—': '-',
    '…': '...',
}

_TRAILING_COMMA = re.compile(r',(\s*[}\]])')
_MISSING_COMMA_OBJECTS = re.compile(r'}(\s*){')
_MISSING_COMMA_ARRAYS = re.compile(r'](\s*)\[')
_EMBEDDED_QUOTES = re.compile(r'"([^"]*)"([^",:}\]]*)"([^",:}\]]*)":')

# A curly quote followed by one of these ends the string it sits in
_STRING_TERMINATORS = ':,}]'


class StructuredResponseError(ValueError):
    """Raised when a completion cannot be coerced into JSON."""

    def __init__(self, message: str, cleaned_text: str = ""):
        super().__init__(message)
        self.cleaned_text = cleaned_text


def _strip_code_fence(text: str) -> str:
    if text.startswith('```'):
        text = _FENCE_OPEN.sub('', text, count=1)
        text = _FENCE_CLOSE.sub('', text, count=1)
    return text


def _trim_to_boundaries(text: str) -> str:
    """Drop prose before the first opener and after the last closer."""
    if text.startswith('['):
        opener, closer = '[', ']'
    else:
        opener, closer = '{', '}'

    start = text.find(opener)
    if start > 0:
        text = text[start:]

    end = text.rfind(closer)
    if 0 < end < len(text) - 1:
        text = text[:end + 1]
    return text


def _closes_string(text: str, index: int) -> bool:
    for char in text[index:]:
        if not char.isspace():
            return char in _STRING_TERMINATORS
    return True


def _normalize_punctuation(text: str) -> str:
    """
    Replace typographic punctuation with ASCII.

    Curly double quotes used as delimiters become plain quotes. Inside a
    string value they become escaped quotes unless they close the string,
    so ``"He said “hi”"`` parses to ``He said "hi"``.
    """
    for smart, plain in _SMART_PUNCTUATION.items():
        text = text.replace(smart, plain)

    if not any(quote in text for quote in _SMART_DOUBLE_QUOTES):
        return text

    out = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == '\\' and in_string:
            out.append(char)
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if char in _SMART_DOUBLE_QUOTES:
            if not in_string:
                in_string = True
                out.append('"')
            elif _closes_string(text, index + 1):
                in_string = False
                out.append('"')
            else:
                out.append('\\"')
            continue
        out.append(char)
    return ''.join(out)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def _repair_syntax(text: str) -> str:
    text = _TRAILING_COMMA.sub(r'\1', text)
    text = _MISSING_COMMA_OBJECTS.sub(r'},\1{', text)
    text = _MISSING_COMMA_ARRAYS.sub(r'],\1[', text)
    # Fragile: only catches a single quoted word inside a key-like segment
    text = _EMBEDDED_QUOTES.sub(r'"\1\\"\2\\"\3":', text)
    return text


def clean_json_text(text: str, strip_non_ascii: bool = False, repair: bool = False) -> str:
    """
    Apply the cleanup stages to a raw completion without parsing it.

    Args:
        text (str): Raw model output
        strip_non_ascii (bool): Delete every non-ASCII code point after normalization
        repair (bool): Apply trailing/missing comma and embedded quote fixes

    Returns:
        str: Cleaned text, ready for ``json.loads``
    """
    if text is None:
        return ''

    cleaned = text.strip()
    cleaned = _strip_code_fence(cleaned)
    cleaned = _trim_to_boundaries(cleaned)
    cleaned = _CONTROL_CHARS.sub('', cleaned)
    cleaned = _normalize_punctuation(cleaned)

    if strip_non_ascii:
        cleaned = _NON_ASCII.sub('', cleaned)

    if repair:
        cleaned = _repair_syntax(cleaned)

    return cleaned


def extract_json(text: str, strip_non_ascii: bool = False, repair: bool = False) -> Any:
    """
    Recover the JSON value from a model completion.

    Args:
        text (str): Raw model output
        strip_non_ascii (bool): Delete non-ASCII characters before parsing
        repair (bool): Apply speculative syntax repairs before parsing

    Returns:
        Any: The parsed value

    Raises:
        StructuredResponseError: If the cleaned text is not valid JSON
    """
    cleaned = clean_json_text(text, strip_non_ascii=strip_non_ascii, repair=repair)
    if not cleaned:
        raise StructuredResponseError("Empty model response", cleaned)

    try:
        return json.loads(cleaned, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parsing failed at position {e.pos}: {e.msg}")
        logger.debug(f"Cleaned content preview: {cleaned[:500]}")
        raise StructuredResponseError(f"Could not parse model response: {e.msg}", cleaned) from e
    except ValueError as e:
        logger.warning(f"JSON parsing failed: {str(e)}")
        raise StructuredResponseError(f"Could not parse model response: {str(e)}", cleaned) from e


def extract_json_or_fallback(text: str, fallback: Any, strip_non_ascii: bool = False,
                             repair: bool = False) -> Any:
    """Return the parsed completion, or ``fallback`` when extraction fails."""
    try:
        return extract_json(text, strip_non_ascii=strip_non_ascii, repair=repair)
    except StructuredResponseError:
        logger.warning("Using fallback content for unparseable model response")
        return fallback
