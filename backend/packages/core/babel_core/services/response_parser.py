"""
Chat-completion response parsing.

Turns the raw provider JSON into a ParsedTranslation, recovering the
payload from model output that wraps, truncates or decorates the JSON it
was asked for. Raw text is never used as a translation on its own.
"""

import json
import re
from typing import Any

from babel_core import get_logger
from babel_core.schemas import (
    DEFAULT_CONFIDENCE,
    DEFAULT_SOURCE_LANGUAGE,
    ParsedTranslation,
    TranslationErrorKind,
    TranslationFailure,
)

logger = get_logger(__name__)

CONTENT_KEY = "translated_content"
TITLE_KEY = "translated_title"

# Value of "translated_content" up to its closing quote, or to the end of a
# truncated document when the closing quote never arrived
_CONTENT_VALUE_RE = re.compile(r'"translated_content"\s*:\s*"((?:[^"\\]|\\.)*)', re.DOTALL)

_SIMPLE_UNESCAPES = {'\\"': '"', "\\n": "\n", "\\t": "\t", "\\/": "/", "\\\\": "\\"}
_SIMPLE_ESCAPE_RE = re.compile(r'\\["nt/\\]')

UNKNOWN_API_ERROR = "Unknown API error"


def _parse_error(message: str) -> TranslationFailure:
    return TranslationFailure(kind=TranslationErrorKind.PARSE_ERROR, message=message)


def _from_object(parsed: Any) -> tuple[str, str | None] | None:
    if not isinstance(parsed, dict):
        return None
    content = parsed.get(CONTENT_KEY)
    if not isinstance(content, str) or not content.strip():
        return None
    title = parsed.get(TITLE_KEY)
    return content, title if isinstance(title, str) else None


def _first_balanced_object(text: str) -> str | None:
    # Braces inside string values are counted too
    depth = 0
    for index, char in enumerate(text):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[: index + 1]
    return None


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return _SIMPLE_ESCAPE_RE.sub(lambda m: _SIMPLE_UNESCAPES[m.group(0)], value)


def extract_translation(content: str) -> tuple[str, str | None] | None:
    """
    Extract ``(translated_text, translated_title)`` from model output.

    Strategies, first success wins:

    1. Parse the whole content as a JSON object.
    2. Parse the first balanced ``{...}`` substring.
    3. Regex-extract the ``translated_content`` string value from an
       incomplete document (no title in this case).

    Returns:
        The extracted pair, or None when nothing usable was found.
    """
    try:
        extracted = _from_object(json.loads(content))
        if extracted:
            return extracted
    except json.JSONDecodeError:
        pass

    start = content.find("{")
    if start == -1:
        return None
    json_part = content[start:]

    candidate = _first_balanced_object(json_part)
    if candidate:
        try:
            extracted = _from_object(json.loads(candidate))
            if extracted:
                logger.info("Parsed translation JSON using brace counting")
                return extracted
        except json.JSONDecodeError as e:
            logger.bind(error=str(e)).warning("Embedded translation JSON failed to parse")

    if f'"{CONTENT_KEY}"' in json_part:
        logger.warning("Translation JSON appears incomplete, attempting manual extraction")
        match = _CONTENT_VALUE_RE.search(json_part)
        if match:
            text = _unescape(match.group(1))
            if text.strip():
                return text, None

    return None


def parse_chat_completion(body: Any) -> ParsedTranslation | TranslationFailure:
    """
    Parse a successful chat-completion response body.

    Args:
        body: Decoded JSON body of a 2xx provider response.

    Returns:
        ParsedTranslation, or a parse_error TranslationFailure.
    """
    choices = body.get("choices") if isinstance(body, dict) else None
    if not choices:
        return _parse_error("Invalid response format")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        return _parse_error("No translation in response")

    extracted = extract_translation(content.strip())
    if extracted is None:
        return _parse_error("Failed to parse JSON response")

    translated_text, translated_title = extracted
    usage = body.get("usage") or {}
    return ParsedTranslation(
        translated_text=translated_text,
        translated_title=translated_title,
        source_language=DEFAULT_SOURCE_LANGUAGE,
        confidence=DEFAULT_CONFIDENCE,
        model=body.get("model"),
        tokens_used=usage.get("total_tokens") if isinstance(usage, dict) else None,
    )


def extract_error_message(raw_body: str) -> str:
    """
    Extract a human-readable message from a provider error body.

    Tries ``{"error": {"message": ...}}``, ``{"message": ...}``,
    ``{"error": "..."}`` and finally the raw text.
    """
    try:
        parsed = json.loads(raw_body) if raw_body else None
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, dict):
        error = parsed.get("error")
        nested = error.get("message") if isinstance(error, dict) else None
        message = nested or parsed.get("message") or error
        if message:
            return message if isinstance(message, str) else json.dumps(message)
        return UNKNOWN_API_ERROR

    return raw_body.strip() or UNKNOWN_API_ERROR
