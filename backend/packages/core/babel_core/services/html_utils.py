"""HTML post-processing for translated content.

Models occasionally ignore the output rules and wrap the translated HTML
in Markdown code fences or a full ``<html><body>`` document. Both are
removed here; anything else is returned untouched.
"""

import re

from bs4 import BeautifulSoup

# Opening fence with an optional language tag, and the closing fence
_LEADING_FENCE_RE = re.compile(r"\A\s*```[a-zA-Z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"\r?\n?[ \t]*```\s*\Z")

_DOCUMENT_TAG_RE = re.compile(r"<\s*(html|head|body)[\s>/]", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    """Remove a Markdown code fence wrapped around the whole content."""
    if not content.lstrip().startswith("```"):
        return content
    stripped = _LEADING_FENCE_RE.sub("", content, count=1)
    return _TRAILING_FENCE_RE.sub("", stripped, count=1)


def strip_document_wrappers(content: str) -> str:
    """
    Remove ``<html>``, ``<head>`` and ``<body>`` wrappers.

    The inner markup of ``<body>`` (or of ``<html>`` without its
    ``<head>`` when there is no body) is kept as-is.
    """
    if not _DOCUMENT_TAG_RE.search(content):
        return content

    soup = BeautifulSoup(content, "html.parser")
    for head in soup.find_all("head"):
        head.decompose()

    container = soup.find("body") or soup.find("html")
    if container is None:
        return content
    return "".join(str(child) for child in container.contents).strip()


def clean_translated_html(content: str) -> str:
    """Apply all output hygiene rules to translated HTML."""
    cleaned = strip_code_fences(content.strip())
    return strip_document_wrappers(cleaned).strip()
