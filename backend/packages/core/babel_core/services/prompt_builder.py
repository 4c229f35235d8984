"""
Prompt construction for chat-completion translation requests.

The instruction text is load-bearing: the response parser relies on the
model returning the JSON shape requested here, and the HTML rules keep
markup, links and classes intact.
"""

_JSON_FORMAT_WITH_TITLE = """
Return your response in the following JSON format:
{
  "translated_content": "translated HTML content here",
  "translated_title": "translated title here"
}
"""

_JSON_FORMAT = """
Return your response in the following JSON format:
{
  "translated_content": "translated HTML content here"
}
"""

_TITLE_SECTION = """
IMPORTANT: This post is the first post of a topic. Please also translate the topic title.
Topic title: {title}
"""

_TRANSLATION_PROMPT = """Translate the following HTML content to {target_language}.

CRITICAL REQUIREMENTS:
- If the content contains multiple languages, unless it is a very small percentage of the content, all languages must be translated to the {target_language}. Even the translated content has duplicated content, we should still translate all the languages.
- The input is HTML content with links, formatting, and forum-specific elements
- Translate ONLY the text content, NOT the HTML tags or attributes
- Preserve ALL HTML tags exactly as they are (including <a>, <p>, <div>, <span>, etc.)
- Keep ALL href attributes and URLs unchanged
- Maintain ALL CSS classes and IDs
- Preserve ALL line breaks and whitespace structure
- Do NOT modify any HTML structure or attributes
- Do NOT add or remove any HTML tags
- Do NOT change any links or URLs
- Do NOT wrap the output in Markdown code fences (e.g., ``` or ```html)
- Do NOT include document-level wrappers like <html>, <head>, or <body>

The output should be valid HTML with the EXACT same structure as the input, only with translated text content.

If the text is already in {target_language}, return the original HTML unchanged.
{title_section}{json_format}
Requirements for JSON values:
- translated_content MUST be pure HTML (no Markdown code fences like ``` or ```html)
- Do NOT include document wrappers like <html>, <head>, or <body>
- Do NOT add any extra text outside the JSON
- Return ONLY valid JSON, no explanations or additional content

HTML content to translate:
{content}
"""

_TITLE_PROMPT = """Translate the following text to {target_language}.
Return ONLY the translated text, no quotes, no extra words.

Text:
{title}
"""


def build_translation_prompt(content: str, target_language: str, title: str | None = None) -> str:
    """
    Build the body translation prompt.

    Args:
        content: Post HTML to translate.
        target_language: Target language code.
        title: Topic title to translate alongside, if any. When absent the
            title field is left out of the requested JSON shape.

    Returns:
        Prompt text sent as the single user message.
    """
    if title:
        title_section = _TITLE_SECTION.format(title=title)
        json_format = _JSON_FORMAT_WITH_TITLE
    else:
        title_section = ""
        json_format = _JSON_FORMAT

    # Plain concatenation for the user-provided parts: content may contain braces
    head, tail = _TRANSLATION_PROMPT.split("{content}")
    return (
        head.format(
            target_language=target_language,
            title_section=title_section,
            json_format=json_format,
        )
        + content
        + tail
    )


def build_title_prompt(title: str, target_language: str) -> str:
    """Build the minimal title-only fallback prompt."""
    return _TITLE_PROMPT.format(target_language=target_language, title=title)
