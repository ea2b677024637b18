"""Utility functions for LLM response handling."""

from typing import Any

from loguru import logger

# Reasoning models served over OpenAI-compatible APIs sometimes leave
# ``content`` empty and put the answer in one of these message fields.
_REASONING_FIELDS = ("reasoning_content", "reasoning")


def safe_get_content(response: Any, default: str = "") -> str:
    """Safely extract text content from an LLM response.

    Guards against empty ``choices`` lists or missing ``message``/``content``
    attributes that can occur with malformed provider responses, and falls
    back to the reasoning fields when ``content`` is blank.
    """
    choices = getattr(response, "choices", None)
    if not choices:
        logger.warning("LLM response has no choices; returning default")
        return default
    message = getattr(choices[0], "message", None)
    if message is None:
        logger.warning("LLM response choice has no message; returning default")
        return default

    content = extract_text_from_response(getattr(message, "content", None))
    if content.strip():
        return content

    for field_name in _REASONING_FIELDS:
        reasoning = getattr(message, field_name, None)
        if isinstance(reasoning, str) and reasoning.strip():
            logger.debug(f"LLM response content empty; using message.{field_name}")
            return reasoning
    return default


def extract_text_from_response(content: Any) -> str:
    """Extract text from a message ``content`` value.

    LiteLLM normalises responses to OpenAI format, so this is usually a
    string, but some providers return a list of content blocks.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for part in content:
            if isinstance(part, str):
                text_parts.append(part)
            elif isinstance(part, dict):
                if part.get("type") in ("thinking", "tool_use", "tool_result"):
                    continue
                if "text" in part:
                    text_parts.append(part["text"])
            elif hasattr(part, "text"):
                text_parts.append(part.text)
        return "".join(text_parts)

    if hasattr(content, "text"):
        return content.text

    return str(content)
