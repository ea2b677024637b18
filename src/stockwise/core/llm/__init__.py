"""LLM response helpers shared by the provider gateway."""

from .utils import extract_text_from_response, safe_get_content

__all__ = [
    "extract_text_from_response",
    "safe_get_content",
]
