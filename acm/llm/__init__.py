"""LLM Client Package"""

from acm.llm.base import LLMClient, LLMResult, ModelResponse, RawResponse, StructuredResponse, parse_response
from acm.llm.client import ChatClient
from acm.llm.schema import validate_fields


def get_client(base_url: str, api_key: str, timeout: int | None = None) -> LLMClient:
    """Get the client for an OpenAI-compatible endpoint."""
    return ChatClient(base_url=base_url, api_key=api_key, timeout=timeout)


__all__ = [
    "LLMClient",
    "LLMResult",
    "ModelResponse",
    "RawResponse",
    "StructuredResponse",
    "ChatClient",
    "get_client",
    "parse_response",
    "validate_fields",
]
