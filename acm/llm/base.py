"""LLM Base Classes and Response Parsing"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union

from acm.errors import SchemaError
from acm.llm.schema import validate_fields

# Models sometimes wrap JSON in a Markdown code fence despite response_format
_FENCE_RE = re.compile(r'^\s*```[\w-]*\s*\n(?P<body>.*?)\n\s*```\s*$', re.DOTALL)


@dataclass(frozen=True)
class StructuredResponse:
    """A reply that was parsed as JSON and checked against the schema."""
    values: dict = field(default_factory=dict)

    def fields(self) -> dict:
        return dict(self.values)


@dataclass(frozen=True)
class RawResponse:
    """A plain-text reply, used unmodified as the description."""
    text: str

    def fields(self) -> dict:
        return {"description": self.text}


ModelResponse = Union[StructuredResponse, RawResponse]


@dataclass
class LLMResult:
    """Everything one request produced: a parsed candidate per choice."""
    candidates: list[ModelResponse]
    model: str = ""
    tokens_used: int = 0


def parse_response(content: str, schema: dict | None = None) -> ModelResponse:
    """Turn message content into a StructuredResponse or RawResponse.

    Without a schema the text is returned as-is. With one, it must decode to
    a JSON object satisfying the schema, otherwise SchemaError is raised.
    """
    if schema is None:
        return RawResponse(content)

    fenced = _FENCE_RE.match(content)
    body = fenced.group('body') if fenced else content
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Model response is not valid JSON ({e.msg}): {content[:80]!r}")

    validate_fields(data, schema)
    return StructuredResponse(data)


class LLMClient(ABC):
    """Abstract base for LLM clients."""

    @abstractmethod
    def generate(self, payload: dict, schema: dict | None = None) -> LLMResult:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass
