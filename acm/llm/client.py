"""Chat Completions Client for OpenAI-compatible endpoints"""

import http.client
import json
import logging
import socket
import urllib.error
import urllib.request

from acm import __version__
from acm.errors import RequestError
from acm.llm.base import LLMClient, LLMResult, parse_response

logger = logging.getLogger(__name__)


class ChatClient(LLMClient):
    """Sends a single chat completion request. No retries, no streaming."""

    DEFAULT_TIMEOUT = 30

    def __init__(self, base_url: str, api_key: str, timeout: int | None = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def name(self) -> str:
        return self.base_url

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"acm/{__version__}",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _call_api(self, payload: dict) -> dict:
        """POST the payload and decode the JSON body."""
        data = json.dumps(payload).encode('utf-8')
        req = urllib.request.Request(self.url, data=data, headers=self._headers(), method="POST")

        logger.debug("POST %s (%d bytes)", self.url, len(data))
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            raise RequestError(f"Request failed ({e.code}): {_error_detail(e)}", status=e.code)
        except urllib.error.URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                raise RequestError(f"Request timed out after {self.timeout}s")
            raise RequestError(f"Could not reach {self.base_url}: {e.reason}")
        except (socket.timeout, TimeoutError):
            raise RequestError(f"Request timed out after {self.timeout}s")
        except http.client.HTTPException as e:
            raise RequestError(f"Incomplete response from {self.base_url}: {e}")
        except OSError as e:
            raise RequestError(f"Connection to {self.base_url} lost: {e}")

        try:
            body = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise RequestError(f"Invalid response from {self.base_url}: body is not UTF-8 text")
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            raise RequestError(f"Invalid response from {self.base_url}: {body[:200]}")

    def generate(self, payload: dict, schema: dict | None = None) -> LLMResult:
        """Request completions and parse every returned choice."""
        result = self._call_api(payload)

        choices = result.get("choices") if isinstance(result, dict) else None
        if not choices:
            raise RequestError("No commit messages generated")

        candidates = []
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message")
            content = message.get("content") if isinstance(message, dict) else None
            if not isinstance(content, str) or not content.strip():
                continue
            candidates.append(parse_response(content, schema))

        if not candidates:
            raise RequestError("No commit messages generated")

        usage = result.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return LLMResult(
            candidates=candidates,
            model=result.get("model", payload.get("model", "")),
            tokens_used=usage.get("total_tokens", 0),
        )


def _error_detail(error: urllib.error.HTTPError) -> str:
    """Pull the provider's error message out of an error response."""
    try:
        body = error.read().decode('utf-8', errors='replace')
    except OSError:
        return str(error.reason)
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body.strip() or str(error.reason)
    if isinstance(data, dict):
        detail = data.get("error", data)
        if isinstance(detail, dict):
            return str(detail.get("message", detail))
        return str(detail)
    return body.strip()
