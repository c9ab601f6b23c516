"""Prompt Builder - Render configured message templates into a request payload."""

from acm.config import Config
from acm.templates import render, placeholders

DIFF_FIELD = "diff"


class PromptBuilder:
    """Builds the chat completion payload for a staged diff."""

    def __init__(self, strict: bool = True):
        self.strict = strict

    def build(self, config: Config, diff: str) -> dict:
        params = config.params
        payload = {
            "model": params.model,
            "max_tokens": params.max_tokens,
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": self.build_messages(params.messages, diff),
        }
        if params.n > 1:
            payload["n"] = params.n
        if params.response_format:
            payload["response_format"] = params.response_format
        return payload

    def build_messages(self, templates: list[dict], diff: str) -> list[dict]:
        """Render every message template with the diff.

        When no template mentions the diff, it is sent as a trailing user message.
        """
        fields = {DIFF_FIELD: diff}
        messages = [
            {"role": m["role"], "content": render(m["content"], fields, strict=self.strict)}
            for m in templates
        ]
        if not any(DIFF_FIELD in placeholders(m["content"]) for m in templates):
            messages.append({"role": "user", "content": diff})
        return messages
