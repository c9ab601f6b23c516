"""Message Formatter - Build the final commit message from the model's reply."""

from acm.llm.base import ModelResponse
from acm.templates import render


def format_commit_message(template: str, response: ModelResponse, strict: bool = True) -> str:
    """Render the custom message template with the fields of the reply.

    Git special characters are not escaped; the result goes to `git commit -m` as-is.
    """
    return render(template, response.fields(), strict=strict).strip()
