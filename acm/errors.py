"""Errors raised by acm. Every one of them ends the run with a non-zero status."""


class AcmError(Exception):
    """Base error for acm."""


class ConfigError(AcmError):
    """Raised when the configuration file is missing, unreadable or malformed."""


class TemplateError(AcmError):
    """Raised when a template cannot be parsed in strict mode."""


class GitError(AcmError):
    """Raised when git operations fail."""


class EmptyDiffError(GitError):
    """Raised when nothing is staged."""

    def __init__(self, message: str = "No staged changes. Run 'git add' first."):
        super().__init__(message)


class CommitError(GitError):
    """Raised when `git commit` fails."""


class LLMError(AcmError):
    """Raised when model invocation or parsing fails."""


class RequestError(LLMError):
    """Raised on transport failures and non-2xx responses."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class SchemaError(LLMError):
    """Raised when a structured response does not match the declared schema."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
