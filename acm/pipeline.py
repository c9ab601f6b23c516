"""Commit Pipeline - Staged diff to commit in one linear pass.

    IDLE -> DIFF_COLLECTED -> PROMPT_RENDERED -> RESPONSE_RECEIVED
         -> MESSAGE_FORMATTED -> COMMITTED | ABORTED | FAILED

No stage is revisited. Errors are recorded as FAILED and re-raised.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ContextManager, Optional

from acm.config import Config
from acm.errors import AcmError, LLMError
from acm.git import GitAnalyzer, StagedChanges
from acm.llm import LLMClient, LLMResult
from acm.prompts import PromptBuilder, format_commit_message
from acm.review import Abort, Reviewer

logger = logging.getLogger(__name__)


class Stage(Enum):
    IDLE = "idle"
    DIFF_COLLECTED = "diff_collected"
    PROMPT_RENDERED = "prompt_rendered"
    RESPONSE_RECEIVED = "response_received"
    MESSAGE_FORMATTED = "message_formatted"
    COMMITTED = "committed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class PipelineResult:
    stage: Stage
    message: Optional[str] = None
    output: str = ""
    reason: str = ""


class CommitPipeline:
    """Runs one commit attempt. Collaborators are passed in, never looked up."""

    def __init__(
        self,
        config: Config,
        analyzer: GitAnalyzer,
        client: LLMClient,
        reviewer: Reviewer,
        extra_args: tuple[str, ...] = (),
        dry_run: bool = False,
        builder: PromptBuilder | None = None,
        on_changes: Callable[[StagedChanges], None] | None = None,
        on_result: Callable[[dict, LLMResult], None] | None = None,
        spinner: Callable[[], ContextManager] = nullcontext,
    ):
        self.config = config
        self.analyzer = analyzer
        self.client = client
        self.reviewer = reviewer
        self.extra_args = tuple(extra_args)
        self.dry_run = dry_run
        self.builder = builder or PromptBuilder()
        self.on_changes = on_changes
        self.on_result = on_result
        self.spinner = spinner
        self.stage = Stage.IDLE

    def _advance(self, stage: Stage) -> None:
        logger.debug("Stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def run(self) -> PipelineResult:
        if self.stage is not Stage.IDLE:
            raise RuntimeError("A pipeline runs only once")
        try:
            return self._run()
        except AcmError:
            self._advance(Stage.FAILED)
            raise
        except KeyboardInterrupt:
            self._advance(Stage.ABORTED)
            raise

    def _run(self) -> PipelineResult:
        changes = self.analyzer.get_staged_changes()
        self._advance(Stage.DIFF_COLLECTED)
        if self.on_changes:
            self.on_changes(changes)

        payload = self.builder.build(self.config, changes.diff)
        self._advance(Stage.PROMPT_RENDERED)

        with self.spinner():
            result = self.client.generate(payload, self.config.params.schema)
        self._advance(Stage.RESPONSE_RECEIVED)
        if self.on_result:
            self.on_result(payload, result)

        messages = _unique(
            format_commit_message(self.config.custom_message, candidate)
            for candidate in result.candidates
        )
        messages = [m for m in messages if m]
        self._advance(Stage.MESSAGE_FORMATTED)

        if not messages:
            raise LLMError("The model returned an empty commit message")

        idx = self.reviewer.choose(messages) if len(messages) > 1 else 0
        if idx is None:
            return self._abort("No message selected")
        message = messages[idx]

        if self.dry_run:
            return PipelineResult(stage=self.stage, message=message)

        decision = self.reviewer.review(message)
        if isinstance(decision, Abort):
            return self._abort(decision.reason, message)

        final = decision.text.strip()
        if not final:
            return self._abort("Empty commit message")
        output = self.analyzer.commit(final, self.extra_args)
        self._advance(Stage.COMMITTED)
        return PipelineResult(stage=self.stage, message=final, output=output)

    def _abort(self, reason: str, message: str | None = None) -> PipelineResult:
        self._advance(Stage.ABORTED)
        return PipelineResult(stage=self.stage, message=message, reason=reason)


def _unique(messages) -> list[str]:
    seen = []
    for message in messages:
        if message not in seen:
            seen.append(message)
    return seen


def run_pipeline(config: Config, analyzer: GitAnalyzer, client: LLMClient, reviewer: Reviewer,
                 **kwargs) -> PipelineResult:
    """Build a CommitPipeline and run it."""
    return CommitPipeline(config, analyzer, client, reviewer, **kwargs).run()
