"""CLI Main Entry Point"""

import logging
import os
import sys

from acm.config import Config, load_config, config_exists, set_config_path, get_config_path
from acm.errors import AcmError, ConfigError
from acm.git import GitAnalyzer, StagedChanges
from acm.llm import LLMResult, get_client
from acm.output import dim, info, print_error, print_success, Spinner
from acm.pipeline import CommitPipeline, Stage
from acm.review import AutoAcceptReviewer

from acm.cli.args import parse_args
from acm.cli.commands import display_config, run_setup, run_install_completion, setup_config
from acm.cli.utils import TerminalReviewer, display_file_list, display_message

logger = logging.getLogger("acm")

EXIT_INTERRUPTED = 130


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _handle_subcommands(args):
    """Handle subcommands that exit early.

    Returns:
        tuple: (exit_code, should_exit) - exit_code if should_exit is True
    """
    if args.install_completion:
        return run_install_completion(), True
    if args.display_config:
        return display_config(), True
    if args.setup:
        return run_setup(), True
    return 0, False


def _load_or_setup(is_interactive: bool) -> Config:
    """Load the config, running the setup wizard the first time."""
    if config_exists():
        return load_config()
    if not is_interactive:
        raise ConfigError(f"No configuration found at {get_config_path()}. Run: acm --setup")
    print(info(f"No configuration found at {get_config_path()}, let's create one.\n"))
    return setup_config()


def _apply_overrides(args, config: Config) -> Config:
    """Resolve per-run settings.

    Precedence: CLI args > environment variables > config file
    """
    return config.with_overrides(
        base_url=os.environ.get('ACM_BASE_URL'),
        api_key=os.environ.get('ACM_API_KEY'),
        model=args.model or os.environ.get('ACM_MODEL'),
    )


def _print_verbose_stats(payload: dict, result: LLMResult, endpoint: str) -> None:
    """Print prompt size and token usage."""
    prompt_chars = sum(len(m["content"]) for m in payload["messages"])
    print(dim(f"  Prompt: ~{prompt_chars // 4} tokens ({prompt_chars} chars)"))
    print(dim(f"  Response: {result.tokens_used} tokens, {len(result.candidates)} candidate(s) from {result.model} via {endpoint}"))


def _commit_flow(args, config: Config, analyzer: GitAnalyzer, passthrough: list[str], is_interactive: bool) -> int:
    """Main generation and commit flow.

    Returns:
        int: Exit code
    """
    client = get_client(config.base_url, config.api_key, config.timeout)
    reviewer = TerminalReviewer() if is_interactive and not args.yes else AutoAcceptReviewer()
    show_progress = sys.stdout.isatty()

    def on_changes(changes: StagedChanges) -> None:
        if show_progress:
            display_file_list(changes)
            print(f"Generating commit message using {info(config.params.model)}...")

    def on_result(payload: dict, result: LLMResult) -> None:
        if args.verbose:
            _print_verbose_stats(payload, result, client.name)

    if passthrough:
        logger.debug("Passing to git commit: %s", passthrough)

    pipeline = CommitPipeline(
        config,
        analyzer,
        client,
        reviewer,
        extra_args=tuple(passthrough),
        dry_run=args.dry_run,
        on_changes=on_changes,
        on_result=on_result,
        spinner=Spinner,
    )
    result = pipeline.run()

    if result.stage is Stage.COMMITTED:
        if result.output:
            print(result.output)
        print_success("Committed!")
        return 0

    if result.stage is Stage.ABORTED:
        print(dim(f"{result.reason or 'Aborted'}. Nothing committed."))
        return 0

    # Dry run: a bare message when piped
    if not show_progress:
        print(result.message)
        return 0
    display_message(result.message)
    print(dim("Dry run, nothing committed."))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args, passthrough = parse_args(argv)
    _configure_logging(args.verbose)

    if args.config:
        set_config_path(args.config)

    is_interactive = sys.stdin.isatty() and sys.stdout.isatty()

    try:
        # Handle subcommands that exit early
        exit_code, should_exit = _handle_subcommands(args)
        if should_exit:
            return exit_code

        # Git checks come before loading or creating the config
        analyzer = GitAnalyzer()
        config = _apply_overrides(args, _load_or_setup(is_interactive))
        return _commit_flow(args, config, analyzer, passthrough, is_interactive)
    except KeyboardInterrupt:
        print()
        print_error("Interrupted. Nothing committed.")
        return EXIT_INTERRUPTED
    except AcmError as e:
        print_error(str(e))
        return 1


def run() -> None:
    sys.exit(main())
