"""CLI Utility Functions"""

import os
import subprocess
import sys
import tempfile

from acm.git import StagedChanges
from acm.output import RULE, bold, dim, info, colorize_commit_type, print_warning
from acm.review import Abort, Accept, Decision

MAX_FILE_DISPLAY = 8


def display_file_list(changes: StagedChanges, max_shown: int = MAX_FILE_DISPLAY) -> None:
    """Show which files are staged, collapsing long lists."""
    if not changes.files:
        return
    print(bold("Staged changes:"))
    shown = changes.files[:max_shown]
    remaining = len(changes.files) - len(shown)
    for f in shown:
        print(dim(f"  {f.path} (+{f.additions} -{f.deletions})"))
    if remaining > 0:
        print(dim(f"  ... and {remaining} more files"))


def display_message(message: str) -> None:
    """Display commit message between horizontal rules with colored type."""
    lines = colorize_commit_type(message).split('\n')
    # Width from the raw message, the colored one carries ANSI codes
    width = max((len(line) for line in message.split('\n')), default=40)
    print(f"\n{dim(RULE * width)}")
    print(bold(lines[0]))
    for line in lines[1:]:
        print(line)
    print(dim(RULE * width))


def _format_option(message: str, option_num: int) -> str:
    lines = colorize_commit_type(message).split('\n')
    parts = [f"{info(f'[{option_num}]')} {bold(lines[0])}"]
    body_lines = [line for line in lines[1:] if line.strip()]
    if body_lines:
        parts.append("")
        parts.extend(f"    {line}" for line in body_lines)
    return '\n'.join(parts)


def display_options(options: list[str]) -> int | None:
    """Show options and get selection. Returns None when the user quits."""
    print()
    for i, opt in enumerate(options, 1):
        print(_format_option(opt, i))
        if i < len(options):
            print()
    print()

    while True:
        try:
            choice = input(f"Select [1-{len(options)}] or (q)uit: ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            print()
            return None
        if choice == 'q':
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(options):
            return int(choice) - 1
        print(f"Enter 1-{len(options)} or q")


def edit_message(message: str) -> str | None:
    """Open message in user's editor. Returns edited text or None on failure."""
    editor = os.environ.get('VISUAL') or os.environ.get('EDITOR')
    if not editor:
        editor = 'notepad' if sys.platform == 'win32' else 'vi'

    tmp = tempfile.NamedTemporaryFile(mode='w', suffix='.gitcommit', delete=False, encoding='utf-8')
    try:
        tmp.write(message)
        tmp.close()
        subprocess.run([*editor.split(), tmp.name], check=True)
        with open(tmp.name, 'r', encoding='utf-8') as f:
            edited = f.read().strip()
        return edited if edited else None
    except (subprocess.CalledProcessError, OSError):
        return None
    finally:
        try:
            os.unlink(tmp.name)
        except OSError as e:
            # Log to stderr so temp files don't silently accumulate
            print(f"Warning: Could not delete temp file {tmp.name}: {e}", file=sys.stderr)


class TerminalReviewer:
    """Asks on the terminal whether to commit, edit or abort."""

    PROMPT = "(e)dit, (a)bort, or Enter to commit: "

    def choose(self, messages: list[str]) -> int | None:
        return display_options(messages)

    def review(self, message: str) -> Decision:
        while True:
            display_message(message)
            try:
                action = input(f"\n{dim(self.PROMPT)}").strip().lower()
            except (KeyboardInterrupt, EOFError):
                print()
                return Abort("Cancelled")

            if action == '':
                return Accept(message)
            if action in ('a', 'q'):
                return Abort("Cancelled")
            if action == 'e':
                edited = edit_message(message)
                if edited is None:
                    print_warning("Editor failed or left the message empty, keeping the previous message")
                else:
                    message = edited
