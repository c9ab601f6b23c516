"""Git Analyzer - Read staged changes from git and commit them."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field

from acm.errors import GitError, EmptyDiffError, CommitError

logger = logging.getLogger(__name__)

# Lock files are noise for the model
DIFF_ARGS = (
    '--no-pager', 'diff', '--staged', '--minimal', '--no-color', '--no-ext-diff',
    '--', ':!*.lock',
)


@dataclass(frozen=True)
class FileChange:
    """Represents a single file's changes."""
    path: str
    additions: int
    deletions: int


@dataclass(frozen=True)
class StagedChanges:
    """Complete picture of what's staged for commit."""
    files: tuple[FileChange, ...] = field(default_factory=tuple)
    diff: str = ""

    @property
    def total_files(self) -> int:
        return len(self.files)


class GitAnalyzer:
    """Runs the git executable for the current repository."""

    def __init__(self, cwd: str | None = None):
        self.cwd = cwd
        self._verify_git_available()
        self._verify_in_repo()

    def _run_git(self, *args: str) -> str:
        """Run a git command and return stdout."""
        logger.debug("Running: git %s", ' '.join(args))
        try:
            result = subprocess.run(
                ['git', *args],
                capture_output=True,
                text=True,
                check=True,
                encoding='utf-8',
                errors='replace',
                cwd=self.cwd,
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise GitError(f"Git command failed: git {' '.join(args)}\n{e.stderr.strip()}")
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")

    def _verify_git_available(self) -> None:
        """Fail fast if git isn't available."""
        if shutil.which('git') is None:
            raise GitError("Git not found, please install it first or check your PATH environment variable")

    def _verify_in_repo(self) -> None:
        """Fail fast if we're not in a git repository."""
        try:
            self._run_git('rev-parse', '--is-inside-work-tree')
        except GitError:
            raise GitError("The current directory is not a Git repository")

    def get_staged_changes(self) -> StagedChanges:
        """Get staged changes. Raises EmptyDiffError when nothing is staged."""
        diff = self._get_staged_diff()
        if not diff.strip():
            raise EmptyDiffError()
        return StagedChanges(files=tuple(self._get_staged_files()), diff=diff)

    def _get_staged_files(self) -> list[FileChange]:
        """Parse 'git diff --staged --numstat' output."""
        output = self._run_git('diff', '--staged', '--numstat')

        files = []
        for line in output.strip().splitlines():
            parts = line.split('\t')
            if len(parts) >= 3:
                # Binary files report '-' for both counts
                additions = int(parts[0]) if parts[0] != '-' else 0
                deletions = int(parts[1]) if parts[1] != '-' else 0
                files.append(FileChange(path=parts[2], additions=additions, deletions=deletions))

        return files

    def _get_staged_diff(self) -> str:
        """Get the diff content for staged changes, without lock files."""
        return self._run_git(*DIFF_ARGS).strip()

    def commit(self, message: str, extra_args: list[str] | tuple[str, ...] = ()) -> str:
        """Run `git commit -m <message>` plus passthrough arguments, return git's output."""
        try:
            return self._run_git('commit', '-m', message, *extra_args).strip()
        except GitError as e:
            raise CommitError(str(e))
