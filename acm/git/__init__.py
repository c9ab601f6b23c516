"""Git Operations Package"""

from acm.git.analyzer import GitAnalyzer, FileChange, StagedChanges, DIFF_ARGS

__all__ = [
    "GitAnalyzer",
    "FileChange",
    "StagedChanges",
    "DIFF_ARGS",
]
