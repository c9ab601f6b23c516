"""
acm - AI Commit Messages

Generates a commit message for the staged changes with an OpenAI-compatible
chat model and commits with it.
"""

__version__ = "0.3.0"

# Conventional commit types offered to the model by the default system prompt
COMMIT_TYPES = {
    'feat': 'A new feature or capability',
    'fix': 'A bug fix',
    'docs': 'Documentation only changes',
    'style': 'Formatting, whitespace, no code change',
    'refactor': 'Code restructuring without behavior change',
    'perf': 'Performance improvement',
    'test': 'Adding or updating tests',
    'build': 'Build system or external dependency changes',
    'ci': 'CI/CD configuration changes',
    'chore': 'Maintenance tasks, dependencies, tooling',
}
