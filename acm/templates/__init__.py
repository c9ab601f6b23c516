"""Placeholder Templates Package"""

from acm.templates.renderer import render, placeholders

__all__ = [
    "render",
    "placeholders",
]
