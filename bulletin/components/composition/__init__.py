"""
Composition component - select, allocate and render a newsletter.
"""

from bulletin.components.composition.component import run, run_compose
from bulletin.components.composition.models import ComposeInput, ComposeOutput

__all__ = [
    "run",
    "run_compose",
    "ComposeInput",
    "ComposeOutput",
]
