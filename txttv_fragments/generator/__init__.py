"""Rendering and assembly stages of the TxtTV fragment pipeline."""

from .assembler import FragmentAssembler, write_fragment
from .models import (
    PageNavigation,
    PageTemplate,
    PolicyFragment,
    RenderedPage,
    SharedAssets,
)
from .renderer import navigation_for, render_page, require_placeholders

__all__ = [
    "FragmentAssembler",
    "PageNavigation",
    "PageTemplate",
    "PolicyFragment",
    "RenderedPage",
    "SharedAssets",
    "navigation_for",
    "render_page",
    "require_placeholders",
    "write_fragment",
]
