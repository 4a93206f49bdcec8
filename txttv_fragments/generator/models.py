"""Shared dataclasses used by the fragment generation pipeline."""

from __future__ import annotations

import dataclasses as dc
import re
from pathlib import Path

from txttv_fragments._constants import UTF8_BOM

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Z][A-Z0-9_]*)\}\}")


@dc.dataclass(frozen=True, slots=True)
class PageTemplate:
    """Page template text with ``{{NAME}}`` placeholders.

    Attributes
    ----------
    text : str
        Raw template text, shared read-only by every page in a batch.
    source : Path or None
        File the template was loaded from, used in diagnostics.
    """

    text: str
    source: Path | None = None

    @property
    def placeholders(self) -> frozenset[str]:
        """Return every placeholder name that appears in the template."""
        return frozenset(PLACEHOLDER_PATTERN.findall(self.text))

    def has_placeholder(self, name: str) -> bool:
        """Return ``True`` when ``{{name}}`` occurs in the template."""
        return name in self.placeholders


@dc.dataclass(frozen=True, slots=True)
class PageNavigation:
    """Previous/next page identifiers computed with wraparound."""

    page: int
    prev_page: int
    next_page: int


@dc.dataclass(frozen=True, slots=True)
class SharedAssets:
    """Style and script text injected verbatim into every page."""

    style: str = ""
    script: str = ""
    style_files: tuple[Path, ...] = ()
    script_files: tuple[Path, ...] = ()
    warnings: tuple[str, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class RenderedPage:
    """Fully substituted HTML for one page number."""

    page_number: int
    html: str
    navigation: PageNavigation
    unresolved_placeholders: tuple[str, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class PolicyFragment:
    """Assembled XML document ready for validation and persistence.

    ``xml`` holds the in-memory document without a byte-order marker;
    ``byte_size`` is the size of :meth:`to_bytes`, which is what gets written.
    """

    xml: str
    byte_size: int
    page_number: int | None = None

    def to_bytes(self) -> bytes:
        """Return the persisted form: UTF-8 BOM followed by UTF-8 text."""
        return UTF8_BOM + self.xml.encode("utf-8")


__all__ = [
    "PLACEHOLDER_PATTERN",
    "PageNavigation",
    "PageTemplate",
    "PolicyFragment",
    "RenderedPage",
    "SharedAssets",
]
