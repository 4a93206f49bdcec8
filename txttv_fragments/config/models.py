"""Typed dataclasses describing fragment conversion settings."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from txttv_fragments._constants import (
    DEFAULT_BODY_TAG,
    DEFAULT_ROOT_TAG,
    DEFAULT_SCRIPT_ORIGINS,
    MAX_CONTENT_CHARS,
    MAX_FRAGMENT_BYTES,
    SCRIPT_ADVISORY_BYTES,
    STYLE_ADVISORY_BYTES,
)


class ConfigError(ValueError):
    """Raised when the conversion configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class ConvertConfig:
    """Resolved settings for one conversion batch.

    Paths are used as given; relative values resolve against the working
    directory at the time files are opened.
    """

    source_dir: Path = Path("src/web")
    template_name: str = "template.html"
    styles_dir: str = "styles"
    scripts_dir: str = "scripts"
    style_files: list[str] = dc.field(default_factory=list)
    script_files: list[str] = dc.field(default_factory=list)
    content_dir: Path = Path("content")
    content_extension: str = "txt"
    content_encoding: str = "utf-8"
    output_dir: Path = Path("policies/fragments")
    output_extension: str = "xml"
    filename_template: str = "page-{page}"
    min_page: int = 100
    max_page: int = 999
    max_content_chars: int = MAX_CONTENT_CHARS
    max_fragment_bytes: int = MAX_FRAGMENT_BYTES
    style_advisory_bytes: int = STYLE_ADVISORY_BYTES
    script_advisory_bytes: int = SCRIPT_ADVISORY_BYTES
    root_tag: str = DEFAULT_ROOT_TAG
    body_tag: str = DEFAULT_BODY_TAG
    allowed_script_origins: list[str] = dc.field(
        default_factory=lambda: list(DEFAULT_SCRIPT_ORIGINS)
    )
    validate: bool = True
    force: bool = False
    dry_run: bool = False
    workers: int = 1

    @property
    def template_path(self) -> Path:
        """Return the page template location."""
        return self.source_dir / self.template_name

    def content_path(self, page: int) -> Path:
        """Return the content file for ``page``, e.g. ``content/page-101.txt``."""
        stem = self.filename_template.format(page=page)
        return self.content_dir / f"{stem}.{self.content_extension}"

    def output_path(self, page: int) -> Path:
        """Return the fragment path for ``page``, e.g. ``page-101.xml``."""
        stem = self.filename_template.format(page=page)
        return self.output_dir / f"{stem}.{self.output_extension}"

    def page_range(self) -> list[int]:
        """Return every page number in the configured inclusive range."""
        return list(range(self.min_page, self.max_page + 1))

    def with_overrides(self, **changes: object) -> ConvertConfig:
        """Return a copy with ``changes`` applied, ignoring ``None`` values."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return dc.replace(self, **applied)


__all__ = ["ConfigError", "ConvertConfig"]
