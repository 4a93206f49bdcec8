"""Read templates, shared assets, and per-page content from disk.

Everything here is read-only input handling. Template and asset problems are
batch prerequisites and surface before any page is converted; content
problems affect a single page.
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from .errors import InputError
from .generator.models import PageTemplate, SharedAssets
from .generator.renderer import require_placeholders

if typ.TYPE_CHECKING:
    from .config import ConvertConfig

logger = logging.getLogger(__name__)

STYLE_PATTERN = "*.css"
SCRIPT_PATTERN = "*.js"


def _read_text(path: Path, *, encoding: str = "utf-8", label: str) -> str:
    """Read ``path`` without newline translation or raise :class:`InputError`."""
    try:
        with path.open(encoding=encoding, newline="") as handle:
            return handle.read()
    except FileNotFoundError as exc:
        msg = f"{label} '{path}' not found."
        raise InputError(msg, path=path) from exc
    except UnicodeDecodeError as exc:
        msg = f"{label} '{path}' is not valid {encoding}: {exc.reason}."
        raise InputError(msg, path=path) from exc
    except OSError as exc:
        msg = f"Unable to read {label.lower()} '{path}': {exc.strerror or exc}."
        raise InputError(msg, path=path) from exc


def load_template(path: Path) -> PageTemplate:
    """Load the page template and check its required placeholders.

    Raises
    ------
    InputError
        If the template file is missing or unreadable.
    TemplateError
        If the template has no ``{{CONTENT}}`` placeholder.
    """
    template = PageTemplate(text=_read_text(path, label="Template"), source=path)
    require_placeholders(template)
    logger.debug(
        "Loaded template %s with placeholders: %s",
        path,
        ", ".join(sorted(template.placeholders)),
    )
    return template


def discover_assets(directory: Path, pattern: str) -> list[Path]:
    """Return files in ``directory`` matching ``pattern`` in discovery order.

    Discovery order is lexical by filename so repeated runs concatenate
    assets identically. A missing directory yields no assets.
    """
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.glob(pattern) if path.is_file())


def _resolve_asset_files(
    source_dir: Path, subdir: str, explicit: list[str], pattern: str
) -> list[Path]:
    if explicit:
        return [source_dir / name for name in explicit]
    return discover_assets(source_dir / subdir, pattern)


def _join_assets(files: list[Path], label: str) -> str:
    return "\n".join(_read_text(path, label=label) for path in files)


def load_shared_assets(config: ConvertConfig) -> SharedAssets:
    """Load and concatenate the shared style and script blocks.

    Explicitly configured files must exist; discovered files come from
    ``<source_dir>/<styles_dir>/*.css`` and ``<source_dir>/<scripts_dir>/*.js``.
    Sizes above the advisory thresholds produce warnings only.

    Raises
    ------
    InputError
        If an explicitly listed asset is missing or unreadable.
    """
    style_files = _resolve_asset_files(
        config.source_dir, config.styles_dir, config.style_files, STYLE_PATTERN
    )
    script_files = _resolve_asset_files(
        config.source_dir, config.scripts_dir, config.script_files, SCRIPT_PATTERN
    )
    style = _join_assets(style_files, "Style asset")
    script = _join_assets(script_files, "Script asset")

    warnings: list[str] = []
    for label, text, limit in (
        ("Style", style, config.style_advisory_bytes),
        ("Script", script, config.script_advisory_bytes),
    ):
        size = len(text.encode("utf-8"))
        if size > limit:
            message = f"{label} assets are {size} bytes (advisory limit {limit})."
            logger.warning(message)
            warnings.append(message)

    return SharedAssets(
        style=style,
        script=script,
        style_files=tuple(style_files),
        script_files=tuple(script_files),
        warnings=tuple(warnings),
    )


def load_page_content(config: ConvertConfig, page: int) -> str:
    """Read the content file for ``page`` and enforce the character ceiling.

    Raises
    ------
    InputError
        If the file is missing, cannot be decoded with the configured
        encoding, or holds more than ``max_content_chars`` characters.
    """
    path = config.content_path(page)
    content = _read_text(path, encoding=config.content_encoding, label="Content file")
    if len(content) > config.max_content_chars:
        msg = (
            f"Content for page {page} is {len(content)} characters, "
            f"exceeding the limit of {config.max_content_chars}."
        )
        raise InputError(msg, path=path)
    return content


__all__ = [
    "SCRIPT_PATTERN",
    "STYLE_PATTERN",
    "discover_assets",
    "load_page_content",
    "load_shared_assets",
    "load_template",
]
