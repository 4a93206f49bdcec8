"""Utility helpers shared by the conversion config loader and CLI."""

from __future__ import annotations

import re
import typing as typ
from pathlib import Path

from .models import ConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_RANGE_PATTERN = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_XML_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9._-]*$")


def _as_path(value: object, default: Path) -> Path:
    """Return ``value`` as a Path, falling back to ``default`` when empty."""
    if value is None or value == "":
        return default
    return Path(str(value))


def _as_int(key: str, value: object, default: int) -> int:
    """Coerce an integer setting, rejecting booleans and non-numeric text."""
    if value is None:
        return default
    if isinstance(value, bool):
        msg = f"Setting '{key}' must be an integer, got {value!r}."
        raise ConfigError(msg)
    try:
        return int(str(value).strip())
    except ValueError as exc:
        msg = f"Setting '{key}' must be an integer, got {value!r}."
        raise ConfigError(msg) from exc


def _as_bool(key: str, value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    msg = f"Setting '{key}' must be true or false, got {value!r}."
    raise ConfigError(msg)


def _as_str_list(key: str, value: object) -> list[str]:
    """Normalize a string or list of strings into a list of non-empty strings."""
    match value:
        case None:
            return []
        case str() as text:
            return [segment for segment in text.split() if segment]
        case list():
            normalized: list[str] = []
            for segment in value:
                text = str(segment).strip()
                if text:
                    normalized.append(text)
            return normalized
        case _:
            msg = f"Setting '{key}' must be a string or a list of strings."
            raise ConfigError(msg)


def _check_xml_name(key: str, value: str) -> str:
    if not _XML_NAME_PATTERN.match(value):
        msg = f"Setting '{key}' must be a valid XML element name, got {value!r}."
        raise ConfigError(msg)
    return value


def parse_page_selection(
    tokens: cabc.Iterable[str], min_page: int, max_page: int
) -> list[int]:
    """Expand page selection tokens into page numbers, preserving order.

    Each token may be a single number (``"105"``), an inclusive range
    (``"100-110"``), or a comma-separated mix of both. Duplicates are kept so
    the orchestrator can report them as a collision.

    Raises
    ------
    ConfigError
        If a token is malformed, a range is reversed, or a page falls outside
        ``[min_page, max_page]``.

    Examples
    --------
    >>> parse_page_selection(["100-102", "105"], 100, 110)
    [100, 101, 102, 105]
    >>> parse_page_selection(["101,103"], 100, 110)
    [101, 103]
    """
    pages: list[int] = []
    for token in tokens:
        for part in str(token).split(","):
            text = part.strip()
            if not text:
                continue
            if match := _RANGE_PATTERN.match(text):
                start, end = int(match.group(1)), int(match.group(2))
                if start > end:
                    msg = f"Page range '{text}' is reversed."
                    raise ConfigError(msg)
                pages.extend(range(start, end + 1))
            elif text.isdigit():
                pages.append(int(text))
            else:
                msg = f"Invalid page selection '{text}'."
                raise ConfigError(msg)
    for page in pages:
        if not min_page <= page <= max_page:
            msg = f"Page {page} is outside the configured range {min_page}-{max_page}."
            raise ConfigError(msg)
    return pages


__all__ = [
    "_as_bool",
    "_as_int",
    "_as_path",
    "_as_str_list",
    "_check_xml_name",
    "parse_page_selection",
]
