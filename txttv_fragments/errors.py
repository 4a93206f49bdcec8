"""Exception taxonomy for the fragment conversion pipeline.

Per-page errors (``InputError`` for one page's content, ``SizeLimitError``,
``ValidationError`` and ``OutputError`` for one write) are caught by the batch
orchestrator and recorded against that page. Batch prerequisites (template,
shared assets, output directory) raise the same types before any page is
processed, and those propagate to the CLI where they select the exit code.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .validation.models import ValidationReport


class ConversionError(Exception):
    """Base class for every error raised by the conversion pipeline."""


class InputError(ConversionError):
    """Raised when a source file is missing, unreadable, or over its limits."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class TemplateError(ConversionError):
    """Raised when the page template lacks a required placeholder."""


class SizeLimitError(ConversionError):
    """Raised when an assembled fragment exceeds the byte ceiling."""

    def __init__(self, actual: int, limit: int) -> None:
        msg = f"Fragment is {actual} bytes, exceeding the {limit} byte limit."
        super().__init__(msg)
        self.actual = actual
        self.limit = limit


class ValidationError(ConversionError):
    """Raised when a blocking validation layer fails for a fragment."""

    def __init__(self, report: ValidationReport) -> None:
        failed = ", ".join(layer.name for layer in report.layers if not layer.passed)
        msg = f"Validation failed ({failed})"
        if report.errors:
            msg = f"{msg}: {'; '.join(report.errors)}"
        super().__init__(msg)
        self.report = report


class OutputError(ConversionError):
    """Raised when a fragment cannot be written to its destination."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


__all__ = [
    "ConversionError",
    "InputError",
    "OutputError",
    "SizeLimitError",
    "TemplateError",
    "ValidationError",
]
