"""Run every validation layer over a serialized fragment."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from txttv_fragments._constants import (
    DEFAULT_BODY_TAG,
    DEFAULT_ROOT_TAG,
    DEFAULT_SCRIPT_ORIGINS,
)

from .document import FragmentDocument
from .layers import check_schema, check_security, check_structure, check_well_formed
from .models import ValidationReport, reduce_layers

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class FragmentValidator:
    """Validate fragments against syntax, schema, security, and structure.

    All four layers run for every fragment so the report is complete even
    when an early layer fails; validity is the conjunction of the layers'
    ``passed`` flags and warnings never affect it.
    """

    def __init__(
        self,
        *,
        root_tag: str = DEFAULT_ROOT_TAG,
        body_tag: str = DEFAULT_BODY_TAG,
        allowed_script_origins: cabc.Iterable[str] = DEFAULT_SCRIPT_ORIGINS,
    ) -> None:
        self.root_tag = root_tag
        self.body_tag = body_tag
        self.allowed_script_origins = tuple(allowed_script_origins)

    def validate(
        self, source: str | bytes, page_number: int | None = None
    ) -> ValidationReport:
        """Return the layered report for ``source``.

        Parameters
        ----------
        source : str or bytes
            Serialized fragment; bytes may carry a UTF-8 byte-order marker.
        page_number : int, optional
            Page the fragment was built for; enables the page-number check.
        """
        document = FragmentDocument.parse(
            source, root_tag=self.root_tag, body_tag=self.body_tag
        )
        report = reduce_layers(
            [
                check_well_formed(document),
                check_schema(document),
                check_security(document, self.allowed_script_origins),
                check_structure(document, page_number),
            ],
            page_number=page_number,
        )
        for message in report.warnings:
            logger.warning("Page %s: %s", page_number, message)
        for message in report.errors:
            logger.debug("Page %s: %s", page_number, message)
        return report

    def validate_file(self, path: Path, page_number: int | None = None) -> ValidationReport:
        """Read ``path`` as bytes and validate it."""
        return self.validate(path.read_bytes(), page_number=page_number)


__all__ = ["FragmentValidator"]
