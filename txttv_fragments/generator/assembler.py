"""Wrap rendered pages in the policy fragment envelope and persist them.

The envelope is a Jinja template (``policy_fragment.xml.jinja``) rendered with
autoescaping disabled: the page travels inside a CDATA section, so the only
transform it needs is :func:`~txttv_fragments.escaper.escape_cdata`. The
rendered document contains no timestamps or generated identifiers, which keeps
repeated runs byte-identical.

Example
-------
>>> assembler = FragmentAssembler()
>>> fragment = assembler.assemble("<!DOCTYPE html><html></html>")
>>> fragment.xml.splitlines()[0]
'<fragment>'
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from txttv_fragments._constants import (
    CDATA_END,
    CDATA_START,
    DEFAULT_BODY_TAG,
    DEFAULT_ROOT_TAG,
    MAX_FRAGMENT_BYTES,
    UTF8_BOM,
)
from txttv_fragments.errors import OutputError, SizeLimitError
from txttv_fragments.escaper import escape_cdata

from .models import PolicyFragment

logger = logging.getLogger(__name__)

ENVELOPE_TEMPLATE = "policy_fragment.xml.jinja"

# mkstemp creates 0600 files; fragments are plain published artefacts.
_FRAGMENT_FILE_MODE = 0o644


class FragmentAssembler:
    """Build :class:`PolicyFragment` documents from rendered HTML."""

    def __init__(
        self,
        *,
        root_tag: str = DEFAULT_ROOT_TAG,
        body_tag: str = DEFAULT_BODY_TAG,
        max_bytes: int = MAX_FRAGMENT_BYTES,
        templates_dir: Path | None = None,
    ) -> None:
        """Initialize the assembler and its Jinja environment.

        Parameters
        ----------
        root_tag : str, optional
            Root element name of the fragment; defaults to ``fragment``.
        body_tag : str, optional
            Body-setting element holding the CDATA payload; defaults to
            ``set-body``.
        max_bytes : int, optional
            Ceiling for the persisted document (BOM included).
        templates_dir : Path, optional
            Directory containing ``policy_fragment.xml.jinja``; defaults to the
            package templates.
        """
        self.root_tag = root_tag
        self.body_tag = body_tag
        self.max_bytes = max_bytes
        self.templates_dir = templates_dir or Path(__file__).resolve().parents[1] / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template(ENVELOPE_TEMPLATE)

    def assemble(self, html: str, page_number: int | None = None) -> PolicyFragment:
        """Escape ``html`` and wrap it in the fragment envelope.

        Raises
        ------
        SizeLimitError
            If the persisted document would exceed ``max_bytes``. The check
            runs after escaping, since escaping grows the payload.
        """
        xml = self.template.render(
            root_tag=self.root_tag,
            body_tag=self.body_tag,
            cdata_start=CDATA_START,
            cdata_end=CDATA_END,
            payload=escape_cdata(html),
        )
        if not xml.endswith("\n"):
            xml += "\n"
        byte_size = len(UTF8_BOM) + len(xml.encode("utf-8"))
        if byte_size > self.max_bytes:
            raise SizeLimitError(byte_size, self.max_bytes)
        logger.debug("Assembled fragment for page %s (%d bytes)", page_number, byte_size)
        return PolicyFragment(xml=xml, byte_size=byte_size, page_number=page_number)


def write_fragment(fragment: PolicyFragment, path: Path) -> Path:
    """Persist ``fragment`` at ``path`` with a UTF-8 byte-order marker.

    The document is written to a temporary sibling file and moved into place,
    so a failed write never leaves a truncated fragment behind.

    Raises
    ------
    OutputError
        If the temporary file cannot be created, written, or renamed.
    """
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(fragment.to_bytes())
        os.chmod(tmp_name, _FRAGMENT_FILE_MODE)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        msg = f"Unable to write {path}: {exc.strerror or exc}"
        raise OutputError(msg, path=path) from exc
    return path


__all__ = ["ENVELOPE_TEMPLATE", "FragmentAssembler", "write_fragment"]
