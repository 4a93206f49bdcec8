"""Parse a serialized fragment once for all validation layers."""

from __future__ import annotations

import dataclasses as dc
import re

from lxml import etree

from txttv_fragments._constants import (
    DEFAULT_BODY_TAG,
    DEFAULT_ROOT_TAG,
    UTF8_BOM,
)

CDATA_SECTION = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_START_TAG = re.compile(r"^<[^>]*>")
_END_TAG = re.compile(r"</[^>]*>$")


@dc.dataclass(slots=True)
class FragmentDocument:
    """Parsed view of one fragment shared by the validation layers.

    Attributes
    ----------
    text : str
        The serialized fragment without a byte-order marker.
    root : etree._Element or None
        Parsed root element, or ``None`` when the document is not well formed.
    parse_error : str or None
        Parser message (with line and column) when parsing failed.
    raw_payload : str or None
        Source text between the body element tags, CDATA markers included.
    decoded_html : str
        The embedded HTML after CDATA decoding.
    """

    text: str
    root_tag: str
    body_tag: str
    root: etree._Element | None = None
    parse_error: str | None = None
    raw_payload: str | None = None
    decoded_html: str = ""

    @classmethod
    def parse(
        cls,
        source: str | bytes,
        *,
        root_tag: str = DEFAULT_ROOT_TAG,
        body_tag: str = DEFAULT_BODY_TAG,
    ) -> FragmentDocument:
        """Parse ``source`` (text, or bytes with an optional UTF-8 BOM)."""
        parse_error: str | None = None
        if isinstance(source, bytes):
            data = source.removeprefix(UTF8_BOM)
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError as exc:
                text = data.decode("utf-8", errors="replace")
                parse_error = f"Document is not valid UTF-8: {exc.reason}"
        else:
            text = source.removeprefix(UTF8_BOM.decode("utf-8"))

        document = cls(text=text, root_tag=root_tag, body_tag=body_tag)
        document.raw_payload = _find_payload(text, body_tag)
        if parse_error is None:
            document.root, parse_error = _parse_xml(text)
        document.parse_error = parse_error
        document.decoded_html = document._decode_html()
        return document

    @property
    def body(self) -> etree._Element | None:
        """Return the single body element when present, otherwise ``None``."""
        if self.root is None:
            return None
        bodies = self.body_elements()
        return bodies[0] if len(bodies) == 1 else None

    def body_elements(self) -> list[etree._Element]:
        """Return every direct child of the root named ``body_tag``."""
        if self.root is None:
            return []
        return [child for child in self.root if child.tag == self.body_tag]

    def body_is_cdata_only(self) -> bool:
        """Return ``True`` when the body holds nothing but CDATA sections."""
        body = self.body
        if body is None or len(body) or not body.text:
            return False
        serialized = etree.tostring(body, encoding="unicode", with_tail=False)
        inner = _END_TAG.sub("", _START_TAG.sub("", serialized, count=1), count=1)
        return bool(inner) and not CDATA_SECTION.sub("", inner)

    def _decode_html(self) -> str:
        body = self.body
        if body is not None:
            return body.text or ""
        if self.raw_payload is None:
            return ""
        # Not parseable: recover the page from the raw CDATA sections.
        return "".join(match.group(1) for match in CDATA_SECTION.finditer(self.raw_payload))


def _parse_xml(text: str) -> tuple[etree._Element | None, str | None]:
    parser = etree.XMLParser(
        strip_cdata=False, resolve_entities=False, no_network=True, recover=False
    )
    try:
        root = etree.fromstring(text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as exc:
        return None, str(exc)
    return root, None


def _find_payload(text: str, body_tag: str) -> str | None:
    tag = re.escape(body_tag)
    pattern = re.compile(rf"<{tag}(?:\s[^>]*)?>(.*)</{tag}\s*>", re.DOTALL)
    match = pattern.search(text)
    return match.group(1) if match else None


__all__ = ["CDATA_SECTION", "FragmentDocument"]
