"""The four validation layers applied to every assembled fragment.

Each layer takes a :class:`FragmentDocument` and returns a
:class:`LayerResult`. Layers never raise for bad input and never depend on one
another's outcome; a document that fails to parse still receives a schema,
security, and structure verdict based on whatever could be recovered.
"""

from __future__ import annotations

import re
import typing as typ
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Doctype

from txttv_fragments._constants import CDATA_END

from .document import CDATA_SECTION
from .models import SCHEMA, SECURITY, STRUCTURE, WELL_FORMED, LayerResult

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .document import FragmentDocument

EVAL_PATTERNS = (
    ("eval(", re.compile(r"\beval\s*\(")),
    ("new Function(", re.compile(r"\bnew\s+Function\s*\(")),
)
REQUIRED_ELEMENTS = ("html", "head", "body")


def check_well_formed(document: FragmentDocument) -> LayerResult:
    """Layer 1: the fragment must parse as XML."""
    errors = [document.parse_error] if document.parse_error else []
    return LayerResult.from_messages(WELL_FORMED, errors)


def check_schema(document: FragmentDocument) -> LayerResult:
    """Layer 2: root tag, a single body element, and a CDATA-only body."""
    root = document.root
    if root is None:
        return LayerResult.from_messages(
            SCHEMA, ["Document could not be parsed; envelope structure unknown."]
        )

    errors: list[str] = []
    warnings: list[str] = []
    if root.tag != document.root_tag:
        errors.append(
            f"Root element is <{root.tag}>, expected <{document.root_tag}>."
        )

    bodies = document.body_elements()
    if not bodies:
        errors.append(f"Missing <{document.body_tag}> element.")
    elif len(bodies) > 1:
        errors.append(
            f"Found {len(bodies)} <{document.body_tag}> elements, expected exactly one."
        )
    else:
        body = bodies[0]
        if len(body):
            errors.append(
                f"<{document.body_tag}> must contain only a CDATA section, "
                "found child nodes."
            )
        elif not body.text:
            errors.append(f"<{document.body_tag}> is empty.")
        elif not document.body_is_cdata_only():
            errors.append(
                f"<{document.body_tag}> content is plain text, expected a CDATA section."
            )

    for child in root:
        if isinstance(child.tag, str) and child.tag != document.body_tag:
            warnings.append(f"Unexpected element <{child.tag}> in <{root.tag}>.")
    stray = [root.text, *(child.tail for child in root)]
    if any(text and text.strip() for text in stray):
        warnings.append(f"Unexpected text content directly inside <{root.tag}>.")
    return LayerResult.from_messages(SCHEMA, errors, warnings)


def check_security(
    document: FragmentDocument, allowed_script_origins: cabc.Iterable[str] = ()
) -> LayerResult:
    """Layer 3: advisory security heuristics over the embedded HTML.

    External scripts from unlisted origins, inline ``on*`` handlers, and
    ``eval(`` / ``new Function(`` calls are warnings. A CDATA terminator left
    outside every CDATA section in the raw payload is the only blocking error.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if document.raw_payload is not None:
        outside = CDATA_SECTION.sub("", document.raw_payload)
        if CDATA_END in outside:
            errors.append(
                f"Unescaped CDATA terminator '{CDATA_END}' found in embedded content."
            )

    html = document.decoded_html
    if html:
        soup = BeautifulSoup(html, "html.parser")
        allowed = {_normalize_origin(origin) for origin in allowed_script_origins}
        for script in soup.find_all("script"):
            src = script.get("src")
            if not src:
                continue
            origin = _script_origin(str(src))
            if origin is not None and origin not in allowed:
                warnings.append(f"External script from unlisted origin: {src}")
        for tag in soup.find_all(True):
            for attr in tag.attrs:
                if attr.lower().startswith("on"):
                    warnings.append(f"Inline event handler '{attr}' on <{tag.name}>.")
        for label, pattern in EVAL_PATTERNS:
            count = len(pattern.findall(html))
            if count:
                warnings.append(f"Dynamic code execution '{label}' used {count} time(s).")
    return LayerResult.from_messages(SECURITY, errors, warnings)


def check_structure(
    document: FragmentDocument, page_number: int | None = None
) -> LayerResult:
    """Layer 4: the embedded page must be a complete HTML document."""
    html = document.decoded_html
    soup = BeautifulSoup(html, "html.parser")
    errors = [
        f"Embedded HTML is missing the <{name}> element."
        for name in REQUIRED_ELEMENTS
        if soup.find(name) is None
    ]
    warnings: list[str] = []
    if not any(isinstance(node, Doctype) for node in soup.contents):
        warnings.append("Embedded HTML has no document type declaration.")
    if page_number is not None and str(page_number) not in html:
        warnings.append(f"Page number {page_number} does not appear in the content.")
    return LayerResult.from_messages(STRUCTURE, errors, warnings)


def _normalize_origin(origin: str) -> str:
    parts = urlsplit(origin.strip())
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def _script_origin(src: str) -> str | None:
    """Return the origin of an external script, or ``None`` for same-document."""
    parts = urlsplit(src.strip())
    if not parts.scheme and not parts.netloc:
        return None
    scheme = (parts.scheme or "https").lower()
    return f"{scheme}://{parts.netloc.lower()}"


__all__ = [
    "EVAL_PATTERNS",
    "REQUIRED_ELEMENTS",
    "check_schema",
    "check_security",
    "check_structure",
    "check_well_formed",
]
