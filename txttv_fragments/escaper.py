"""CDATA-safe escaping for HTML embedded in policy fragments.

A CDATA section ends at the first ``]]>``, so any terminator inside the
embedded page must be split: the section is closed after ``]]`` and a new one
is opened for the trailing ``>``. Parsers concatenate adjacent CDATA sections,
so the decoded text is unchanged. Angle brackets and ampersands need no
treatment inside CDATA.

Examples
--------
>>> escape_cdata("a]]>b")
'a]]]]><![CDATA[>b'
>>> unescape_cdata(escape_cdata("x]]>]]>y"))
'x]]>]]>y'
>>> "".join(iter_escape_cdata(["a]", "]", ">b"]))
'a]]]]><![CDATA[>b'
"""

from __future__ import annotations

import typing as typ

from ._constants import CDATA_END, CDATA_START, ESCAPED_CDATA_END

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Longest suffix of a chunk that could begin a terminator in the next chunk.
_HOLDBACK = len(CDATA_END) - 1


def escape_cdata(content: str) -> str:
    """Return ``content`` with every ``]]>`` split across two CDATA sections."""
    return content.replace(CDATA_END, ESCAPED_CDATA_END)


def unescape_cdata(escaped: str) -> str:
    """Invert :func:`escape_cdata`."""
    return escaped.replace(ESCAPED_CDATA_END, CDATA_END)


def wrap_cdata(content: str) -> str:
    """Return ``content`` escaped and wrapped in a CDATA section."""
    return f"{CDATA_START}{escape_cdata(content)}{CDATA_END}"


def iter_escape_cdata(chunks: cabc.Iterable[str]) -> cabc.Iterator[str]:
    """Escape a stream of text chunks without missing split terminators.

    Parameters
    ----------
    chunks : Iterable[str]
        Text fragments in document order; chunk boundaries may fall anywhere,
        including inside a ``]]>`` sequence.

    Yields
    ------
    str
        Escaped text. Joining every yielded piece equals
        ``escape_cdata("".join(chunks))``.
    """
    pending = ""
    for chunk in chunks:
        if not chunk:
            continue
        buffer = pending + chunk
        escaped = escape_cdata(buffer)
        # A trailing "]" or "]]" may still become a terminator.
        tail = len(buffer) - len(buffer.rstrip("]"))
        keep = min(tail, _HOLDBACK)
        if keep:
            pending = buffer[-keep:]
            escaped = escaped[:-keep]
        else:
            pending = ""
        if escaped:
            yield escaped
    if pending:
        yield pending


__all__ = ["escape_cdata", "iter_escape_cdata", "unescape_cdata", "wrap_cdata"]
