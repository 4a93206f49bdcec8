"""Utilities for converting TxtTV pages into policy gateway fragments.

This package exposes the CLI entry points used by ``txttv-fragments`` to
render page content through a shared template, embed it in a CDATA-protected
XML envelope, validate it, and write one fragment per page.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from txttv_fragments import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
