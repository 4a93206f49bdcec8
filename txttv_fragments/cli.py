"""Cyclopts CLI entrypoint for converting TxtTV pages into policy fragments.

The ``txttv-fragments`` console script defined here renders every requested
page through the shared template, wraps it in the gateway's XML envelope,
validates the result, and writes one BOM-prefixed fragment per page. A second
command re-validates fragments that already exist on disk. Typical usage is
``txttv-fragments convert`` locally or in CI, with ``--dry-run`` to preview
what would change.

Exit codes
----------
0 every requested page converted (skipped pages do not count as failures);
1 some pages converted and some failed; 2 input error before any page was
processed; 3 output directory unusable or every write failed; 4 no page
converted.

Examples
--------
Convert the whole configured page range:

>>> from txttv_fragments.cli import main
>>> main()  # doctest: +SKIP

Preview two pages without writing:

>>> from txttv_fragments.cli import app
>>> app.run(["convert", "--pages", "100-101", "--dry-run"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import re
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter
from ruamel.yaml.error import YAMLError

from .batch import (
    ExitStatus,
    always_overwrite,
    prompt_overwrite,
    run_batch,
    write_report,
)
from .config import (
    ConfigError,
    ConvertConfig,
    check_config,
    load_convert_config,
    parse_page_selection,
)
from .validation import FragmentValidator

DEFAULT_CONFIG = Path("config/fragments.yaml")
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

app = App(name="fragments", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


def _load_config(path: Path | None) -> ConvertConfig:
    """Load ``path``, or the default config file when it exists."""
    if path is None and DEFAULT_CONFIG.exists():
        path = DEFAULT_CONFIG
    return load_convert_config(path)


@app.command(help="Convert TxtTV pages into policy fragment XML documents.")
def convert(
    *,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to fragments.yaml", env_var="INPUT_CONFIG")
    ] = None,
    source_dir: typ.Annotated[
        Path | None,
        Parameter(help="Directory holding the template and shared assets"),
    ] = None,
    content_dir: typ.Annotated[
        Path | None, Parameter(help="Directory holding page-<N> content files")
    ] = None,
    output_dir: typ.Annotated[
        Path | None, Parameter(help="Directory receiving the fragments")
    ] = None,
    pages: typ.Annotated[
        list[str] | None,
        Parameter(help="Pages to convert, e.g. 100-110 or 101,105 (default: all)"),
    ] = None,
    validate: typ.Annotated[
        bool | None, Parameter(help="Run the four validation layers")
    ] = None,
    force: typ.Annotated[
        bool, Parameter(help="Overwrite existing fragments without asking")
    ] = False,
    dry_run: typ.Annotated[
        bool, Parameter(help="Run every step except writing files")
    ] = False,
    verbose: typ.Annotated[bool, Parameter(help="Log debug diagnostics")] = False,
    workers: typ.Annotated[
        int | None, Parameter(help="Convert pages on this many threads")
    ] = None,
    report: typ.Annotated[
        Path | None, Parameter(help="Write a JSON batch report to this path")
    ] = None,
) -> int:
    """Convert the requested pages and return the process exit status.

    Parameters
    ----------
    config : Path or None, optional
        Settings file; defaults to ``config/fragments.yaml`` when present,
        otherwise built-in defaults apply.
    source_dir, content_dir, output_dir : Path or None, optional
        Override the corresponding configured directories.
    pages : list[str] or None, optional
        Page numbers, ranges, or comma-separated mixes; every page in the
        configured range when omitted.
    validate : bool or None, optional
        Override the configured validation toggle.
    force : bool, optional
        Overwrite existing fragments without confirmation.
    dry_run : bool, optional
        Report what would be written without touching the output directory.
    verbose : bool, optional
        Enable debug logging.
    workers : int or None, optional
        Thread count for page conversion.
    report : Path or None, optional
        Where to write the JSON batch report.

    Returns
    -------
    int
        One of the :class:`~txttv_fragments.batch.ExitStatus` codes.
    """
    _configure_logging(verbose)
    try:
        settings = _load_config(config).with_overrides(
            source_dir=source_dir,
            content_dir=content_dir,
            output_dir=output_dir,
            validate=validate,
            workers=workers,
            force=force or None,
            dry_run=dry_run or None,
        )
        check_config(settings)
        selected = (
            parse_page_selection(pages, settings.min_page, settings.max_page)
            if pages
            else settings.page_range()
        )
    except (ConfigError, FileNotFoundError, YAMLError) as exc:
        print(f"error: {exc}")
        return int(ExitStatus.INPUT_ERROR)

    confirm = always_overwrite if settings.force else prompt_overwrite
    result, status = run_batch(selected, settings, confirm=confirm)
    if result is None:
        print(f"error: conversion aborted (exit {int(status)}); see log for details")
        return int(status)

    for outcome in result.succeeded:
        verb = "would write" if outcome.dry_run else "wrote"
        path = typ.cast("Path", outcome.path)
        print(f"{verb} {_format_path(path)} ({outcome.byte_size} bytes)")
    for line in result.summary_lines():
        print(line)
    if report is not None:
        print(f"wrote {_format_path(write_report(result, report))}")
    return int(status)


_PAGE_IN_NAME = re.compile(r"(\d+)")


def _page_from_path(path: Path) -> int | None:
    """Return the first number in the file name, used for the page check."""
    match = _PAGE_IN_NAME.search(path.stem)
    return int(match.group(1)) if match else None


@app.command(help="Validate existing policy fragment files.")
def validate(
    paths: list[Path],
    *,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to fragments.yaml", env_var="INPUT_CONFIG")
    ] = None,
    verbose: typ.Annotated[bool, Parameter(help="Log debug diagnostics")] = False,
) -> int:
    """Validate fragments on disk and print each layer's verdict.

    Returns
    -------
    int
        ``0`` when every file is valid, ``4`` when any is invalid, and ``2``
        when a file is missing or the configuration cannot be loaded.
    """
    _configure_logging(verbose)
    try:
        settings = _load_config(config)
    except (ConfigError, FileNotFoundError, YAMLError) as exc:
        print(f"error: {exc}")
        return int(ExitStatus.INPUT_ERROR)

    validator = FragmentValidator(
        root_tag=settings.root_tag,
        body_tag=settings.body_tag,
        allowed_script_origins=settings.allowed_script_origins,
    )
    missing = False
    invalid = False
    for path in paths:
        try:
            result = validator.validate_file(path, page_number=_page_from_path(path))
        except OSError as exc:
            print(f"{_format_path(path)}: unreadable ({exc.strerror or exc})")
            missing = True
            continue
        verdict = "valid" if result.valid else "invalid"
        print(f"{_format_path(path)}: {verdict}")
        for layer in result.layers:
            print(f"  [{layer.status}] {layer.name}")
            for message in layer.errors:
                print(f"    error: {message}")
            for message in layer.warnings:
                print(f"    warning: {message}")
        invalid = invalid or not result.valid

    if missing:
        return int(ExitStatus.INPUT_ERROR)
    if invalid:
        return int(ExitStatus.TOTAL_FAILURE)
    return int(ExitStatus.SUCCESS)


def main() -> None:
    """Invoke the Cyclopts application and exit with the command's status.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    status = app()
    if isinstance(status, int):
        raise SystemExit(status)


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
