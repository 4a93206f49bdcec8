"""Integration tests for the batch orchestrator.

Every test builds a small TxtTV site under ``tmp_path`` (template, shared
assets, and ``page-<N>.txt`` content files) and runs the real pipeline
through :class:`BatchOrchestrator` or :func:`run_batch`. The scenarios cover
the exit-code matrix, dry runs, overwrite confirmation, per-page failure
isolation, size and character ceilings, threaded conversion, and byte-level
idempotency of the written fragments.
"""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from txttv_fragments import batch
from txttv_fragments._constants import UTF8_BOM
from txttv_fragments.batch import (
    BatchOrchestrator,
    ExitStatus,
    OutcomeStatus,
    Stage,
    prompt_overwrite,
    run_batch,
    write_report,
)
from txttv_fragments.config import ConfigError, ConvertConfig
from txttv_fragments.errors import OutputError
from txttv_fragments.validation import FragmentDocument

TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>TxtTV {{PAGE_NUMBER}}</title><style>{{STYLE}}</style></head>
<body>
<nav><a href="?page={{PREV_PAGE}}">prev</a> <a href="?page={{NEXT_PAGE}}">next</a></nav>
<main>{{CONTENT}}</main>
<script>{{SCRIPT}}</script>
</body>
</html>
"""

HEADLESS_TEMPLATE = """<!DOCTYPE html>
<html><body><main>{{PAGE_NUMBER}} {{CONTENT}}</main></body></html>
"""


def _make_site(
    tmp_path: Path,
    pages: dict[int, str],
    *,
    template: str | None = TEMPLATE,
    **overrides: object,
) -> ConvertConfig:
    source_dir = tmp_path / "web"
    content_dir = tmp_path / "content"
    (source_dir / "styles").mkdir(parents=True)
    (source_dir / "scripts").mkdir()
    content_dir.mkdir()
    if template is not None:
        (source_dir / "template.html").write_text(template, encoding="utf-8")
    (source_dir / "styles" / "site.css").write_text("main{color:#0f0}", encoding="utf-8")
    (source_dir / "scripts" / "navigation.js").write_text(
        "document.title += '';", encoding="utf-8"
    )
    for page, text in pages.items():
        (content_dir / f"page-{page}.txt").write_text(text, encoding="utf-8")
    config = ConvertConfig(
        source_dir=source_dir,
        content_dir=content_dir,
        output_dir=tmp_path / "out",
        min_page=100,
        max_page=110,
    )
    return config.with_overrides(**overrides)


THREE_PAGES = {100: "News", 101: "Weather", 102: "Sport"}


def test_all_pages_succeed(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.SUCCESS
    assert result is not None
    assert [item.page for item in result.succeeded] == [100, 101, 102]
    for page in (100, 101, 102):
        data = config.output_path(page).read_bytes()
        assert data.startswith(UTF8_BOM)


def test_written_fragment_embeds_rendered_page(tmp_path: Path) -> None:
    config = _make_site(tmp_path, {100: "Headlines ]]> here"})
    run_batch([100], config)
    document = FragmentDocument.parse(config.output_path(100).read_bytes())
    assert document.parse_error is None
    soup = BeautifulSoup(document.decoded_html, "html.parser")
    assert soup.find("main").get_text() == "Headlines ]]> here"
    links = [a["href"] for a in soup.find_all("a")]
    assert links == ["?page=110", "?page=101"]
    assert soup.find("style").get_text() == "main{color:#0f0}"


def test_one_validation_failure_is_partial(tmp_path: Path) -> None:
    pages = dict(THREE_PAGES)
    pages[101] = "Weather\x0b warning"
    config = _make_site(tmp_path, pages)
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.PARTIAL_FAILURE
    assert result is not None
    [failure] = result.failed
    assert failure.page == 101
    assert failure.stage is Stage.VALIDATE
    assert failure.report is not None
    assert not failure.report.layer("well-formedness").passed
    assert not config.output_path(101).exists()
    assert config.output_path(100).exists()
    assert config.output_path(102).exists()


def test_all_validation_failures_are_total(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, template=HEADLESS_TEMPLATE)
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.TOTAL_FAILURE
    assert result is not None
    assert {item.stage for item in result.failed} == {Stage.VALIDATE}
    assert not any(config.output_dir.iterdir())


def test_disabling_validation_writes_unchecked_pages(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, template=HEADLESS_TEMPLATE, validate=False)
    result, status = run_batch([100], config)
    assert status is ExitStatus.SUCCESS
    assert result is not None
    assert result.succeeded[0].report is None


def test_missing_template_aborts_before_any_page(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, template=None)
    result, status = run_batch([100, 101, 102], config)
    assert result is None
    assert status is ExitStatus.INPUT_ERROR
    assert not config.output_dir.exists()


def test_template_without_content_placeholder_aborts(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, template="<html>{{PAGE_NUMBER}}</html>")
    result, status = run_batch([100], config)
    assert result is None
    assert status is ExitStatus.INPUT_ERROR


def test_uncreatable_output_directory_is_output_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    config = _make_site(tmp_path, THREE_PAGES, output_dir=blocker / "out")
    result, status = run_batch([100], config)
    assert result is None
    assert status is ExitStatus.OUTPUT_ERROR


def test_duplicate_pages_are_rejected_up_front(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    with pytest.raises(ConfigError, match="both map to"):
        BatchOrchestrator(config).run([100, 101, 100])
    assert run_batch([100, 100], config)[1] is ExitStatus.INPUT_ERROR


def test_out_of_range_pages_are_rejected(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    with pytest.raises(ConfigError, match="outside the configured range"):
        BatchOrchestrator(config).run([99, 100])


def test_missing_content_fails_only_that_page(tmp_path: Path) -> None:
    config = _make_site(tmp_path, {100: "News", 102: "Sport"})
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.PARTIAL_FAILURE
    assert result is not None
    [failure] = result.failed
    assert (failure.page, failure.stage) == (101, Stage.LOAD)


def test_character_ceiling_is_inclusive(tmp_path: Path) -> None:
    config = _make_site(
        tmp_path, {100: "x" * 20, 101: "x" * 21}, max_content_chars=20
    )
    result, _status = run_batch([100, 101], config)
    assert result is not None
    assert [item.page for item in result.succeeded] == [100]
    assert result.failed[0].stage is Stage.LOAD


def test_oversized_fragment_is_not_written(tmp_path: Path) -> None:
    config = _make_site(tmp_path, {100: "x" * 1500}, max_fragment_bytes=1024)
    result, status = run_batch([100], config)
    assert status is ExitStatus.TOTAL_FAILURE
    assert result is not None
    assert result.failed[0].stage is Stage.ASSEMBLE
    assert "1024 byte limit" in (result.failed[0].message or "")
    assert not config.output_path(100).exists()


def test_dry_run_writes_nothing(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, dry_run=True)
    result, status = run_batch([100, 101], config)
    assert status is ExitStatus.SUCCESS
    assert result is not None
    assert all(item.dry_run for item in result.succeeded)
    assert result.succeeded[0].path == config.output_path(100)
    assert not config.output_dir.exists()
    assert result.summary_lines()[0].startswith("Would convert 2 of 2")


def test_declined_overwrite_is_skipped(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    config.output_dir.mkdir()
    existing = config.output_path(100)
    existing.write_text("keep me", encoding="utf-8")
    asked: list[Path] = []

    def decline(path: Path) -> bool:
        asked.append(path)
        return False

    result, status = run_batch([100, 101], config, confirm=decline)
    assert status is ExitStatus.SUCCESS
    assert result is not None
    assert asked == [existing]
    assert [item.page for item in result.skipped] == [100]
    assert existing.read_text(encoding="utf-8") == "keep me"


def test_accepted_overwrite_replaces_file(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    config.output_dir.mkdir()
    config.output_path(100).write_text("old", encoding="utf-8")
    result, _status = run_batch([100], config, confirm=lambda path: True)
    assert result is not None
    assert result.succeeded[0].existed
    assert config.output_path(100).read_bytes().startswith(UTF8_BOM)


def test_force_skips_confirmation(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, force=True)
    config.output_dir.mkdir()
    config.output_path(100).write_text("old", encoding="utf-8")

    def refuse(path: Path) -> bool:
        raise AssertionError("confirmation should not be requested")

    result, status = run_batch([100], config, confirm=refuse)
    assert status is ExitStatus.SUCCESS


def test_write_failure_is_recorded_per_page(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    real_write = batch.write_fragment

    def flaky_write(fragment, path):
        if fragment.page_number == 101:
            raise OutputError("disk full", path=path)
        return real_write(fragment, path)

    monkeypatch.setattr(batch, "write_fragment", flaky_write)
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.PARTIAL_FAILURE
    assert result is not None
    assert (result.failed[0].page, result.failed[0].stage) == (101, Stage.WRITE)


def test_every_write_failing_is_output_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = _make_site(tmp_path, THREE_PAGES)

    def deny(fragment, path):
        raise OutputError("read-only file system", path=path)

    monkeypatch.setattr(batch, "write_fragment", deny)
    result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.OUTPUT_ERROR
    assert result is not None
    assert [(item.page, item.stage) for item in result.failed] == [
        (100, Stage.WRITE),
        (101, Stage.WRITE),
        (102, Stage.WRITE),
    ]
    assert result.to_dict()["exit_status"] == 3


def test_mixed_stage_failures_without_success_are_total(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = _make_site(tmp_path, {100: "News", 102: "Sport"})

    def deny(fragment, path):
        raise OutputError("read-only file system", path=path)

    monkeypatch.setattr(batch, "write_fragment", deny)
    _result, status = run_batch([100, 101, 102], config)
    assert status is ExitStatus.TOTAL_FAILURE


def test_unknown_content_encoding_aborts_before_any_page(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, content_encoding="utf-9")
    with pytest.raises(ConfigError, match="utf-9"):
        BatchOrchestrator(config).run([100])
    result, status = run_batch([100], config)
    assert result is None
    assert status is ExitStatus.INPUT_ERROR
    assert not config.output_dir.exists()


def test_prompt_declines_when_stdin_is_not_a_terminal(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = _make_site(tmp_path, THREE_PAGES)
    config.output_dir.mkdir()
    existing = config.output_path(100)
    existing.write_text("keep me", encoding="utf-8")
    monkeypatch.setattr(batch.sys, "stdin", io.StringIO())

    def no_input(prompt: str = "") -> str:
        raise AssertionError("non-interactive runs must not read input")

    monkeypatch.setattr("builtins.input", no_input)
    result, status = run_batch([100], config, confirm=prompt_overwrite)
    assert status is ExitStatus.SUCCESS
    assert result is not None
    assert [item.page for item in result.skipped] == [100]
    assert existing.read_text(encoding="utf-8") == "keep me"


def test_repeated_runs_are_byte_identical(tmp_path: Path) -> None:
    config = _make_site(tmp_path, THREE_PAGES, force=True)
    run_batch([100, 101, 102], config)
    first = {p: config.output_path(p).read_bytes() for p in (100, 101, 102)}
    run_batch([100, 101, 102], config)
    second = {p: config.output_path(p).read_bytes() for p in (100, 101, 102)}
    assert first == second


def test_threaded_conversion_matches_sequential(tmp_path: Path) -> None:
    pages = {page: f"Page body {page}" for page in range(100, 111)}
    pages[104] = "bad\x0c"
    sequential = _make_site(tmp_path / "seq", pages)
    threaded = _make_site(tmp_path / "par", pages, workers=4)
    seq_result, seq_status = run_batch(list(range(110, 99, -1)), sequential)
    par_result, par_status = run_batch(list(range(110, 99, -1)), threaded)
    assert seq_status is par_status is ExitStatus.PARTIAL_FAILURE
    assert seq_result is not None and par_result is not None
    assert [i.page for i in par_result.succeeded] == [i.page for i in seq_result.succeeded]
    assert [i.page for i in par_result.failed] == [104]
    for page in range(100, 111):
        if page == 104:
            continue
        assert (
            threaded.output_path(page).read_bytes()
            == sequential.output_path(page).read_bytes()
        )


def test_summary_and_report(tmp_path: Path) -> None:
    config = _make_site(tmp_path, {100: "News", 102: "Sport"})
    result, _status = run_batch([100, 101, 102], config)
    assert result is not None
    lines = result.summary_lines()
    assert lines[0] == "Converted 2 of 3 page(s); 1 failed; 0 skipped."
    assert lines[-1].startswith("  failed 101 [load]:")
    report_path = write_report(result, tmp_path / "reports" / "batch.json")
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["exit_status"] == 1
    assert payload["failed"] == [101]
    assert payload["pages"][0]["validation"]["valid"] is True


def test_outcome_status_values() -> None:
    assert [str(status) for status in OutcomeStatus] == ["succeeded", "failed", "skipped"]
