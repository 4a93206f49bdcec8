"""Batch orchestration for converting TxtTV pages into policy fragments.

:class:`BatchOrchestrator` loads the shared template and assets once, then
drives load → render → assemble → validate → write for each requested page.
Per-page failures are recorded in a :class:`BatchResult` and never stop
sibling pages; batch prerequisites (template, assets, output directory,
page selection) raise before any page is touched.

Conversion up to the write is pure, so pages may be converted on a thread
pool. Overwrite confirmation and writes always happen on the calling thread
in page order, which keeps prompts from interleaving and output stable.

Example
-------
>>> from txttv_fragments.config import ConvertConfig
>>> orchestrator = BatchOrchestrator(ConvertConfig(), confirm=never_overwrite)
>>> result = orchestrator.run([100, 101])  # doctest: +SKIP
>>> int(result.exit_status)  # doctest: +SKIP
0
"""

from __future__ import annotations

import concurrent.futures as cf
import dataclasses as dc
import enum
import json
import logging
import sys
import typing as typ

from .config import ConfigError, check_config
from .errors import (
    ConversionError,
    InputError,
    OutputError,
    TemplateError,
    ValidationError,
)
from .generator import FragmentAssembler, render_page, write_fragment
from .sources import load_page_content, load_shared_assets, load_template
from .validation import FragmentValidator

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .config import ConvertConfig
    from .generator import PageTemplate, PolicyFragment, SharedAssets
    from .validation import ValidationReport

logger = logging.getLogger(__name__)

ConfirmOverwrite = typ.Callable[["Path"], bool]


class Stage(enum.StrEnum):
    """Pipeline stage at which a page failed."""

    LOAD = "load"
    RENDER = "render"
    ASSEMBLE = "assemble"
    VALIDATE = "validate"
    WRITE = "write"


class OutcomeStatus(enum.StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExitStatus(enum.IntEnum):
    """Process exit codes for a conversion run."""

    SUCCESS = 0
    PARTIAL_FAILURE = 1
    INPUT_ERROR = 2
    OUTPUT_ERROR = 3
    TOTAL_FAILURE = 4


@dc.dataclass(frozen=True, slots=True)
class PageOutcome:
    """What happened to one requested page."""

    page: int
    status: OutcomeStatus
    path: Path | None = None
    byte_size: int | None = None
    stage: Stage | None = None
    message: str | None = None
    report: ValidationReport | None = None
    dry_run: bool = False
    existed: bool = False

    def to_dict(self) -> dict[str, typ.Any]:
        payload: dict[str, typ.Any] = {"page": self.page, "status": str(self.status)}
        if self.path is not None:
            payload["path"] = str(self.path)
        if self.byte_size is not None:
            payload["bytes"] = self.byte_size
        if self.stage is not None:
            payload["stage"] = str(self.stage)
        if self.message:
            payload["message"] = self.message
        if self.report is not None:
            payload["validation"] = self.report.to_dict()
        return payload


@dc.dataclass(slots=True)
class BatchResult:
    """Outcomes for every requested page plus the derived exit status."""

    requested: list[int]
    dry_run: bool = False
    outcomes: dict[int, PageOutcome] = dc.field(default_factory=dict)

    def record(self, outcome: PageOutcome) -> None:
        self.outcomes[outcome.page] = outcome

    def _with_status(self, status: OutcomeStatus) -> list[PageOutcome]:
        return sorted(
            (item for item in self.outcomes.values() if item.status is status),
            key=lambda item: item.page,
        )

    @property
    def succeeded(self) -> list[PageOutcome]:
        return self._with_status(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> list[PageOutcome]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> list[PageOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def exit_status(self) -> ExitStatus:
        """Return 0 with no failures, 1 for a mix, 4 when nothing succeeded.

        A batch where nothing succeeded and every failure happened while
        writing returns 3: the destination is unusable, not the pages.
        """
        failed = self.failed
        if not failed:
            return ExitStatus.SUCCESS
        if self.succeeded:
            return ExitStatus.PARTIAL_FAILURE
        if all(item.stage is Stage.WRITE for item in failed):
            return ExitStatus.OUTPUT_ERROR
        return ExitStatus.TOTAL_FAILURE

    def summary_lines(self) -> list[str]:
        """Return human-readable summary lines for the CLI."""
        verb = "Would convert" if self.dry_run else "Converted"
        lines = [
            f"{verb} {len(self.succeeded)} of {len(self.requested)} page(s); "
            f"{len(self.failed)} failed; {len(self.skipped)} skipped."
        ]
        if self.succeeded:
            pages = ", ".join(str(item.page) for item in self.succeeded)
            lines.append(f"  succeeded: {pages}")
        if self.skipped:
            pages = ", ".join(str(item.page) for item in self.skipped)
            lines.append(f"  skipped: {pages}")
        lines.extend(
            f"  failed {item.page} [{item.stage}]: {item.message}" for item in self.failed
        )
        return lines

    def to_dict(self) -> dict[str, typ.Any]:
        return {
            "dry_run": self.dry_run,
            "exit_status": int(self.exit_status),
            "requested": list(self.requested),
            "succeeded": [item.page for item in self.succeeded],
            "failed": [item.page for item in self.failed],
            "skipped": [item.page for item in self.skipped],
            "pages": [
                self.outcomes[page].to_dict()
                for page in sorted(self.outcomes)
            ],
        }


def always_overwrite(path: Path) -> bool:
    """Confirmation policy that overwrites every existing fragment."""
    return True


def never_overwrite(path: Path) -> bool:
    """Confirmation policy that keeps every existing fragment."""
    logger.info("Keeping existing %s", path)
    return False


def prompt_overwrite(path: Path) -> bool:
    """Ask on the console before overwriting; non-interactive runs decline."""
    if not sys.stdin.isatty():
        logger.warning("%s exists; not overwriting without --force.", path)
        return False
    answer = input(f"{path} exists. Overwrite? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


@dc.dataclass(frozen=True, slots=True)
class _Converted:
    page: int
    fragment: PolicyFragment | None = None
    report: ValidationReport | None = None
    failure: PageOutcome | None = None


class BatchOrchestrator:
    """Convert a batch of pages and collect their outcomes."""

    def __init__(
        self,
        config: ConvertConfig,
        *,
        confirm: ConfirmOverwrite | None = None,
        assembler: FragmentAssembler | None = None,
        validator: FragmentValidator | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Parameters
        ----------
        config : ConvertConfig
            Paths, limits, and run flags for the batch.
        confirm : callable, optional
            Decides whether an existing fragment may be overwritten when
            neither ``force`` nor ``dry_run`` is set. Defaults to
            :func:`never_overwrite`.
        assembler, validator : optional
            Overrides for the assembler and validator; built from ``config``
            when omitted.
        """
        self.config = config
        self.confirm = confirm or never_overwrite
        self.assembler = assembler or FragmentAssembler(
            root_tag=config.root_tag,
            body_tag=config.body_tag,
            max_bytes=config.max_fragment_bytes,
        )
        self.validator = validator or FragmentValidator(
            root_tag=config.root_tag,
            body_tag=config.body_tag,
            allowed_script_origins=config.allowed_script_origins,
        )
        self.template: PageTemplate | None = None
        self.assets: SharedAssets | None = None

    def check_pages(self, pages: cabc.Sequence[int]) -> list[int]:
        """Reject empty, out-of-range, or colliding page selections.

        Raises
        ------
        ConfigError
            If no pages were requested, a page lies outside the configured
            range, or two requested pages map to the same output path.
        """
        if not pages:
            msg = "No pages requested."
            raise ConfigError(msg)
        config = self.config
        outside = [p for p in pages if not config.min_page <= p <= config.max_page]
        if outside:
            listed = ", ".join(str(p) for p in outside)
            msg = (
                f"Pages outside the configured range "
                f"{config.min_page}-{config.max_page}: {listed}"
            )
            raise ConfigError(msg)
        claimed: dict[Path, int] = {}
        for page in pages:
            path = config.output_path(page)
            if path in claimed:
                msg = f"Pages {claimed[path]} and {page} both map to {path}."
                raise ConfigError(msg)
            claimed[path] = page
        return list(pages)

    def prepare(self) -> None:
        """Load batch prerequisites and make sure the output directory exists.

        Raises
        ------
        InputError
            If the template or an explicitly listed asset is missing.
        TemplateError
            If the template has no ``{{CONTENT}}`` placeholder.
        OutputError
            If the output directory cannot be created.
        """
        self.template = load_template(self.config.template_path)
        self.assets = load_shared_assets(self.config)
        if self.config.dry_run:
            return
        output_dir = self.config.output_dir
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Unable to create output directory {output_dir}: {exc.strerror or exc}"
            raise OutputError(msg, path=output_dir) from exc

    def run(self, pages: cabc.Sequence[int]) -> BatchResult:
        """Convert ``pages`` and return their outcomes.

        Raises
        ------
        ConfigError, InputError, TemplateError, OutputError
            Batch-wide problems found before any page is converted.
        """
        check_config(self.config)
        selected = self.check_pages(pages)
        self.prepare()
        result = BatchResult(requested=selected, dry_run=self.config.dry_run)
        for converted in sorted(self._convert_all(selected), key=lambda c: c.page):
            outcome = self._finish(converted)
            result.record(outcome)
            if outcome.status is OutcomeStatus.FAILED:
                logger.info("Page %d failed at %s: %s", outcome.page, outcome.stage, outcome.message)
        return result

    def _convert_all(self, pages: list[int]) -> list[_Converted]:
        workers = min(self.config.workers, len(pages))
        if workers <= 1:
            return [self.convert_page(page) for page in pages]
        with cf.ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.convert_page, pages))

    def convert_page(self, page: int) -> _Converted:
        """Run load, render, assemble, and validate for ``page``."""
        if self.template is None or self.assets is None:
            msg = "prepare() must run before pages are converted."
            raise RuntimeError(msg)
        config = self.config
        stage = Stage.LOAD
        try:
            content = load_page_content(config, page)
            stage = Stage.RENDER
            rendered = render_page(
                self.template,
                page,
                content,
                self.assets.style,
                self.assets.script,
                config.min_page,
                config.max_page,
            )
            stage = Stage.ASSEMBLE
            fragment = self.assembler.assemble(rendered.html, page_number=page)
            report = None
            if config.validate:
                stage = Stage.VALIDATE
                report = self.validator.validate(fragment.to_bytes(), page_number=page)
                if not report.valid:
                    raise ValidationError(report)
        except TemplateError:
            raise
        except ConversionError as exc:
            failure = PageOutcome(
                page=page,
                status=OutcomeStatus.FAILED,
                stage=stage,
                message=str(exc),
                report=exc.report if isinstance(exc, ValidationError) else None,
            )
            return _Converted(page=page, failure=failure)
        return _Converted(page=page, fragment=fragment, report=report)

    def _finish(self, converted: _Converted) -> PageOutcome:
        if converted.failure is not None:
            return converted.failure
        fragment = typ.cast("PolicyFragment", converted.fragment)
        page = converted.page
        path = self.config.output_path(page)
        existed = path.exists()
        common = {
            "page": page,
            "path": path,
            "byte_size": fragment.byte_size,
            "report": converted.report,
            "existed": existed,
        }
        if self.config.dry_run:
            return PageOutcome(status=OutcomeStatus.SUCCEEDED, dry_run=True, **common)
        if existed and not self.config.force and not self.confirm(path):
            return PageOutcome(
                status=OutcomeStatus.SKIPPED,
                message=f"{path} exists and was not overwritten.",
                **common,
            )
        try:
            write_fragment(fragment, path)
        except OutputError as exc:
            return PageOutcome(
                status=OutcomeStatus.FAILED,
                stage=Stage.WRITE,
                message=str(exc),
                **common,
            )
        logger.debug("Wrote %s (%d bytes)", path, fragment.byte_size)
        return PageOutcome(status=OutcomeStatus.SUCCEEDED, **common)


def run_batch(
    pages: cabc.Sequence[int],
    config: ConvertConfig,
    *,
    confirm: ConfirmOverwrite | None = None,
) -> tuple[BatchResult | None, ExitStatus]:
    """Run a batch and map batch-wide errors onto exit statuses.

    Returns
    -------
    tuple[BatchResult or None, ExitStatus]
        The batch result (``None`` when the run aborted before any page was
        converted) and the process exit status.
    """
    orchestrator = BatchOrchestrator(config, confirm=confirm)
    try:
        result = orchestrator.run(pages)
    except (ConfigError, InputError, TemplateError) as exc:
        logger.error("%s", exc)
        return None, ExitStatus.INPUT_ERROR
    except OutputError as exc:
        logger.error("%s", exc)
        return None, ExitStatus.OUTPUT_ERROR
    return result, result.exit_status


def write_report(result: BatchResult, path: Path) -> Path:
    """Persist the batch result as JSON for CI consumption."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


__all__ = [
    "BatchOrchestrator",
    "BatchResult",
    "ConfirmOverwrite",
    "ExitStatus",
    "OutcomeStatus",
    "PageOutcome",
    "Stage",
    "always_overwrite",
    "never_overwrite",
    "prompt_overwrite",
    "run_batch",
    "write_report",
]
