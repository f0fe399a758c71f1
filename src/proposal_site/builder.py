"""
Site builder.

Runs one build through its stages and publishes the result atomically.

Example:
    >>> report = SiteBuilder(SiteSettings(source_dir=Path("peps"))).build()
    >>> report.pages_written
    3
    >>> [d.target for d in report.dangling]
    [999]
"""

from __future__ import annotations

import json
import shutil
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from proposal_site.config import SiteSettings
from proposal_site.errors import BuildCancelled, BuildInProgress, SiteError
from proposal_site.index import Index, IndexBuilder
from proposal_site.logging import LogContext, get_logger
from proposal_site.models import Corpus, DanglingReference, Document, RenderWarning
from proposal_site.parser.header import load_corpus
from proposal_site.publish import StagingArea
from proposal_site.render import HtmlRenderer, PageRenderer
from proposal_site.resolver import CrossReferenceResolver, Resolution

logger = get_logger(__name__)

REPORT_FILE = "build-report.json"
INDEX_EXPORT = "api/peps.json"


class BuildStage(str, Enum):
    """Where a build currently is. Stages only ever move forward."""

    IDLE = "idle"
    PARSING = "parsing"
    RESOLVING = "resolving"
    INDEXING = "indexing"
    RENDERING = "rendering"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Analysis:
    """Output of the parse, resolve and index stages."""

    corpus: Corpus
    resolution: Resolution
    index: Index


@dataclass
class BuildReport:
    """Summary of one successful build, written as ``build-report.json``."""

    build_id: str
    output_dir: str
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    documents: int = 0
    pages: list[str] = field(default_factory=list)
    dangling: list[DanglingReference] = field(default_factory=list)
    warnings: list[RenderWarning] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def pages_written(self) -> int:
        return len(self.pages)

    @property
    def failed(self) -> list[int]:
        """Documents for which no page was produced."""
        return sorted(w.document for w in self.warnings if w.kind == "failure")

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def has_warnings(self) -> bool:
        return bool(self.dangling or self.warnings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_id": self.build_id,
            "output_dir": self.output_dir,
            "started_at": self.started_at.isoformat(),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "documents": self.documents,
            "pages_written": self.pages_written,
            "pages": list(self.pages),
            "dangling": [d.to_dict() for d in self.dangling],
            "warnings": [w.to_dict() for w in self.warnings],
            "failed": self.failed,
            "ok": self.ok,
            "has_warnings": self.has_warnings,
        }


class SiteBuilder:
    """Build and publish the site for one source directory.

    Manifesto:
        A build is all or nothing at the site level and forgiving at the
        page level. Header errors stop the build before anything is written;
        a page that fails to render is reported and the other pages are
        still published.

    Architecture:
        ```
        build()
          │
          ├──► PARSING     load_corpus()            CorpusError ─► abort
          ├──► RESOLVING   CrossReferenceResolver   dangling refs ─► report
          ├──► INDEXING    IndexBuilder
          ├──► RENDERING   ThreadPoolExecutor ─► staging/pep-NNNN.html
          │                  (failure ─► RenderWarning(kind="failure"))
          ├──► PUBLISHING  StagingArea.publish()    atomic swap
          └──► DONE        BuildReport
        ```

    Features:
        - Stages run strictly in order; ``cancel()`` stops before the next one
        - One build at a time per builder (``BuildInProgress`` otherwise)
        - Parallel rendering over the immutable corpus snapshot
        - ``build_id`` bound into every log line of the build

    Guardrails:
        - Do NOT write into the output directory before publishing
          ✅ Everything goes to the staging area first
        - Do NOT let one broken page abort the build
          ✅ Record a failure warning and continue

    Tags:
        - builder
        - pipeline
        - core_infrastructure

    Doc-Types:
        - API_REFERENCE (section: "Core Module", priority: 9)
        - ARCHITECTURE (section: "Build Pipeline", priority: 9)
    """

    def __init__(
        self,
        settings: SiteSettings | None = None,
        page_renderer: PageRenderer | None = None,
        html_renderer: HtmlRenderer | None = None,
    ):
        self.settings = settings or SiteSettings()
        self.page_renderer = page_renderer or PageRenderer(
            site_title=self.settings.site_title,
            color_scheme=self.settings.color_scheme,
        )
        self.html_renderer = html_renderer or HtmlRenderer(
            theme_dir=self.settings.theme_dir,
            site_title=self.settings.site_title,
        )
        self.stage = BuildStage.IDLE
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; takes effect before the next stage starts."""
        self._cancelled.set()
        logger.info("build.cancel_requested", stage=self.stage.value)

    def analyze(self) -> Analysis:
        """Run the parse, resolve and index stages without writing anything."""
        self._enter(BuildStage.PARSING)
        corpus = load_corpus(
            self.settings.source_dir,
            self.settings.include_patterns,
            max_workers=self.settings.max_workers,
        )

        self._enter(BuildStage.RESOLVING)
        resolution = CrossReferenceResolver(max_workers=self.settings.max_workers).resolve(corpus)

        self._enter(BuildStage.INDEXING)
        index = IndexBuilder(title=self.settings.site_title).build(corpus)

        return Analysis(corpus=corpus, resolution=resolution, index=index)

    def build(self) -> BuildReport:
        """Run a full build and publish the site.

        Returns:
            BuildReport for the published build

        Raises:
            CorpusError: If any document failed to parse (nothing written)
            BuildCancelled: If ``cancel()`` was called (nothing written)
            BuildInProgress: If this builder is already building
            PublishError: If the output could not be swapped into place
        """
        if not self._lock.acquire(blocking=False):
            raise BuildInProgress("A build is already running on this builder")

        build_id = uuid.uuid4().hex[:12]
        try:
            self._cancelled.clear()
            with LogContext(build_id=build_id):
                started = time.perf_counter()
                try:
                    report = self._run(build_id)
                except SiteError as e:
                    failed_at = self.stage
                    self.stage = BuildStage.FAILED
                    logger.error("build.failed", stage=failed_at.value, error=e.message)
                    raise
                report.elapsed_seconds = time.perf_counter() - started
                logger.info(
                    "build.completed",
                    pages=report.pages_written,
                    dangling=len(report.dangling),
                    warnings=len(report.warnings),
                    elapsed_seconds=round(report.elapsed_seconds, 3),
                )
                return report
        finally:
            self._lock.release()

    def _enter(self, stage: BuildStage) -> None:
        if self._cancelled.is_set():
            raise BuildCancelled(f"Build cancelled before {stage.value}").with_context(
                stage=stage.value
            )
        self.stage = stage
        logger.info("build.stage.started", stage=stage.value)

    def _run(self, build_id: str) -> BuildReport:
        started = time.perf_counter()
        analysis = self.analyze()
        report = BuildReport(
            build_id=build_id,
            output_dir=str(self.settings.output_dir),
            documents=len(analysis.corpus),
            dangling=list(analysis.resolution.dangling),
        )

        self._enter(BuildStage.RENDERING)
        with StagingArea(self.settings.output_dir) as staging:
            self._render_pages(analysis, staging.path, report)
            self._write(
                staging.path / "index.html",
                self.html_renderer.render_index(analysis.index, self.settings.color_scheme),
            )
            self._write(
                staging.path / INDEX_EXPORT,
                json.dumps(analysis.index.to_dict(), indent=2),
            )

            self._enter(BuildStage.PUBLISHING)
            if self.settings.write_report:
                report.elapsed_seconds = time.perf_counter() - started
                self._write(staging.path / REPORT_FILE, json.dumps(report.to_dict(), indent=2))
            staging.publish()

        self.stage = BuildStage.DONE
        return report

    # -- rendering ------------------------------------------------------

    def _render_pages(self, analysis: Analysis, staging: Path, report: BuildReport) -> None:
        documents = analysis.corpus.documents

        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            futures = [
                executor.submit(
                    copy_context().run, self._render_document, document, analysis, staging
                )
                for document in documents
            ]
            results = [future.result() for future in futures]

        for document, (assets, warnings) in zip(documents, results):
            report.warnings.extend(warnings)
            if assets is None:
                continue
            report.pages.append(document.slug)
            report.warnings.extend(self._copy_assets(document, assets, staging))

    def _render_document(
        self, document: Document, analysis: Analysis, staging: Path
    ) -> tuple[tuple[str, ...] | None, tuple[RenderWarning, ...]]:
        """Render and write one page.

        Returns:
            (assets to copy, warnings); assets is None when no page was written
        """
        number = document.number
        try:
            rendered = self.page_renderer.render(
                document,
                analysis.resolution.outgoing(number),
                analysis.index,
                referenced_by=analysis.resolution.referenced_by(number),
            )
            html = self.html_renderer.render_page(rendered.page)
            self._write(staging / f"{document.slug}.html", html)
        except Exception as e:
            # One broken page must not abort the build
            logger.error("render.document_failed", document=number, error=str(e), exc_info=True)
            return None, (RenderWarning(
                number, f"{document.label}: {e}", kind="failure", target=document.source
            ),)
        return rendered.page.assets, rendered.warnings

    def _copy_assets(
        self, document: Document, assets: tuple[str, ...], staging: Path
    ) -> list[RenderWarning]:
        warnings = []
        if document.path is None:
            return warnings
        root = document.path.parent
        for asset in assets:
            if "://" in asset or asset.startswith(("data:", "//")):
                continue
            destination = staging / asset
            if destination.exists():
                continue
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(root / asset, destination)
            except OSError as e:
                logger.warning("render.asset_copy_failed", document=document.number, asset=asset)
                warnings.append(RenderWarning(
                    document.number, f"{document.label}: cannot copy {asset}: {e}",
                    kind="asset", target=asset,
                ))
        return warnings

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


__all__ = ["Analysis", "BuildReport", "BuildStage", "SiteBuilder"]
