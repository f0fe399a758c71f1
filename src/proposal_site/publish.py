"""
Atomic publishing of build output.

A build writes everything into a staging directory next to the output
directory. Only when the whole build succeeded is the staging directory
swapped into place; readers never observe a half-written site.

Example:
    >>> with StagingArea(Path("build")) as staging:
    ...     (staging.path / "index.html").write_text(html)
    ...     staging.publish()
"""

from __future__ import annotations

import os
import shutil
import tempfile
import uuid
from pathlib import Path

from proposal_site.errors import PublishError
from proposal_site.logging import get_logger

logger = get_logger(__name__)


class StagingArea:
    """Sibling staging directory for one build.

    Manifesto:
        The previous output stays untouched until the new output is
        complete. A failed or cancelled build leaves no trace: the staging
        directory is removed and the old site keeps being served.

    Architecture:
        ```
        output_dir/               (live site, untouched during the build)
        .output_dir.staging-XXXX/ (build writes here)
                │
                ▼ publish()
        output_dir ──rename──► .output_dir.backup-XXXX
        staging    ──rename──► output_dir
        backup     ──rmtree
        ```

    Guardrails:
        - Do NOT write into the live output directory
          ✅ Write under ``staging.path`` and call ``publish()``
        - Do NOT leave staging behind on failure
          ✅ Use the context manager; unpublished staging is discarded on exit

    Tags:
        - publishing
        - atomic
        - filesystem

    Doc-Types:
        - ARCHITECTURE (section: "Build Pipeline", priority: 6)
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.path: Path | None = None
        self.published = False

    def __enter__(self) -> StagingArea:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self.published:
            self.discard()

    def open(self) -> Path:
        """Create the staging directory next to the output directory."""
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise PublishError(
                f"Output path {self.output_dir} exists and is not a directory"
            ).with_context(path=str(self.output_dir))

        parent = self.output_dir.resolve().parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            self.path = Path(
                tempfile.mkdtemp(prefix=f".{self.output_dir.name}.staging-", dir=parent)
            )
        except OSError as e:
            raise PublishError(
                f"Cannot create staging directory in {parent}", cause=e
            ).with_context(path=str(parent)) from e

        logger.debug("publish.staging_created", staging=str(self.path))
        return self.path

    def publish(self) -> Path:
        """Swap the staging directory into place.

        Returns:
            The output directory

        Raises:
            PublishError: If the swap failed; the previous output is restored
        """
        if self.path is None or self.published:
            raise PublishError("Staging area is not open")

        target = self.output_dir.resolve()
        backup = None
        if target.exists():
            backup = target.parent / f".{target.name}.backup-{uuid.uuid4().hex[:8]}"
            try:
                os.replace(target, backup)
            except OSError as e:
                raise PublishError(
                    f"Cannot move existing output {target} aside", cause=e
                ).with_context(path=str(target)) from e

        try:
            os.replace(self.path, target)
        except OSError as e:
            if backup is not None:
                os.replace(backup, target)
            raise PublishError(
                f"Cannot move staged output into {target}", cause=e
            ).with_context(path=str(target)) from e

        self.published = True
        if backup is not None:
            shutil.rmtree(backup, ignore_errors=True)

        logger.info("publish.completed", output=str(target))
        return target

    def discard(self) -> None:
        """Remove the staging directory (no-op once published)."""
        if self.path is not None and not self.published:
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug("publish.staging_discarded", staging=str(self.path))
            self.path = None


__all__ = ["StagingArea"]
