"""
Shared pytest fixtures for proposal-site tests.

This module provides:
- Sample proposal files under ``tests/fixtures/peps`` copied into a temp dir
- A factory for writing ad-hoc proposal documents
- Settings pointing at a temporary output directory

Usage:
    def test_something(write_document, site_settings):
        write_document(42, body="See PEP 8.")
        report = SiteBuilder(site_settings).build()
"""

import shutil
from pathlib import Path
from typing import Callable

import pytest

from proposal_site.config import SiteSettings
from proposal_site.logging import configure_logging

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def document_text(
    number: int,
    title: str | None = None,
    status: str = "Draft",
    doc_type: str = "Standards Track",
    created: str = "01-Jan-2020",
    author: str = "Jane Doe <jane@example.org>",
    body: str = "",
    omit: tuple[str, ...] = (),
    **headers: str,
) -> str:
    """Build the text of a proposal document.

    Extra keyword headers are added after the standard ones, with
    underscores turned into dashes (``discussions_to`` -> ``Discussions-To``).
    """
    fields = {
        "PEP": str(number),
        "Title": title or f"Proposal {number}",
        "Author": author,
        "Status": status,
        "Type": doc_type,
        "Created": created,
    }
    for key, value in headers.items():
        fields["-".join(part.capitalize() for part in key.split("_"))] = value

    lines = [f"{key}: {value}" for key, value in fields.items() if key.lower() not in omit]
    text = "\n".join(lines) + "\n"
    if body:
        text += "\n" + body
    return text


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep PROPOSAL_SITE_* variables and stray .env files out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("PROPOSAL_SITE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    configure_logging(level="WARNING", json_format=False)


# =============================================================================
# Sample documents
# =============================================================================


@pytest.fixture
def make_text() -> Callable[..., str]:
    """The ``document_text`` builder, for tests that parse text directly."""
    return document_text


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def source_dir(tmp_path) -> Path:
    """Copy of the three sample proposals (and their image) in a temp dir."""
    target = tmp_path / "peps"
    shutil.copytree(FIXTURES_DIR / "peps", target)
    return target


@pytest.fixture
def empty_source_dir(tmp_path) -> Path:
    target = tmp_path / "source"
    target.mkdir()
    return target


@pytest.fixture
def write_document(empty_source_dir) -> Callable[..., Path]:
    """Factory writing ``pep-NNNN.rst`` files into ``empty_source_dir``."""

    def _write(number: int, **kwargs) -> Path:
        path = empty_source_dir / f"pep-{number:04d}.rst"
        path.write_text(document_text(number, **kwargs), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def site_settings(source_dir, tmp_path) -> SiteSettings:
    return SiteSettings(
        source_dir=source_dir,
        output_dir=tmp_path / "site",
        max_workers=4,
        log_level="WARNING",
        json_logs=False,
    )


@pytest.fixture
def generated_settings(empty_source_dir, tmp_path) -> SiteSettings:
    """Settings over ``empty_source_dir`` for tests that write their own documents."""
    return SiteSettings(
        source_dir=empty_source_dir,
        output_dir=tmp_path / "site",
        max_workers=8,
        log_level="WARNING",
        json_logs=False,
    )
