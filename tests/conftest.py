"""
Shared pytest fixtures for all tests.
"""

from pathlib import Path

import pytest

from mdchunk.core.config import Settings, get_settings
from mdchunk.splitters.markdown_header import MarkdownHeaderTextSplitter
from mdchunk.utils.text_splitter import default_splitter
from tests.helpers import get_test_settings

# ---------------------------------------------------------------------------
# Automatic test markers based on path
# ---------------------------------------------------------------------------
# We want to avoid sprinkling `@pytest.mark.unit` / `integration` decorators
# throughout the codebase.  Instead, assign the marker implicitly from the
# directory the test file lives in.


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Dynamically add pytest markers depending on filepath.

    Any test located in ``tests/unit`` gets the ``unit`` marker and tests in
    ``tests/integration`` get ``integration`` (e.g. ``pytest -m unit``).
    """

    root_path = Path(config.rootdir)

    for item in items:
        rel_path = Path(item.fspath).resolve().relative_to(root_path).as_posix()

        if rel_path.startswith("tests/unit/"):
            item.add_marker("unit")
        elif rel_path.startswith("tests/integration/"):
            item.add_marker("integration")


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------
# `default_splitter()` caches a splitter built from MDCHUNK_* variables.  Tests
# must never depend on the developer's shell or `.env`, so the variables are
# cleared and the cache is dropped around every test.


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for name in ("CHUNK_SIZE", "CHUNK_OVERLAP", "MAX_DEPTH", "LOG_LEVEL"):
        monkeypatch.delenv(f"MDCHUNK_{name}", raising=False)
    get_settings.cache_clear()
    default_splitter.cache_clear()
    yield
    get_settings.cache_clear()
    default_splitter.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


@pytest.fixture
def small_splitter(test_settings: Settings) -> MarkdownHeaderTextSplitter:
    """Splitter with the 64/32 budget used throughout the scenario tests."""
    return MarkdownHeaderTextSplitter.from_settings(test_settings)
