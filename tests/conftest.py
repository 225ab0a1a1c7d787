"""Shared test fixtures for specbind.

Provides reusable fixtures for loading spec fixtures, building configs and
normalized endpoints, isolating configuration, managing output state, and
running CLI commands. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import pytest

from specbind.models import Endpoint, GenerationConfig, SpecDocument
from specbind.output import OutputManager, reset_output, set_output

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use. The same applies to the handler that
    ``configure_logging`` attaches to the ``specbind`` logger.
    """
    yield
    reset_output()
    logger = logging.getLogger("specbind")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Raw spec fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def users_api_raw() -> dict[str, Any]:
    """Load the raw OpenAPI 3.0 users API dict."""
    with open(FIXTURES_DIR / "users_api_3.0.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_20_raw() -> dict[str, Any]:
    """Load the raw Swagger 2.0 petstore dict."""
    with open(FIXTURES_DIR / "petstore_2.0.json") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Parsed documents and endpoints
# ---------------------------------------------------------------------------


@pytest.fixture
def users_document(users_api_raw: dict[str, Any]) -> SpecDocument:
    return SpecDocument(raw=users_api_raw, version="3.0.3", source="users_api_3.0.json")


@pytest.fixture
def petstore_document(petstore_20_raw: dict[str, Any]) -> SpecDocument:
    return SpecDocument(raw=petstore_20_raw, version="2.0", source="petstore_2.0.json")


@pytest.fixture
def users_endpoints(users_document: SpecDocument) -> list[Endpoint]:
    """Normalized endpoints of the users API."""
    from specbind.parser.normalizer import normalize_endpoints

    return normalize_endpoints(users_document)


@pytest.fixture
def config(tmp_path: Path) -> GenerationConfig:
    """A config pointing at a fake backend and writing into tmp_path."""
    return GenerationConfig(
        base_url="http://backend.test",
        output_dir=str(tmp_path / "api"),
        discovery_timeout=2.0,
    )


# ---------------------------------------------------------------------------
# Fake backends
# ---------------------------------------------------------------------------


def spec_backend(
    documents: dict[str, Any],
    existing: dict[str, int] | None = None,
) -> httpx.MockTransport:
    """Build a MockTransport serving *documents* by path.

    Args:
        documents: Path -> JSON-serialisable body (served with 200) or an
            ``httpx.Response`` returned as is.
        existing: Path -> status code for other paths that exist. Anything
            else answers 404.
    """
    existing = existing or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in documents:
            body = documents[path]
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)
        if path in existing:
            return httpx.Response(existing[path])
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def make_backend():
    """Factory fixture wrapping :func:`spec_backend`."""
    return spec_backend


@pytest.fixture
def users_backend(users_api_raw: dict[str, Any]) -> httpx.MockTransport:
    """A backend exposing the users API at ``/openapi.json``."""
    return spec_backend({"/openapi.json": users_api_raw})


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_DATA_HOME to a subdirectory of tmp_path so that crash logs
    never touch the real user directory, clears all SPECBIND_* environment
    variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "SPECBIND_BASE_URL",
        "SPECBIND_FRAMEWORK",
        "SPECBIND_OUTPUT",
        "SPECBIND_AUTH",
        "SPECBIND_MOCK",
        "SPECBIND_SPEC",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager and reset it afterwards."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
