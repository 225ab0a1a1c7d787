"""Load API descriptions from a URL, local file, or stdin.

This module handles the I/O for fetching raw OpenAPI/Swagger documents and
converting them into Python dictionaries. It supports both JSON and YAML with
automatic format detection, and recognises Swagger 2.x as well as OpenAPI 3.x
documents.

The public functions are:

* :func:`load_spec` -- Load and parse a raw document from any supported source.
* :func:`parse_spec_text` -- Parse already-fetched text (used by discovery
  probes, which do their own HTTP).
* :func:`detect_spec_version` -- Check the ``swagger``/``openapi`` field and
  return the version string.
* :func:`load_document` -- All of the above, wrapped in a
  :class:`~specbind.models.SpecDocument`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specbind.exceptions import SpecNotFound, SpecParseError
from specbind.models import SpecDocument


def load_document(source: str, timeout: float = 30.0) -> SpecDocument:
    """Load, parse, and version-check a spec from *source*.

    Args:
        source: A URL (http/https), file path, or ``'-'`` for stdin.
        timeout: Seconds to wait when *source* is a URL.

    Returns:
        The :class:`~specbind.models.SpecDocument`.

    Raises:
        SpecNotFound: If the file does not exist or the URL cannot be fetched.
        SpecParseError: If the content cannot be parsed or is not an
            OpenAPI/Swagger document.
    """
    raw = load_spec(source, timeout=timeout)
    version = detect_spec_version(raw)
    return SpecDocument(raw=raw, version=version, source=source)


def load_spec(source: str, timeout: float = 30.0) -> dict[str, Any]:
    """Load a spec from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        timeout: Seconds to wait when *source* is a URL.

    Returns:
        The parsed spec as a dictionary.

    Raises:
        SpecNotFound: If the source does not exist or cannot be fetched.
        SpecParseError: If the content cannot be read or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source, timeout)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return parse_spec_text(content, hint="stdin")


def _load_from_url(url: str, timeout: float) -> dict[str, Any]:
    """Fetch spec from URL. Supports JSON and YAML responses.

    Raises:
        SpecNotFound: If the URL cannot be fetched.
        SpecParseError: If the content cannot be parsed.
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecNotFound(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecNotFound(f"Failed to fetch spec from {url}: {exc}") from exc

    return parse_spec_text(response.text, hint=content_type_hint(response))


def _load_from_file(path: str) -> dict[str, Any]:
    """Load spec from a local ``.json``, ``.yaml`` or ``.yml`` file.

    Falls back to content-based detection for other extensions.

    Raises:
        SpecNotFound: If the file does not exist.
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecNotFound(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return parse_spec_text(content, hint=hint)


def content_type_hint(response: httpx.Response) -> str:
    """Return ``'json'``, ``'yaml'`` or ``''`` from a response's content type."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    return ""


def parse_spec_text(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format, or
            does not contain a mapping at the top level.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    "Spec must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        if not isinstance(result, dict):
            raise SpecParseError(
                "Spec must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SpecParseError(msg)


def detect_spec_version(spec: dict[str, Any]) -> str:
    """Validate and return the Swagger/OpenAPI version string.

    Accepts Swagger 2.x (``swagger: "2.0"``) and any OpenAPI 3.x version. The
    document must also carry a ``paths`` object.

    Args:
        spec: The parsed spec dictionary.

    Returns:
        The version string (e.g. ``'2.0'``, ``'3.0.3'``, ``'3.1.0'``).

    Raises:
        SpecParseError: If the version is missing or unsupported, or the
            ``paths`` object is missing.
    """
    if "swagger" in spec:
        version_str = str(spec["swagger"])
        if not version_str.startswith("2."):
            raise SpecParseError(
                f"Unsupported Swagger version: {version_str}. "
                "Swagger 2.x and OpenAPI 3.x are supported."
            )
    elif "openapi" in spec:
        version_str = str(spec["openapi"])
        if not version_str.startswith("3."):
            raise SpecParseError(
                f"Unsupported OpenAPI version: {version_str}. "
                "Swagger 2.x and OpenAPI 3.x are supported."
            )
    else:
        raise SpecParseError(
            "Missing 'openapi' or 'swagger' field. "
            "Is this an OpenAPI/Swagger document?"
        )

    if not isinstance(spec.get("paths"), dict):
        raise SpecParseError("Spec has no 'paths' object")

    return version_str
