"""Exception hierarchy for specbind.

All exceptions inherit from :class:`SpecbindError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specbind.exit_codes`
and a ``stage`` attribute filled in by :class:`~specbind.pipeline.Pipeline`
when the error escapes one of its stages. The top-level handler in
:func:`specbind.app.main` catches ``SpecbindError``, prints the stage and error
kind, and exits with the matching code.

Subclass hierarchy::

    SpecbindError (exit 1)
    +-- ConfigError            (exit 2)
    +-- SpecNotFound           (exit 3)
    +-- SpecParseError         (exit 4)
    +-- UnresolvedSchemaRef    (exit 5)
    +-- DuplicateEndpoint      (exit 6)
    +-- UnsupportedAuthMode    (exit 7)
    +-- UnsupportedFramework   (exit 7)
    +-- NameCollision          (exit 8)
    +-- NetworkError           (exit 9, transient, absorbed by discovery)
    +-- EmissionError          (exit 10)
"""

from __future__ import annotations

from typing import Optional

from specbind.exit_codes import (
    EXIT_DUPLICATE_ENDPOINT,
    EXIT_EMISSION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NAME_COLLISION,
    EXIT_NETWORK_ERROR,
    EXIT_SCHEMA_ERROR,
    EXIT_SPEC_NOT_FOUND,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_UNSUPPORTED,
)


class SpecbindError(Exception):
    """Base exception for all specbind errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specbind.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.

    Attributes:
        stage: Name of the pipeline stage the error escaped from
            (``"discovering"``, ``"normalizing"``, ``"generating"``), or
            ``None`` when raised outside a pipeline run.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.stage: Optional[str] = None

    @property
    def kind(self) -> str:
        """The error kind shown to users, e.g. ``"DuplicateEndpoint"``."""
        return type(self).__name__


class ConfigError(SpecbindError):
    """Raised for invalid configuration (bad flags, env values, or ``specbind.json``)."""

    exit_code = EXIT_INVALID_USAGE


class SpecNotFound(SpecbindError):
    """Raised when no strategy in the discovery chain produced anything usable."""

    exit_code = EXIT_SPEC_NOT_FOUND


class SpecParseError(SpecbindError):
    """Raised when an API description cannot be read, parsed, or recognised."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class UnresolvedSchemaRef(SpecbindError):
    """Raised when a ``$ref`` names a definition that is not in the document."""

    exit_code = EXIT_SCHEMA_ERROR

    def __init__(self, ref: str, context: str | None = None):
        message = f"Cannot resolve reference '{ref}'"
        if context:
            message += f" (in {context})"
        super().__init__(message)
        self.ref = ref


class DuplicateEndpoint(SpecbindError):
    """Raised when two operations normalize to the same (path, method) pair."""

    exit_code = EXIT_DUPLICATE_ENDPOINT

    def __init__(self, path: str, method: str):
        super().__init__(
            f"Duplicate endpoint {method.upper()} {path} after normalization"
        )
        self.path = path
        self.method = method


class UnsupportedAuthMode(SpecbindError):
    """Raised when the requested auth mode has no registered strategy."""

    exit_code = EXIT_UNSUPPORTED

    def __init__(self, mode: str, available: list[str] | None = None):
        message = f"Unsupported auth mode '{mode}'"
        if available:
            message += f". Available modes: {', '.join(available)}"
        super().__init__(message)
        self.mode = mode


class UnsupportedFramework(SpecbindError):
    """Raised when no code emitter is registered for the requested framework tag."""

    exit_code = EXIT_UNSUPPORTED

    def __init__(self, framework: str, available: list[str] | None = None):
        message = f"Unsupported framework '{framework}'"
        if available:
            message += f". Available frameworks: {', '.join(available)}"
        super().__init__(message)
        self.framework = framework


class NameCollision(SpecbindError):
    """Raised when a generated name stays ambiguous after method disambiguation."""

    exit_code = EXIT_NAME_COLLISION

    def __init__(self, name: str, identifier: str):
        super().__init__(
            f"Generated name '{name}' for '{identifier}' collides with an "
            "existing name even after appending the HTTP method"
        )
        self.name = name
        self.identifier = identifier


class NetworkError(SpecbindError):
    """Raised on transport failures while probing the backend.

    Only used inside discovery, where it is absorbed until every probe
    has been tried.
    """

    exit_code = EXIT_NETWORK_ERROR

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request to {url} failed: {reason}")
        self.url = url


class EmissionError(SpecbindError):
    """Raised when the generated module set cannot be written completely."""

    exit_code = EXIT_EMISSION_ERROR

    def __init__(self, message: str, written: list[str] | None = None):
        if written:
            message += f" (already written: {', '.join(written)})"
        super().__init__(message)
        self.written = written or []
