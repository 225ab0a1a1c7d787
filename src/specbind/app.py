"""Typer application and CLI entry point for specbind.

This module wires the top-level Typer application and its single command,
``connect``, which runs the :class:`~specbind.pipeline.Pipeline` against a
backend and writes the generated API layer into the project.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the Typer app.
A :class:`~specbind.exceptions.SpecbindError` is reported as
``<stage> failed: <Kind>: <detail>`` and exits with the error's exit code;
any other exception is written to a crash log under the data directory.

See Also:
    :mod:`specbind.config`: Configuration precedence for ``connect``.
    :mod:`specbind.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from specbind import __version__
from specbind.exceptions import SpecbindError
from specbind.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="specbind",
    help="Generate a typed frontend API layer from a backend's OpenAPI/Swagger spec.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_STAGE_LABELS = {
    "idle": "Setup",
    "discovering": "Discovery",
    "normalizing": "Normalization",
    "generating": "Generation",
}

_STAGE_PROGRESS = {
    "discovering": "Discovering API description...",
    "normalizing": "Normalizing endpoints...",
    "generating": "Generating modules...",
}


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specbind {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every command.

    Initialises the global :class:`~specbind.output.OutputManager` from the
    CLI flags and routes ``specbind.*`` log records to stderr.
    """
    from specbind.output import OutputManager, set_output

    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    output.configure_logging()
    set_output(output)


@app.command("connect")
def connect_command(
    base_url: Optional[str] = typer.Argument(
        None,
        help="Backend base URL, e.g. http://localhost:8000 (or SPECBIND_BASE_URL).",
        show_default=False,
    ),
    framework: Optional[str] = typer.Option(
        None, "--framework", "-f", help="Frontend target: react (default) or vue."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory for the generated modules [default: src/api]."
    ),
    auth_mode: Optional[str] = typer.Option(
        None, "--auth", "-a", help="Auth mode: token (default), cookie or session."
    ),
    mock: Optional[bool] = typer.Option(
        None, "--mock/--no-mock", help="Also generate a mocks module.", show_default=False
    ),
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="Explicit spec path or URL; auto-discovered when omitted."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Upper bound in seconds for spec discovery [default: 10]."
    ),
) -> None:
    """Connect a frontend project to a backend API.

    Finds the backend's API description (explicit ``--spec``, conventional
    spec locations, or REST path probing), normalizes its endpoints, and
    writes a client, one binding per endpoint, the TypeScript types and,
    with ``--mock``, canned responses into the output directory.

    The endpoint summary table goes to stdout; progress goes to stderr.

    Example::

        specbind connect http://localhost:8000
        specbind connect http://localhost:3000 --framework vue --auth session --mock
        specbind connect https://api.example.com --spec ./openapi.yaml -o web/src/api
    """
    from specbind.config import resolve_config
    from specbind.output import error, info, print_table, success, suggest
    from specbind.pipeline import Pipeline

    try:
        config = resolve_config(
            base_url=base_url,
            framework=framework,
            output_dir=output_dir,
            auth_mode=auth_mode,
            mock=mock,
            spec=spec,
            discovery_timeout=timeout,
        )
        info(f"Connecting to {config.base_url} ({config.framework}, {config.auth_mode} auth)")
        result = Pipeline(config, on_transition=_report_stage).run()
    except SpecbindError as exc:
        error(format_failure(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Found {len(result.endpoints)} endpoint(s) via {result.strategy}")
    rows = [
        [
            endpoint.method.value.upper(),
            endpoint.path,
            name,
            "yes" if endpoint.requires_auth else "no",
        ]
        for endpoint, name in zip(result.endpoints, result.binding_names)
    ]
    print_table(["METHOD", "PATH", "BINDING", "AUTH"], rows, title="Endpoints")

    for path in result.written:
        info(f"  wrote {path}")
    success(f"Generated {len(result.written)} module(s) in {config.output_dir}")
    if result.strategy == "heuristic":
        suggest("Endpoints were guessed from common REST paths; pass --spec for typed bindings.")


def _report_stage(state: Any) -> None:
    """Announce a pipeline stage on stderr; ``connect`` reports the outcome itself."""
    from specbind.output import progress

    message = _STAGE_PROGRESS.get(state.value)
    if message is not None:
        progress(message)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from specbind.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def format_failure(exc: SpecbindError) -> str:
    """Render *exc* as ``<stage> failed: <Kind>: <detail>``.

    Errors raised outside a pipeline stage (bad configuration, for
    instance) are labelled ``Setup``.

    Example::

        Discovery failed: SpecNotFound: No API description found at http://localhost:8000
    """
    label = _STAGE_LABELS.get(exc.stage or "", "Setup")
    return f"{label} failed: {exc.kind}: {exc}"


def main() -> None:
    """CLI entry point invoked by the ``specbind`` console script.

    Installs signal handlers for clean Ctrl-C behaviour and invokes the
    Typer application. ``connect`` reports
    :class:`~specbind.exceptions.SpecbindError` itself and exits with the
    error's ``exit_code``; any other exception produces a crash log and a
    generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specbind.output import error

        if isinstance(exc, SpecbindError):
            error(format_failure(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
