"""specbind -- Generate a typed frontend API layer from a backend's OpenAPI spec.

This package connects a frontend project to a backend: it finds the backend's
API description (an explicit spec, a conventional spec location, or REST path
probing), normalizes every operation into one canonical endpoint model, and
emits a framework-idiomatic client, one binding per endpoint, TypeScript
types and, optionally, canned mock responses.

Typical workflow::

    specbind connect http://localhost:8000                  # React hooks in src/api/
    specbind connect http://localhost:8000 -f vue --mock    # Vue composables + mocks

Modules:
    app: Typer application and CLI entry point.
    pipeline: The connect state machine (discover, normalize, generate, write).
    parser: Spec loading, discovery, schema resolution and normalization.
    auth: Auth strategies and their resolver.
    mock: Mock response synthesis.
    emitters: Code emitters and their Jinja2 templates.
    writer: Staged writes of the generated module set.
    models: Pydantic models shared across the entire package.
    config: Configuration precedence and XDG paths.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
