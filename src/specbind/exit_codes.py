"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to one error kind and is referenced by the corresponding
:class:`~specbind.exceptions.SpecbindError` subclass. CI scripts wrapping
``specbind connect`` can inspect the exit code to tell a missing spec from a
naming conflict without parsing stderr.

Example::

    $ specbind connect http://localhost:8000
    $ echo $?
    3   # EXIT_SPEC_NOT_FOUND -- nothing describing the API was found
"""

EXIT_SUCCESS = 0
"""All modules were generated and written."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_SPEC_NOT_FOUND = 3
"""No explicit spec, no conventional spec document, and no probed endpoints."""

EXIT_SPEC_PARSE_ERROR = 4
"""The API description could not be parsed or is not an OpenAPI/Swagger document."""

EXIT_SCHEMA_ERROR = 5
"""A schema reference points at a definition that does not exist."""

EXIT_DUPLICATE_ENDPOINT = 6
"""Two operations normalize to the same path and method."""

EXIT_UNSUPPORTED = 7
"""The requested auth mode or frontend framework is not supported."""

EXIT_NAME_COLLISION = 8
"""Generated binding or type names could not be made unique."""

EXIT_NETWORK_ERROR = 9
"""A network failure escaped discovery (normally absorbed by probing)."""

EXIT_EMISSION_ERROR = 10
"""Generated modules could not be written to the output directory."""
