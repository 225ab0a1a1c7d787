"""API description intake -- discover, load, resolve schemas, and normalize endpoints.

This sub-package is the first half of the specbind pipeline: it turns a
backend base URL (or an explicit spec location) into the ordered list of
:class:`~specbind.models.Endpoint` objects the emitters consume.

Typical usage::

    from specbind.parser import discover, normalize_endpoints

    result = discover(config)
    endpoints = normalize_endpoints(result.document)

Sub-modules:

* :mod:`~specbind.parser.loader` -- I/O layer (URL, file, stdin), format
  detection and Swagger/OpenAPI version checks.
* :mod:`~specbind.parser.discovery` -- The ordered discovery strategy chain
  (explicit spec, concurrent conventional probes, heuristic probes).
* :mod:`~specbind.parser.resolver` -- Schema parsing and reference expansion
  with open-set cycle detection.
* :mod:`~specbind.parser.normalizer` -- Path, parameter, response and auth
  normalization into :class:`~specbind.models.Endpoint` objects.
"""

from specbind.parser.discovery import discover
from specbind.parser.loader import detect_spec_version, load_document, load_spec
from specbind.parser.normalizer import (
    PublicPathPolicy,
    endpoints_from_seeds,
    normalize_endpoints,
)
from specbind.parser.resolver import SchemaResolver, parse_schema

__all__ = [
    "PublicPathPolicy",
    "SchemaResolver",
    "detect_spec_version",
    "discover",
    "endpoints_from_seeds",
    "load_document",
    "load_spec",
    "normalize_endpoints",
    "parse_schema",
]
