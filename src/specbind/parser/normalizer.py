"""Normalize a parsed API description into an ordered list of endpoints.

This module walks the ``paths`` object of a
:class:`~specbind.models.SpecDocument` and builds one
:class:`~specbind.models.Endpoint` per path + method entry, in document
order. Each endpoint gets:

* a normalized path template (single leading slash, no duplicate or trailing
  slashes),
* its parameters grouped path, query, header, body, with request bodies
  (OpenAPI 3 ``requestBody``, Swagger 2 ``in: body`` and ``formData``)
  modelled as a ``body`` parameter,
* the schema of its first 2xx response, fully resolved,
* a stable identifier: the declared ``operationId``, or one synthesized
  from the method and path,
* a ``requires_auth`` flag derived from security metadata, falling back to
  :class:`PublicPathPolicy`.

Parameter merging follows the OpenAPI rule: path-level parameters are
defaults that operation-level parameters with the same ``name`` and ``in``
replace.

Heuristic discovery produces bare :class:`~specbind.models.EndpointSeed`
entries instead of a document; :func:`endpoints_from_seeds` turns those into
endpoints with no schema detail.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from typing import Any, Iterable, Optional, Sequence

from specbind.exceptions import DuplicateEndpoint
from specbind.models import (
    DEFAULT_PUBLIC_PATHS,
    LOCATION_ORDER,
    Endpoint,
    EndpointSeed,
    HTTPMethod,
    ObjectSchema,
    Parameter,
    ParameterLocation,
    PrimitiveSchema,
    SchemaNode,
    SpecDocument,
)
from specbind.parser.resolver import SchemaResolver, dereference

logger = logging.getLogger(__name__)

_PATH_PARAM_RE = re.compile(r"^\{([^}]+)\}$")
_NON_WORD_RE = re.compile(r"[^0-9A-Za-z]+")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_PREFIX_RE = re.compile(r"^/(?:api|v\d+)(?=/|$)", re.IGNORECASE)

# Swagger 2 non-body parameters describe their schema inline.
_INLINE_SCHEMA_KEYS = ("type", "format", "items", "enum", "default", "example", "x-nullable")


class PublicPathPolicy:
    """Decide whether an endpoint is public when the document says nothing.

    Patterns are shell-style globs (``fnmatch``) matched case-insensitively
    against the normalized path. Each path is also tried with leading
    ``/api`` and version (``/v1``) segments removed, so ``/health`` covers
    ``/api/v1/health``.

    Args:
        patterns: Glob patterns. Defaults to
            :data:`~specbind.models.DEFAULT_PUBLIC_PATHS` (health checks,
            login and token routes, docs).
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        source = DEFAULT_PUBLIC_PATHS if patterns is None else patterns
        self.patterns = [normalize_path(p).lower() for p in source]

    def is_public(self, path: str) -> bool:
        for candidate in _path_variants(normalize_path(path).lower()):
            if any(fnmatch.fnmatchcase(candidate, p) for p in self.patterns):
                return True
        return False


def _path_variants(path: str) -> list[str]:
    variants = [path]
    while True:
        stripped = _PREFIX_RE.sub("", path, count=1)
        if stripped == path:
            return variants
        path = stripped or "/"
        variants.append(path)


# --- Paths and identifiers ---


def normalize_path(path: str) -> str:
    """Return *path* with one leading slash and no empty or trailing segments.

    ``"users//{id}/"`` becomes ``"/users/{id}"``; an empty path becomes ``"/"``.
    """
    segments = [s for s in path.strip().split("/") if s]
    return "/" + "/".join(segments)


def path_parameter_names(path: str) -> list[str]:
    """Return the ``{placeholder}`` names of *path* in order."""
    names = []
    for segment in normalize_path(path).split("/"):
        match = _PATH_PARAM_RE.match(segment)
        if match:
            names.append(match.group(1))
    return names


def synthesize_identifier(method: HTTPMethod, path: str) -> str:
    """Build a deterministic identifier from *method* and *path*.

    Literal segments are snake-cased, placeholders become ``by_<name>`` and
    the root path becomes ``root``::

        >>> synthesize_identifier(HTTPMethod.GET, "/users/{userId}")
        'get_users_by_user_id'
        >>> synthesize_identifier(HTTPMethod.POST, "/")
        'post_root'
    """
    parts = [method.value]
    segments = [s for s in normalize_path(path).split("/") if s]
    for segment in segments:
        match = _PATH_PARAM_RE.match(segment)
        if match:
            parts.append("by_" + _snake(match.group(1)))
        else:
            word = _snake(segment)
            if word:
                parts.append(word)
    if len(parts) == 1:
        parts.append("root")
    return "_".join(parts)


def _snake(text: str) -> str:
    text = _CAMEL_BOUNDARY_RE.sub("_", text)
    return _NON_WORD_RE.sub("_", text).strip("_").lower()


# --- Document normalization ---


def normalize_endpoints(
    document: SpecDocument,
    resolver: Optional[SchemaResolver] = None,
    policy: Optional[PublicPathPolicy] = None,
) -> list[Endpoint]:
    """Build the ordered endpoint list for *document*.

    Args:
        document: The loaded API description.
        resolver: Schema resolver; built from the document's definitions
            when omitted.
        policy: Fallback for endpoints without security metadata.

    Returns:
        Endpoints in document order (paths, then methods within each path).

    Raises:
        DuplicateEndpoint: If two entries normalize to the same path and
            method (``/users`` and ``/users/``, or ``get`` and ``GET``).
        UnresolvedSchemaRef: If a schema or parameter reference cannot be
            resolved.
    """
    resolver = resolver or SchemaResolver.from_document(document)
    policy = policy or PublicPathPolicy()
    raw = document.raw

    endpoints: list[Endpoint] = []
    seen: set[tuple[str, HTTPMethod]] = set()

    for raw_path, path_item in document.paths.items():
        path_item = dereference(raw, path_item)
        if not isinstance(path_item, dict):
            continue
        path = normalize_path(str(raw_path))
        path_params = path_item.get("parameters") or []

        for key, operation in path_item.items():
            method = _http_method(key)
            if method is None or not isinstance(operation, dict):
                continue
            if (path, method) in seen:
                raise DuplicateEndpoint(path, method.value)
            seen.add((path, method))

            identifier = str(operation.get("operationId") or "").strip()
            identifier = identifier or synthesize_identifier(method, path)
            parameters = _resolve_parameters(
                document, path, path_params, operation, resolver
            )

            endpoints.append(
                Endpoint(
                    path=path,
                    method=method,
                    identifier=identifier,
                    parameters=parameters,
                    response_schema=_success_schema(
                        document, operation.get("responses"), resolver
                    ),
                    requires_auth=_requires_auth(
                        operation, document.global_security, path, policy
                    ),
                    summary=operation.get("summary"),
                    tags=list(operation.get("tags") or []),
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    logger.debug("Normalized %d endpoint(s) from %s", len(endpoints), document.source)
    return endpoints


def endpoints_from_seeds(seeds: Sequence[EndpointSeed]) -> list[Endpoint]:
    """Build schema-less endpoints from heuristic discovery seeds.

    Every endpoint requires auth, has a synthesized identifier, string path
    parameters for its placeholders and no response schema.

    Raises:
        DuplicateEndpoint: If two seeds normalize to the same path and method.
    """
    endpoints: list[Endpoint] = []
    seen: set[tuple[str, HTTPMethod]] = set()
    for seed in seeds:
        path = normalize_path(seed.path)
        if (path, seed.method) in seen:
            raise DuplicateEndpoint(path, seed.method.value)
        seen.add((path, seed.method))
        endpoints.append(
            Endpoint(
                path=path,
                method=seed.method,
                identifier=synthesize_identifier(seed.method, path),
                parameters=_ensure_path_parameters(path, []),
                requires_auth=True,
            )
        )
    return endpoints


def _http_method(key: Any) -> Optional[HTTPMethod]:
    if not isinstance(key, str):
        return None
    try:
        return HTTPMethod(key.lower())
    except ValueError:
        return None


# --- Parameters ---


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters replace path-level ones with the same name
    and location.
    """
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [p for p in path_params if (p.get("name", ""), p.get("in", "")) not in op_keys]
    merged.extend(op_params)
    return merged


def _resolve_parameters(
    document: SpecDocument,
    path: str,
    path_params: list[Any],
    operation: dict[str, Any],
    resolver: SchemaResolver,
) -> list[Parameter]:
    raw = document.raw
    merged = _merge_parameters(
        [p for p in (dereference(raw, p) for p in path_params) if isinstance(p, dict)],
        [
            p
            for p in (dereference(raw, p) for p in operation.get("parameters") or [])
            if isinstance(p, dict)
        ],
    )

    parameters: list[Parameter] = []
    form_fields: dict[str, SchemaNode] = {}
    form_required: list[str] = []

    for param in merged:
        name = str(param.get("name", ""))
        location_str = str(param.get("in", "query"))

        if location_str == "cookie":
            logger.debug("Dropping cookie parameter %s on %s", name, path)
            continue
        if location_str == "formData":
            form_fields[name] = resolver.resolve(_inline_schema(param))
            if param.get("required"):
                form_required.append(name)
            continue
        if location_str == "body":
            parameters.append(
                Parameter(
                    name=name or "body",
                    location=ParameterLocation.BODY,
                    schema=resolver.resolve(param.get("schema")),
                    required=bool(param.get("required", False)),
                    description=param.get("description"),
                )
            )
            continue

        try:
            location = ParameterLocation(location_str)
        except ValueError:
            logger.debug("Skipping parameter %s with location %r", name, location_str)
            continue

        raw_schema = param["schema"] if "schema" in param else _inline_schema(param)
        parameters.append(
            Parameter(
                name=name,
                location=location,
                schema=resolver.resolve(raw_schema),
                required=location == ParameterLocation.PATH or bool(param.get("required")),
                description=param.get("description"),
            )
        )

    if form_fields:
        parameters.append(
            Parameter(
                name="body",
                location=ParameterLocation.BODY,
                schema=ObjectSchema(properties=form_fields, required=form_required),
                required=bool(form_required),
            )
        )

    body = _request_body(document, operation.get("requestBody"), resolver)
    if body is not None:
        parameters.append(body)

    parameters = _ensure_path_parameters(path, parameters)
    return sorted(parameters, key=lambda p: LOCATION_ORDER.index(p.location))


def _inline_schema(param: dict[str, Any]) -> dict[str, Any]:
    return {key: param[key] for key in _INLINE_SCHEMA_KEYS if key in param}


def _ensure_path_parameters(path: str, parameters: list[Parameter]) -> list[Parameter]:
    """Add string path parameters for placeholders nothing declared."""
    declared = {p.name for p in parameters if p.location == ParameterLocation.PATH}
    for name in path_parameter_names(path):
        if name not in declared:
            parameters.append(
                Parameter(
                    name=name,
                    location=ParameterLocation.PATH,
                    schema=PrimitiveSchema(type="string"),
                    required=True,
                )
            )
    return parameters


def _request_body(
    document: SpecDocument,
    request_body: Any,
    resolver: SchemaResolver,
) -> Optional[Parameter]:
    request_body = dereference(document.raw, request_body)
    if not isinstance(request_body, dict):
        return None
    raw_schema = _media_schema(request_body.get("content"))
    return Parameter(
        name="body",
        location=ParameterLocation.BODY,
        schema=resolver.resolve(raw_schema),
        required=bool(request_body.get("required", False)),
        description=request_body.get("description"),
    )


def _media_schema(content: Any) -> Optional[dict[str, Any]]:
    """Pick the schema of a JSON media type, else of the first one with a schema."""
    if not isinstance(content, dict):
        return None
    with_schema = [
        (media_type, media)
        for media_type, media in content.items()
        if isinstance(media, dict) and "schema" in media
    ]
    for media_type, media in with_schema:
        if "json" in media_type.lower():
            return media["schema"]
    return with_schema[0][1]["schema"] if with_schema else None


# --- Responses and auth ---


def _success_schema(
    document: SpecDocument,
    responses: Any,
    resolver: SchemaResolver,
) -> Optional[SchemaNode]:
    """Resolve the schema of the first 2xx response, if it has one."""
    if not isinstance(responses, dict):
        return None
    for status, response in responses.items():
        code = str(status).upper()
        if len(code) != 3 or not code.startswith("2"):
            continue
        response = dereference(document.raw, response)
        if not isinstance(response, dict):
            return None
        if "content" in response:
            raw_schema = _media_schema(response["content"])
        else:
            raw_schema = response.get("schema")
        return resolver.resolve(raw_schema) if raw_schema is not None else None
    return None


def _requires_auth(
    operation: dict[str, Any],
    global_security: Optional[list[Any]],
    path: str,
    policy: PublicPathPolicy,
) -> bool:
    """Apply the auth precedence: ``x-public``, operation, document, policy."""
    if operation.get("x-public") is True:
        return False
    security = operation["security"] if "security" in operation else global_security
    if security is not None:
        return not _allows_anonymous(security)
    return not policy.is_public(path)


def _allows_anonymous(security: Any) -> bool:
    """``[]`` or a requirement list containing ``{}`` means no auth needed."""
    if not security:
        return True
    return any(isinstance(req, dict) and not req for req in security)
