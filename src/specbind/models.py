"""Canonical Pydantic models shared across all specbind modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration** -- :class:`GenerationConfig` and :class:`CsrfStep`, resolved
by :func:`~specbind.config.resolve_config` from CLI flags, environment
variables and ``specbind.json``.

**Discovery output** -- :class:`SpecDocument`, :class:`EndpointSeed` and
:class:`DiscoveryResult`, produced by :mod:`specbind.parser.discovery`.

**Canonical API model** -- the :data:`SchemaNode` variants,
:class:`Parameter` and :class:`Endpoint`, produced by the resolver and the
normalizer and consumed by mock synthesis and code emission.

**Generation output** -- :class:`AuthStrategyDescriptor`,
:class:`MockResponse`, :class:`GeneratedModule` and
:class:`GenerationResult`.

All models use Pydantic v2. Every instance is created fresh for one
invocation and discarded afterwards; nothing here is persisted.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Defaults ---

DEFAULT_DISCOVERY_PATHS: tuple[str, ...] = (
    "/openapi.json",
    "/swagger.json",
    "/v3/api-docs",
    "/v2/api-docs",
    "/api-docs",
    "/api/openapi.json",
    "/api/swagger.json",
    "/docs/openapi.json",
    "/swagger/v1/swagger.json",
    "/openapi.yaml",
)
"""Locations where backends commonly expose their OpenAPI/Swagger document."""

DEFAULT_HEURISTIC_PATHS: tuple[str, ...] = (
    "/health",
    "/api/health",
    "/api/auth/login",
    "/api/auth/logout",
    "/api/auth/me",
    "/api/users",
    "/api/users/{id}",
    "/api/items",
    "/api/items/{id}",
    "/api/products",
    "/api/products/{id}",
    "/api/posts",
    "/api/posts/{id}",
    "/api/todos",
    "/api/todos/{id}",
    "/users",
    "/items",
    "/products",
    "/posts",
    "/todos",
)
"""REST path conventions probed when no spec document can be found."""

DEFAULT_PUBLIC_PATHS: tuple[str, ...] = (
    "/health",
    "/healthz",
    "/ping",
    "/status",
    "/ready",
    "/live",
    "/login",
    "/logout",
    "/register",
    "/signup",
    "/token",
    "/refresh",
    "/csrf*",
    "/password/reset*",
    "/forgot-password",
    "/auth/login",
    "/auth/register",
    "/auth/signup",
    "/auth/token",
    "/auth/refresh",
    "/openapi*",
    "/docs*",
    "/swagger*",
)
"""Glob patterns for endpoints treated as public when the spec is silent."""


# --- Configuration ---


class AuthMode(str, enum.Enum):
    """How the generated client carries credentials."""

    TOKEN = "token"
    COOKIE = "cookie"
    SESSION = "session"


class CsrfStep(BaseModel):
    """Where a session-mode client gets its CSRF token and how it sends it.

    ``source="cookie"`` reads ``cookie_name`` from ``document.cookie``;
    ``source="endpoint"`` issues a GET to ``endpoint`` and reads
    ``response_field`` from the JSON body. Either way the token is sent in
    ``header_name`` on every mutating request.
    """

    source: Literal["cookie", "endpoint"] = "cookie"
    cookie_name: str = "csrftoken"
    endpoint: str = "/api/csrf-token"
    response_field: str = "csrfToken"
    header_name: str = "X-CSRFToken"


class GenerationConfig(BaseModel):
    """Everything one ``connect`` invocation needs.

    Only ``base_url`` is required. The remaining fields default to the
    primary target (React), token auth, no mocks, and auto-discovery of
    the spec document.

    Example::

        GenerationConfig(
            base_url="http://localhost:8000",
            framework="vue",
            auth_mode="session",
            mock=True,
        )
    """

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(description="Backend base URL, e.g. http://localhost:8000")
    framework: str = Field(default="react", description="Frontend target tag")
    output_dir: str = Field(
        default="src/api", description="Directory receiving the generated modules"
    )
    auth_mode: str = Field(
        default=AuthMode.TOKEN.value, description="Auth mode: token, cookie, session"
    )
    mock: bool = Field(default=False, description="Also generate a mocks module")
    spec: Optional[str] = Field(
        default=None,
        description="Explicit spec path or URL; auto-discovered when omitted",
    )
    # Discovery tuning
    discovery_timeout: float = Field(
        default=10.0, gt=0, description="Upper bound in seconds for spec discovery"
    )
    probe_concurrency: int = Field(
        default=4, ge=1, description="Maximum concurrent discovery probes"
    )
    discovery_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DISCOVERY_PATHS)
    )
    heuristic_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_HEURISTIC_PATHS)
    )
    # Normalization policy
    public_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PUBLIC_PATHS),
        description="Glob patterns of endpoints that need no auth",
    )
    # Auth
    token_key: str = Field(
        default="auth_token",
        description="Key the injected token store is queried with",
    )
    csrf: CsrfStep = Field(default_factory=CsrfStep)
    # Mocks
    mock_array_length: int = Field(default=2, ge=2, le=3)
    mock_latency_ms: int = Field(default=250, ge=0)


# --- HTTP vocabulary ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised in OpenAPI path-item objects."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"

    @property
    def is_safe(self) -> bool:
        """Safe methods are invoked automatically by generated bindings."""
        return self in (HTTPMethod.GET, HTTPMethod.HEAD, HTTPMethod.OPTIONS, HTTPMethod.TRACE)


class ParameterLocation(str, enum.Enum):
    """Where a parameter travels. Request bodies are modelled as ``body``."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


# --- Discovery output ---


class SpecDocument(BaseModel):
    """A raw, parsed API description.

    Owned by the loader for the duration of one run and consumed once by
    the normalizer.
    """

    raw: dict[str, Any]
    version: str = Field(description="'2.0' for Swagger, '3.x.y' for OpenAPI")
    source: str = Field(description="Path, URL, or '-' the document came from")

    @property
    def is_swagger2(self) -> bool:
        return self.version.startswith("2.")

    @property
    def paths(self) -> dict[str, Any]:
        paths = self.raw.get("paths") or {}
        return paths if isinstance(paths, dict) else {}

    @property
    def definitions(self) -> dict[str, Any]:
        """Named schemas: ``components/schemas`` (3.x) or ``definitions`` (2.0)."""
        if self.is_swagger2:
            found = self.raw.get("definitions") or {}
        else:
            found = (self.raw.get("components") or {}).get("schemas") or {}
        return found if isinstance(found, dict) else {}

    @property
    def global_security(self) -> Optional[list[dict[str, Any]]]:
        """Document-level security requirements, or ``None`` when undeclared."""
        return self.raw.get("security")


class EndpointSeed(BaseModel):
    """An endpoint inferred by heuristic probing (method and path only)."""

    path: str
    method: HTTPMethod


class DiscoveryResult(BaseModel):
    """Outcome of the first discovery strategy that succeeded."""

    strategy: str
    document: Optional[SpecDocument] = None
    seeds: list[EndpointSeed] = Field(default_factory=list)


# --- Schema nodes ---


class _SchemaBase(BaseModel):
    name: Optional[str] = Field(
        default=None, description="Definition name this node was expanded from"
    )
    description: Optional[str] = None


class PrimitiveSchema(_SchemaBase):
    """A scalar: string, integer, number, boolean, null, or ``any``."""

    kind: Literal["primitive"] = "primitive"
    type: str = "any"
    format: Optional[str] = None
    enum: Optional[list[Any]] = None
    nullable: bool = False
    example: Any = None
    default: Any = None


class ArraySchema(_SchemaBase):
    """A homogeneous sequence of ``items``."""

    kind: Literal["array"] = "array"
    items: SchemaNode
    nullable: bool = False


class ObjectSchema(_SchemaBase):
    """A record of named fields. Field order follows the document."""

    kind: Literal["object"] = "object"
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    nullable: bool = False
    extends: list[str] = Field(
        default_factory=list,
        description="Definitions merged in by allOf, pending resolution",
    )


class ReferenceSchema(_SchemaBase):
    """An unexpanded pointer to a named definition (before resolution only)."""

    kind: Literal["reference"] = "reference"
    target: str
    nullable: bool = Field(
        default=False, description="Set by a sibling nullable flag; applied to the expansion"
    )


class CyclicSchema(_SchemaBase):
    """Terminal marker for a reference back to a definition still being expanded."""

    kind: Literal["cyclic"] = "cyclic"
    target: str


SchemaNode = Annotated[
    Union[PrimitiveSchema, ArraySchema, ObjectSchema, ReferenceSchema, CyclicSchema],
    Field(discriminator="kind"),
]


# --- Endpoints ---

LOCATION_ORDER: tuple[ParameterLocation, ...] = (
    ParameterLocation.PATH,
    ParameterLocation.QUERY,
    ParameterLocation.HEADER,
    ParameterLocation.BODY,
)


class Parameter(BaseModel):
    """One resolved input of an endpoint."""

    name: str
    location: ParameterLocation
    schema_: SchemaNode = Field(alias="schema")
    required: bool = False
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class Endpoint(BaseModel):
    """A single normalized operation (one path template + HTTP method).

    Each endpoint becomes exactly one binding in the generated code and,
    in mock mode, one entry of the mocks module.
    """

    path: str
    method: HTTPMethod
    identifier: str
    parameters: list[Parameter] = Field(default_factory=list)
    response_schema: Optional[SchemaNode] = None
    requires_auth: bool = True
    summary: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False

    def parameters_in(self, location: ParameterLocation) -> list[Parameter]:
        return [p for p in self.parameters if p.location == location]

    @property
    def body(self) -> Optional[Parameter]:
        bodies = self.parameters_in(ParameterLocation.BODY)
        return bodies[0] if bodies else None


# --- Generation output ---


class AuthStrategyDescriptor(BaseModel):
    """Credential behaviour the emitted client implements.

    Produced by :class:`~specbind.auth.AuthStrategyResolver` and consumed
    by every code emitter's client template.
    """

    mode: AuthMode
    inject_bearer: bool = False
    header_name: str = "Authorization"
    header_prefix: str = "Bearer "
    token_key: Optional[str] = None
    include_credentials: bool = False
    csrf: Optional[CsrfStep] = None

    @property
    def needs_csrf(self) -> bool:
        return self.csrf is not None


class MockResponse(BaseModel):
    """Synthetic response for one endpoint, served by the client in mock mode."""

    identifier: str
    method: HTTPMethod
    path: str
    status: int = 200
    data: Any = None
    latency_ms: int = 0


class GeneratedModule(BaseModel):
    """One file of the output module set."""

    name: str = Field(description="Contract name: client, bindings, types, mocks")
    filename: str
    content: str
    exports: list[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Everything one run produced, before or after writing to disk."""

    strategy: str
    endpoints: list[Endpoint]
    modules: list[GeneratedModule]
    binding_names: list[str] = Field(
        default_factory=list, description="Binding name per endpoint, parallel to endpoints"
    )
    type_names: list[str] = Field(default_factory=list)
    mocks: list[MockResponse] = Field(
        default_factory=list, description="Mock responses behind the mocks module, if any"
    )
    written: list[str] = Field(default_factory=list)

    def module(self, name: str) -> GeneratedModule:
        for module in self.modules:
            if module.name == name:
                return module
        raise KeyError(name)


ArraySchema.model_rebuild()
ObjectSchema.model_rebuild()
Parameter.model_rebuild()
Endpoint.model_rebuild()
EndpointSeed.model_rebuild()
DiscoveryResult.model_rebuild()
