"""Abstract base class for frontend code emitters.

A code emitter turns the normalized endpoints into the fixed module set of
the generated API layer:

* ``client`` -- the HTTP wrapper (``client.ts``), parametrized by the auth
  descriptor and the base URL, with one method per HTTP verb in use;
* ``bindings`` -- one framework binding per endpoint (React hooks in
  ``hooks.ts``, Vue composables in ``composables.ts``);
* ``types`` -- one TypeScript declaration per distinct schema (``types.ts``);
* ``mocks`` -- canned responses with simulated latency (``mocks.ts``), only
  when mock mode is on.

The client, types and mocks modules are shared by every framework and are
rendered here. Subclasses supply the framework tag, the bindings filename,
:meth:`CodeEmitter.emit_endpoint_binding` and :meth:`CodeEmitter.emit_bindings`.

Templates are Jinja2 files under ``emitters/templates/``. Output contains no
timestamps or other run-dependent data, so identical input always produces
identical files.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from specbind.emitters.naming import NameRegistry, to_camel, to_pascal
from specbind.emitters.typescript import TypeScriptRenderer, comment_text, property_key
from specbind.models import (
    LOCATION_ORDER,
    AuthStrategyDescriptor,
    Endpoint,
    GeneratedModule,
    HTTPMethod,
    MockResponse,
    ParameterLocation,
)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``emitters/templates/``)."""

GENERATED_HEADER = "// Generated by specbind. Do not edit by hand."

_PLACEHOLDER_RE = re.compile(r"^\{([^}]+)\}$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def ts_literal(value: Any, indent: Optional[int] = 2) -> str:
    """Render *value* as a TypeScript literal (JSON syntax is valid TS)."""
    return json.dumps(value, indent=indent, ensure_ascii=False, default=str)


def create_environment() -> Environment:
    """Create the Jinja2 environment for the TypeScript templates.

    Autoescape is off for ``.ts.j2`` templates, which produce code rather
    than HTML.
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("ts.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["ts_literal"] = ts_literal
    return env


def mock_key(item: Union[Endpoint, MockResponse]) -> str:
    """Key of an endpoint in the mocks table, e.g. ``"GET /users/{id}"``."""
    return f"{item.method.value.upper()} {item.path}"


class CodeEmitter(ABC):
    """Capability set every frontend target implements.

    Args:
        environment: Jinja2 environment to render with; a default one over
            :data:`TEMPLATE_DIR` is created when omitted.
    """

    client_template = "shared/client.ts.j2"
    types_template = "shared/types.ts.j2"
    mocks_template = "shared/mocks.ts.j2"

    def __init__(self, environment: Optional[Environment] = None) -> None:
        self._env = environment or create_environment()

    # -- identity ---------------------------------------------------------

    @property
    @abstractmethod
    def framework(self) -> str:
        """Framework tag used on the command line, e.g. ``"react"``."""
        ...

    @property
    @abstractmethod
    def bindings_filename(self) -> str:
        """Filename of the bindings module, e.g. ``"hooks.ts"``."""
        ...

    @property
    def module_filenames(self) -> dict[str, str]:
        """Module contract name -> filename."""
        return {
            "client": "client.ts",
            "bindings": self.bindings_filename,
            "types": "types.ts",
            "mocks": "mocks.ts",
        }

    # -- naming -----------------------------------------------------------

    def binding_base_name(self, identifier: str) -> str:
        """Idiomatic binding name before disambiguation."""
        return "use" + to_pascal(identifier)

    def binding_names(self, endpoints: Sequence[Endpoint]) -> list[str]:
        """Allocate one unique binding name per endpoint, in endpoint order.

        Raises:
            NameCollision: If a name collides even after appending the
                HTTP method.
        """
        registry = NameRegistry(self.binding_base_name)
        return [registry.allocate(e.identifier, e.method.value) for e in endpoints]

    # -- capabilities -----------------------------------------------------

    def emit_client(
        self,
        endpoints: Sequence[Endpoint],
        auth: AuthStrategyDescriptor,
        base_url: str,
        mocks_enabled: bool = False,
    ) -> GeneratedModule:
        """Render the HTTP client module."""
        used = {e.method for e in endpoints}
        verbs = [
            {"name": method.value, "http": method.value.upper()}
            for method in HTTPMethod
            if method in used
        ]
        exports = ["ApiClient", "ApiError", "BASE_URL", "RequestOptions", "apiClient"]
        if auth.inject_bearer:
            exports += ["TOKEN_KEY", "TokenProvider", "TokenStore", "tokenFromStore"]
        content = self._render(
            self.client_template,
            base_url=base_url,
            auth=auth,
            verbs=verbs,
            mocks_enabled=mocks_enabled,
        )
        return self._module("client", content, exports)

    @abstractmethod
    def emit_endpoint_binding(
        self,
        endpoint: Endpoint,
        name: str,
        renderer: TypeScriptRenderer,
        mocks_enabled: bool = False,
    ) -> str:
        """Return the source of one binding named *name* for *endpoint*."""
        ...

    @abstractmethod
    def emit_bindings(
        self,
        endpoints: Sequence[Endpoint],
        names: Sequence[str],
        renderer: TypeScriptRenderer,
        mocks_enabled: bool = False,
    ) -> GeneratedModule:
        """Render the bindings module for all *endpoints*."""
        ...

    def emit_type_definitions(self, renderer: TypeScriptRenderer) -> GeneratedModule:
        """Render the types module."""
        content = self._render(
            self.types_template, declarations=renderer.declarations()
        )
        return self._module("types", content, renderer.type_names)

    def emit_mock_module(self, mocks: Sequence[MockResponse]) -> GeneratedModule:
        """Render the mocks module from synthesized responses."""
        entries = [
            {
                "key": mock_key(mock),
                "status": mock.status,
                "latency_ms": mock.latency_ms,
                "data": mock.data,
            }
            for mock in mocks
        ]
        content = self._render(self.mocks_template, entries=entries)
        return self._module("mocks", content, ["MockEntry", "mocks"])

    def emit(
        self,
        endpoints: Sequence[Endpoint],
        auth: AuthStrategyDescriptor,
        base_url: str,
        mocks: Optional[Sequence[MockResponse]] = None,
    ) -> list[GeneratedModule]:
        """Produce the full module set: client, bindings, types, then mocks.

        Args:
            endpoints: Normalized endpoints in output order.
            auth: Credential behaviour of the client.
            base_url: Backend base URL baked into the default client.
            mocks: Mock responses; the mocks module is emitted only when
                this is not ``None``.

        Raises:
            NameCollision: If binding or type names cannot be made unique.
        """
        mocks_enabled = mocks is not None
        renderer = TypeScriptRenderer(endpoints)
        names = self.binding_names(endpoints)

        modules = [
            self.emit_client(endpoints, auth, base_url, mocks_enabled),
            self.emit_bindings(endpoints, names, renderer, mocks_enabled),
            self.emit_type_definitions(renderer),
        ]
        if mocks is not None:
            modules.append(self.emit_mock_module(mocks))
        return modules

    # -- helpers for subclasses -------------------------------------------

    def binding_context(
        self,
        endpoint: Endpoint,
        name: str,
        renderer: TypeScriptRenderer,
        mocks_enabled: bool,
    ) -> dict[str, Any]:
        """Template variables shared by every framework's binding template."""
        keys = argument_keys(endpoint)
        fields = []
        for parameter in endpoint.parameters:
            if parameter.location == ParameterLocation.BODY:
                field_type = renderer.body_type(endpoint) or "unknown"
            else:
                field_type = renderer.expression(parameter.schema_, "  ")
            optional = "" if parameter.required else "?"
            key = keys[(parameter.location, parameter.name)]
            fields.append(f"{property_key(key)}{optional}: {field_type}")

        auto = endpoint.method.is_safe
        args_type = "{ " + "; ".join(fields) + " }" if fields else None
        args_optional = not any(p.required for p in endpoint.parameters)

        if args_type is None:
            execute_params = ""
        elif auto:
            execute_params = "callArgs: typeof args = args"
        else:
            default = " = {}" if args_optional else ""
            execute_params = f"callArgs: {args_type}{default}"

        return {
            "name": name,
            "summary": comment_text(endpoint.summary),
            "deprecated": endpoint.deprecated,
            "auto": auto,
            "verb": endpoint.method.value,
            "args_type": args_type,
            "args_optional": args_optional,
            "execute_params": execute_params,
            "response_type": renderer.response_type(endpoint),
            "path_expression": _path_expression(endpoint.path, "callArgs"),
            "request_options": _request_options(endpoint, "callArgs", keys, mocks_enabled),
        }

    def _render(self, template_name: str, **context: Any) -> str:
        template = self._env.get_template(template_name)
        return template.render(header=GENERATED_HEADER, **context)

    def _module(self, name: str, content: str, exports: Sequence[str]) -> GeneratedModule:
        return GeneratedModule(
            name=name,
            filename=self.module_filenames[name],
            content=content,
            exports=list(exports),
        )


def used_type_names(source: str, renderer: TypeScriptRenderer) -> list[str]:
    """Declared type names that *source* mentions, in declaration order."""
    return [
        type_name
        for type_name in renderer.type_names
        if re.search(rf"\b{re.escape(type_name)}\b", source)
    ]


def argument_keys(endpoint: Endpoint) -> dict[tuple[ParameterLocation, str], str]:
    """Map each ``(location, name)`` of *endpoint* to its key in the args object.

    Parameters are unique per location only, so a path ``id`` and a query
    ``id`` can coexist. Locations claim plain names in the order path,
    query, header, body; a later parameter whose name is taken gets the
    location appended (``idQuery``, ``idHeader``).
    """
    keys: dict[tuple[ParameterLocation, str], str] = {}
    taken: set[str] = set()
    for location in LOCATION_ORDER:
        for parameter in endpoint.parameters_in(location):
            key = parameter.name
            if key in taken:
                qualified = key = to_camel(f"{parameter.name}_{location.value}")
                counter = 2
                while key in taken:
                    key = f"{qualified}{counter}"
                    counter += 1
            taken.add(key)
            keys[(location, parameter.name)] = key
    return keys


def _accessor(root: str, name: str) -> str:
    if _IDENTIFIER_RE.match(name):
        return f"{root}.{name}"
    return f"{root}[{json.dumps(name)}]"


def _path_expression(path: str, root: str) -> str:
    """TypeScript expression building *path* with encoded path parameters."""
    segments = [s for s in path.split("/") if s]
    if not any(_PLACEHOLDER_RE.match(s) for s in segments):
        return json.dumps(path)
    parts = []
    for segment in segments:
        match = _PLACEHOLDER_RE.match(segment)
        if match:
            accessor = _accessor(root, match.group(1))
            parts.append("${encodeURIComponent(String(" + accessor + "))}")
        else:
            parts.append(segment.replace("\\", "\\\\").replace("`", "\\`").replace("$", "\\$"))
    return "`/" + "/".join(parts) + "`"


def _request_options(
    endpoint: Endpoint,
    root: str,
    keys: dict[tuple[ParameterLocation, str], str],
    mocks_enabled: bool,
) -> Optional[str]:
    entries = []
    for location, option in ((ParameterLocation.QUERY, "query"), (ParameterLocation.HEADER, "headers")):
        parameters = endpoint.parameters_in(location)
        if parameters:
            pairs = ", ".join(
                f"{property_key(p.name)}: {_accessor(root, keys[(location, p.name)])}"
                for p in parameters
            )
            entries.append(f"{option}: {{ {pairs} }}")
    body = endpoint.body
    if body is not None:
        entries.append(f"body: {_accessor(root, keys[(ParameterLocation.BODY, body.name)])}")
    if mocks_enabled:
        entries.append(f"mockKey: {json.dumps(mock_key(endpoint))}")
    if not entries:
        return None
    return "{ " + ", ".join(entries) + " }"
