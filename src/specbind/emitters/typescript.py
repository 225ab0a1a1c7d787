"""Render resolved schemas as TypeScript types.

:class:`TypeScriptRenderer` is shared by every emitter. Given the endpoint
list it collects one named type per distinct schema the endpoints reference:

* every expanded definition (a node carrying ``name``), including the ones
  nested inside other definitions, declared under the Pascal-cased
  definition name;
* every anonymous object or array used directly as a response or request
  body, declared as ``<Identifier>Response`` or ``<Identifier>Body``.

Names are allocated through :class:`~specbind.emitters.naming.NameRegistry`,
so the collision rule for types is the same as for bindings. Inside a
declaration, nested named schemas and cyclic edges are written as references
to their type names; that is how self-referential models become recursive
interfaces instead of infinite expansions.
"""

from __future__ import annotations

import json
import re
from typing import Optional, Sequence

from specbind.emitters.naming import NameRegistry, to_pascal
from specbind.models import (
    ArraySchema,
    CyclicSchema,
    Endpoint,
    ObjectSchema,
    PrimitiveSchema,
    SchemaNode,
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_PRIMITIVES = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "null": "null",
    "any": "unknown",
}


def property_key(name: str) -> str:
    """Return *name* as an object key, quoted when it is not an identifier."""
    return name if _IDENTIFIER_RE.match(name) else json.dumps(name)


def comment_text(text: Optional[str]) -> str:
    """Collapse *text* to one line that cannot close a block comment."""
    return " ".join((text or "").split()).replace("*/", "*\\/")


def doc_comment(text: Optional[str], indent: str = "") -> str:
    """Return a one-line ``/** ... */`` comment for *text*, or ``""``."""
    line = comment_text(text)
    if not line:
        return ""
    return f"{indent}/** {line} */\n"


class TypeScriptRenderer:
    """Collects named types for *endpoints* and renders type expressions.

    Args:
        endpoints: Normalized endpoints, in output order.

    Raises:
        NameCollision: If two schemas map to the same type name even after
            appending the HTTP method.
    """

    def __init__(self, endpoints: Sequence[Endpoint]) -> None:
        self._registry = NameRegistry(to_pascal)
        self._definitions: dict[str, str] = {}
        self._declarations: list[tuple[str, SchemaNode]] = []
        self._anonymous: dict[tuple[str, str, str], str] = {}

        for endpoint in endpoints:
            method = endpoint.method.value
            for parameter in endpoint.parameters:
                self._collect(parameter.schema_, method)
            if endpoint.response_schema is not None:
                self._collect(endpoint.response_schema, method)

            body = endpoint.body
            if body is not None and _wants_alias(body.schema_):
                self._declare_anonymous(endpoint, "body", body.schema_)
            if endpoint.response_schema is not None and _wants_alias(endpoint.response_schema):
                self._declare_anonymous(endpoint, "response", endpoint.response_schema)

    # -- collection -------------------------------------------------------

    def _collect(self, node: SchemaNode, method: str) -> None:
        if node.name is not None and not isinstance(node, CyclicSchema):
            if node.name in self._definitions:
                return
            type_name = self._registry.allocate(node.name, method)
            self._definitions[node.name] = type_name
            # Nullability is rendered at each use site as ``Name | null``.
            self._declarations.append((type_name, node.model_copy(update={"nullable": False})))
        if isinstance(node, ArraySchema):
            self._collect(node.items, method)
        elif isinstance(node, ObjectSchema):
            for child in node.properties.values():
                self._collect(child, method)

    def _declare_anonymous(self, endpoint: Endpoint, role: str, node: SchemaNode) -> None:
        type_name = self._registry.allocate(
            f"{endpoint.identifier}_{role}", endpoint.method.value
        )
        self._anonymous[(endpoint.path, endpoint.method.value, role)] = type_name
        self._declarations.append((type_name, node))

    # -- queries ----------------------------------------------------------

    @property
    def type_names(self) -> list[str]:
        """Declared type names in declaration order."""
        return [name for name, _ in self._declarations]

    def response_type(self, endpoint: Endpoint) -> str:
        """Type expression for the data *endpoint* resolves to."""
        alias = self._anonymous.get((endpoint.path, endpoint.method.value, "response"))
        if alias:
            return alias
        if endpoint.response_schema is None:
            return "unknown"
        return self.expression(endpoint.response_schema)

    def body_type(self, endpoint: Endpoint) -> Optional[str]:
        """Type expression for the request body of *endpoint*, if it has one."""
        body = endpoint.body
        if body is None:
            return None
        return self._anonymous.get((endpoint.path, endpoint.method.value, "body")) or self.expression(
            body.schema_
        )

    # -- rendering --------------------------------------------------------

    def expression(self, node: SchemaNode, indent: str = "") -> str:
        """Return the TypeScript type expression for *node*.

        Named schemas render as their type name, cyclic edges as the name of
        the definition they point back to.
        """
        if isinstance(node, CyclicSchema):
            return self._definitions.get(node.target, to_pascal(node.target))
        if node.name is not None and node.name in self._definitions:
            return _nullable(self._definitions[node.name], node)
        return self._structure(node, indent)

    def _structure(self, node: SchemaNode, indent: str) -> str:
        if isinstance(node, ArraySchema):
            inner = self.expression(node.items, indent)
            if " | " in inner and not (inner.startswith("{") and inner.endswith("}")):
                inner = f"({inner})"
            return _nullable(f"{inner}[]", node)
        if isinstance(node, ObjectSchema):
            return _nullable(self._object_literal(node, indent), node)
        if isinstance(node, PrimitiveSchema):
            if node.enum and node.type in ("string", "integer", "number", "boolean"):
                text = " | ".join(json.dumps(value) for value in node.enum)
            else:
                text = _PRIMITIVES.get(node.type, "unknown")
            return _nullable(text, node)
        return "unknown"

    def _object_literal(self, node: ObjectSchema, indent: str) -> str:
        if not node.properties:
            return "Record<string, unknown>"
        inner = indent + "  "
        lines = ["{"]
        for name, child in node.properties.items():
            optional = "" if name in node.required else "?"
            child_type = self.expression(child, inner)
            lines.append(
                f"{doc_comment(child.description, inner)}"
                f"{inner}{property_key(name)}{optional}: {child_type};"
            )
        lines.append(indent + "}")
        return "\n".join(lines)

    def declaration(self, type_name: str, node: SchemaNode) -> str:
        """Return the ``export`` statement declaring *type_name*."""
        comment = doc_comment(node.description)
        if isinstance(node, ObjectSchema) and not node.nullable and node.properties:
            return f"{comment}export interface {type_name} {self._object_literal(node, '')}"
        return f"{comment}export type {type_name} = {self._structure(node, '')};"

    def declarations(self) -> list[str]:
        """Every declaration, in collection order."""
        return [self.declaration(name, node) for name, node in self._declarations]


def _wants_alias(node: SchemaNode) -> bool:
    """Anonymous objects and arrays get a named alias; primitives stay inline."""
    return node.name is None and isinstance(node, (ObjectSchema, ArraySchema))


def _nullable(text: str, node: SchemaNode) -> str:
    return f"{text} | null" if getattr(node, "nullable", False) else text
