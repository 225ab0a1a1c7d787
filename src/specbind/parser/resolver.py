"""Turn JSON-schema fragments into fully expanded :data:`SchemaNode` trees.

Two passes are involved:

1. :func:`parse_schema` converts a raw schema dictionary into a
   :data:`~specbind.models.SchemaNode` tree. ``$ref`` pointers to named
   definitions are kept as :class:`~specbind.models.ReferenceSchema` leaves.
2. :class:`SchemaResolver` expands those leaves against the document's named
   definitions (``components/schemas`` or Swagger 2 ``definitions``).

The resolver keeps an *open set* of definition names whose expansion is in
progress. Meeting a reference to an open name means the schema graph loops
back on itself (a tree node holding its children, two models referencing each
other); that edge becomes a terminal :class:`~specbind.models.CyclicSchema`
instead of another expansion, so resolution depth is bounded by the number of
definitions. A reference to a name that does not exist raises
:class:`~specbind.exceptions.UnresolvedSchemaRef`; it is never downgraded to
``any``.

Non-schema references (shared parameters, responses, request bodies) are
followed with :func:`resolve_pointer` and :func:`dereference`.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from pydantic import BaseModel

from specbind.exceptions import UnresolvedSchemaRef
from specbind.models import (
    ArraySchema,
    CyclicSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    SchemaNode,
    SpecDocument,
)

logger = logging.getLogger(__name__)

_DEFINITION_PREFIXES = ("#/components/schemas/", "#/definitions/")


# --- Parsing ---


def parse_schema(raw: Any) -> SchemaNode:
    """Convert a raw JSON-schema dict into a :data:`SchemaNode` tree.

    Handles OpenAPI 3.1 ``type`` arrays (``["string", "null"]``), the 3.0
    ``nullable`` flag and Swagger's ``x-nullable``, ``allOf`` composition,
    ``oneOf``/``anyOf`` (first non-null variant), and untyped schemas that
    are implied objects or arrays by their ``properties`` or ``items``.
    Anything else becomes a primitive of type ``any``.

    Args:
        raw: The schema fragment. Non-dict values yield ``any``.

    Returns:
        The parsed node. References remain unexpanded.

    Raises:
        UnresolvedSchemaRef: If a ``$ref`` is external or does not point at a
            named definition.
    """
    if not isinstance(raw, dict):
        return PrimitiveSchema()

    description = raw.get("description")

    if "$ref" in raw:
        return ReferenceSchema(
            target=definition_name(raw["$ref"]),
            description=description,
            nullable=_schema_type(raw)[1],
        )
    if raw.get("allOf"):
        return _parse_all_of(raw)
    for key in ("oneOf", "anyOf"):
        if raw.get(key):
            return _parse_variants(raw[key], description)

    schema_type, nullable = _schema_type(raw)

    if schema_type == "array" or (schema_type is None and "items" in raw):
        return ArraySchema(
            items=parse_schema(raw.get("items")),
            nullable=nullable,
            description=description,
        )

    if schema_type == "object" or (schema_type is None and "properties" in raw):
        properties = raw.get("properties") or {}
        return ObjectSchema(
            properties={name: parse_schema(prop) for name, prop in properties.items()},
            required=[name for name in raw.get("required") or [] if name in properties],
            nullable=nullable,
            description=description,
        )

    enum = raw.get("enum")
    if enum is None and "const" in raw:
        enum = [raw["const"]]
    example = raw.get("example")
    if example is None and isinstance(raw.get("examples"), list) and raw["examples"]:
        example = raw["examples"][0]

    return PrimitiveSchema(
        type=schema_type or "any",
        format=raw.get("format"),
        enum=enum,
        nullable=nullable,
        example=example,
        default=raw.get("default"),
        description=description,
    )


def _schema_type(raw: dict[str, Any]) -> tuple[str | None, bool]:
    """Return ``(type, nullable)`` from *raw*, unwrapping 3.1 type arrays."""
    nullable = bool(raw.get("nullable") or raw.get("x-nullable"))
    schema_type = raw.get("type")
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != "null"]
        nullable = nullable or len(non_null) < len(schema_type)
        schema_type = non_null[0] if non_null else "null"
    return schema_type, nullable


def _parse_all_of(raw: dict[str, Any]) -> SchemaNode:
    members = list(raw["allOf"])
    own = {k: v for k, v in raw.items() if k != "allOf"}
    if "properties" in own:
        members.append(own)
    elif len(members) == 1:
        # ``allOf: [{$ref}]`` is the usual wrapper for annotating a reference.
        node = parse_schema(members[0])
        if _schema_type(raw)[1] and not isinstance(node, CyclicSchema):
            node = node.model_copy(update={"nullable": True})
        return node

    merged = ObjectSchema(
        nullable=_schema_type(raw)[1],
        description=raw.get("description"),
    )
    for member in members:
        node = parse_schema(member)
        if isinstance(node, ReferenceSchema):
            merged.extends.append(node.target)
        elif isinstance(node, ObjectSchema):
            merged.extends.extend(node.extends)
            merged.properties.update(node.properties)
            merged.required.extend(r for r in node.required if r not in merged.required)
        else:
            logger.debug("Ignoring non-object allOf member of kind %s", node.kind)
    return merged


def _parse_variants(variants: list[Any], description: str | None) -> SchemaNode:
    non_null = [
        v for v in variants if not (isinstance(v, dict) and v.get("type") == "null")
    ]
    if not non_null:
        return PrimitiveSchema(type="null", description=description)
    node = parse_schema(non_null[0])
    if len(non_null) < len(variants) and not isinstance(node, CyclicSchema):
        node = node.model_copy(update={"nullable": True})
    return node


def definition_name(ref: Any) -> str:
    """Return the definition name a schema ``$ref`` points at.

    Accepts ``#/components/schemas/<Name>`` and ``#/definitions/<Name>``.

    Raises:
        UnresolvedSchemaRef: For external references and pointers into
            anything other than a named definition.
    """
    if isinstance(ref, str):
        for prefix in _DEFINITION_PREFIXES:
            if ref.startswith(prefix):
                name = ref[len(prefix):]
                if name and "/" not in name:
                    return _unescape(name)
    raise UnresolvedSchemaRef(str(ref), "only local schema definitions are supported")


# --- Resolution ---


class SchemaResolver:
    """Expand :class:`ReferenceSchema` leaves against named definitions.

    Args:
        definitions: Raw schema dictionaries keyed by definition name.

    Example::

        resolver = SchemaResolver.from_document(document)
        node = resolver.resolve({"$ref": "#/components/schemas/TreeNode"})
        node.properties["children"].items  # CyclicSchema(target="TreeNode")
    """

    def __init__(self, definitions: dict[str, Any]) -> None:
        self._definitions = definitions
        self._open: set[str] = set()

    @classmethod
    def from_document(cls, document: SpecDocument) -> SchemaResolver:
        return cls(document.definitions)

    @property
    def definition_names(self) -> list[str]:
        return list(self._definitions)

    def resolve(self, schema: Union[SchemaNode, dict[str, Any], None]) -> SchemaNode:
        """Return a fully expanded copy of *schema*.

        Args:
            schema: A parsed node, or a raw schema dict to parse first.

        Returns:
            A tree containing no :class:`ReferenceSchema`. Edges back into a
            definition still being expanded are :class:`CyclicSchema`.

        Raises:
            UnresolvedSchemaRef: If a reference names an unknown definition.
        """
        node = schema if isinstance(schema, BaseModel) else parse_schema(schema)
        return self._walk(node)

    def _walk(self, node: SchemaNode) -> SchemaNode:
        if isinstance(node, ReferenceSchema):
            expanded = self._expand(node.target)
            if node.nullable and not isinstance(expanded, CyclicSchema):
                expanded = expanded.model_copy(update={"nullable": True})
            return expanded
        if isinstance(node, ArraySchema):
            return node.model_copy(update={"items": self._walk(node.items)})
        if isinstance(node, ObjectSchema):
            return self._walk_object(node)
        return node

    def _walk_object(self, node: ObjectSchema) -> ObjectSchema:
        properties: dict[str, SchemaNode] = {}
        required: list[str] = []
        for base_name in node.extends:
            base = self._expand(base_name)
            if isinstance(base, ObjectSchema):
                properties.update(base.properties)
                required.extend(r for r in base.required if r not in required)
            else:
                logger.debug("allOf base %s is %s, not merged", base_name, base.kind)
        for field_name, child in node.properties.items():
            properties[field_name] = self._walk(child)
        required.extend(r for r in node.required if r not in required)
        return node.model_copy(
            update={"properties": properties, "required": required, "extends": []}
        )

    def _expand(self, name: str) -> SchemaNode:
        if name in self._open:
            logger.debug("Cycle detected at definition %s", name)
            return CyclicSchema(target=name)
        if name not in self._definitions:
            raise UnresolvedSchemaRef(name, "no such schema definition")

        self._open.add(name)
        try:
            node = self._walk(parse_schema(self._definitions[name]))
        finally:
            self._open.discard(name)
        return node.model_copy(update={"name": name})


# --- Non-schema references ---


def resolve_pointer(document: dict[str, Any], ref: str) -> Any:
    """Resolve a local JSON pointer such as ``#/components/parameters/Limit``.

    Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``).

    Raises:
        UnresolvedSchemaRef: If the reference is external, or any segment is
            missing from *document*.
    """
    if not isinstance(ref, str) or not ref.startswith("#/"):
        raise UnresolvedSchemaRef(str(ref), "only local references are supported")

    current: Any = document
    for segment in ref[2:].split("/"):
        segment = _unescape(segment)
        if isinstance(current, dict):
            if segment not in current:
                raise UnresolvedSchemaRef(ref, f"key '{segment}' not found")
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise UnresolvedSchemaRef(ref, f"invalid array index '{segment}'") from exc
        else:
            raise UnresolvedSchemaRef(
                ref, f"cannot navigate into {type(current).__name__}"
            )
    return current


def dereference(document: dict[str, Any], obj: Any) -> Any:
    """Follow ``$ref`` chains on *obj* until reaching a concrete object.

    Raises:
        UnresolvedSchemaRef: If a pointer is missing or the chain loops.
    """
    seen: set[str] = set()
    while isinstance(obj, dict) and "$ref" in obj:
        ref = obj["$ref"]
        if ref in seen:
            raise UnresolvedSchemaRef(ref, "circular reference chain")
        seen.add(ref)
        obj = resolve_pointer(document, ref)
    return obj


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")
