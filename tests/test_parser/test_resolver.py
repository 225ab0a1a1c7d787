"""Tests for specbind.parser.resolver."""

from __future__ import annotations

import pytest

from specbind.exceptions import UnresolvedSchemaRef
from specbind.models import (
    ArraySchema,
    CyclicSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    SpecDocument,
)
from specbind.parser.resolver import (
    SchemaResolver,
    definition_name,
    dereference,
    parse_schema,
    resolve_pointer,
)


# ---------------------------------------------------------------------------
# parse_schema
# ---------------------------------------------------------------------------


class TestParseSchema:
    def test_primitive(self) -> None:
        node = parse_schema({"type": "string", "format": "email", "example": "a@b.c"})
        assert isinstance(node, PrimitiveSchema)
        assert (node.type, node.format, node.example) == ("string", "email", "a@b.c")

    def test_non_dict_is_any(self) -> None:
        assert parse_schema(None) == PrimitiveSchema(type="any")

    def test_ref_becomes_reference_leaf(self) -> None:
        node = parse_schema({"$ref": "#/components/schemas/User"})
        assert node == ReferenceSchema(target="User")

    def test_swagger_ref(self) -> None:
        assert parse_schema({"$ref": "#/definitions/Pet"}).target == "Pet"

    @pytest.mark.parametrize(
        "raw",
        [
            {"$ref": "#/components/schemas/User", "nullable": True},
            {"allOf": [{"$ref": "#/components/schemas/User"}], "nullable": True},
            {"oneOf": [{"$ref": "#/components/schemas/User"}, {"type": "null"}]},
        ],
    )
    def test_nullable_reference(self, raw: dict) -> None:
        assert parse_schema(raw) == ReferenceSchema(target="User", nullable=True)

    def test_object_keeps_field_order_and_known_required(self) -> None:
        node = parse_schema(
            {
                "type": "object",
                "required": ["b", "ghost"],
                "properties": {"b": {"type": "string"}, "a": {"type": "integer"}},
            }
        )
        assert isinstance(node, ObjectSchema)
        assert list(node.properties) == ["b", "a"]
        assert node.required == ["b"]

    def test_implied_object_and_array(self) -> None:
        assert isinstance(parse_schema({"properties": {"x": {}}}), ObjectSchema)
        node = parse_schema({"items": {"type": "integer"}})
        assert isinstance(node, ArraySchema)
        assert node.items.type == "integer"

    def test_openapi_31_type_array(self) -> None:
        node = parse_schema({"type": ["string", "null"]})
        assert node.type == "string"
        assert node.nullable

    def test_nullable_flags(self) -> None:
        assert parse_schema({"type": "integer", "nullable": True}).nullable
        assert parse_schema({"type": "integer", "x-nullable": True}).nullable

    def test_const_becomes_single_enum(self) -> None:
        assert parse_schema({"const": "fixed"}).enum == ["fixed"]

    def test_examples_list(self) -> None:
        assert parse_schema({"type": "string", "examples": ["first", "second"]}).example == "first"

    def test_one_of_picks_first_non_null_variant(self) -> None:
        node = parse_schema({"oneOf": [{"type": "null"}, {"type": "integer"}, {"type": "string"}]})
        assert node.type == "integer"
        assert node.nullable

    def test_all_of_merges_inline_members(self) -> None:
        node = parse_schema(
            {
                "allOf": [
                    {"type": "object", "properties": {"a": {"type": "string"}}, "required": ["a"]},
                    {"type": "object", "properties": {"b": {"type": "integer"}}},
                ]
            }
        )
        assert isinstance(node, ObjectSchema)
        assert list(node.properties) == ["a", "b"]
        assert node.required == ["a"]

    def test_all_of_single_ref_is_unwrapped(self) -> None:
        node = parse_schema({"allOf": [{"$ref": "#/components/schemas/User"}], "description": "x"})
        assert node == ReferenceSchema(target="User")

    def test_all_of_refs_are_deferred(self) -> None:
        node = parse_schema(
            {
                "allOf": [{"$ref": "#/components/schemas/Base"}],
                "properties": {"extra": {"type": "boolean"}},
            }
        )
        assert node.extends == ["Base"]
        assert list(node.properties) == ["extra"]


class TestDefinitionName:
    def test_unescapes(self) -> None:
        assert definition_name("#/components/schemas/a~1b") == "a/b"

    @pytest.mark.parametrize(
        "ref",
        [
            "other.yaml#/components/schemas/User",
            "#/components/parameters/Limit",
            "#/components/schemas/",
        ],
    )
    def test_rejects_non_definition_refs(self, ref: str) -> None:
        with pytest.raises(UnresolvedSchemaRef):
            definition_name(ref)


# ---------------------------------------------------------------------------
# SchemaResolver
# ---------------------------------------------------------------------------


class TestSchemaResolver:
    def test_expands_named_definition(self) -> None:
        resolver = SchemaResolver(
            {"User": {"type": "object", "properties": {"id": {"type": "integer"}}}}
        )
        node = resolver.resolve({"type": "array", "items": {"$ref": "#/components/schemas/User"}})
        assert isinstance(node, ArraySchema)
        assert node.items.name == "User"
        assert node.items.properties["id"].type == "integer"

    def test_self_reference_terminates_with_cyclic_marker(self) -> None:
        resolver = SchemaResolver(
            {
                "Node": {
                    "type": "object",
                    "properties": {
                        "value": {"type": "string"},
                        "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
                        "parent": {"$ref": "#/components/schemas/Node"},
                    },
                }
            }
        )
        node = resolver.resolve({"$ref": "#/components/schemas/Node"})
        assert node.name == "Node"
        assert node.properties["children"].items == CyclicSchema(target="Node")
        assert node.properties["parent"] == CyclicSchema(target="Node")

    def test_mutual_recursion(self) -> None:
        resolver = SchemaResolver(
            {
                "Author": {"properties": {"books": {"items": {"$ref": "#/definitions/Book"}}}},
                "Book": {"properties": {"author": {"$ref": "#/definitions/Author"}}},
            }
        )
        author = resolver.resolve({"$ref": "#/definitions/Author"})
        book = author.properties["books"].items
        assert book.name == "Book"
        assert book.properties["author"] == CyclicSchema(target="Author")

    def test_sibling_references_are_expanded_independently(self) -> None:
        resolver = SchemaResolver(
            {
                "Money": {"type": "object", "properties": {"amount": {"type": "number"}}},
                "Order": {
                    "type": "object",
                    "properties": {
                        "total": {"$ref": "#/components/schemas/Money"},
                        "tax": {"$ref": "#/components/schemas/Money"},
                    },
                },
            }
        )
        order = resolver.resolve({"$ref": "#/components/schemas/Order"})
        assert order.properties["total"].name == "Money"
        assert order.properties["tax"].name == "Money"
        assert isinstance(order.properties["tax"], ObjectSchema)

    def test_nullable_reference_marks_only_that_use(self) -> None:
        resolver = SchemaResolver(
            {
                "Money": {"type": "object", "properties": {"amount": {"type": "number"}}},
                "Order": {
                    "type": "object",
                    "properties": {
                        "total": {"$ref": "#/components/schemas/Money"},
                        "discount": {
                            "allOf": [{"$ref": "#/components/schemas/Money"}],
                            "nullable": True,
                        },
                    },
                },
            }
        )
        order = resolver.resolve({"$ref": "#/components/schemas/Order"})
        assert order.properties["discount"].name == "Money"
        assert order.properties["discount"].nullable
        assert not order.properties["total"].nullable

    def test_unknown_reference_raises(self) -> None:
        resolver = SchemaResolver({})
        with pytest.raises(UnresolvedSchemaRef, match="Missing"):
            resolver.resolve({"$ref": "#/components/schemas/Missing"})

    def test_all_of_bases_are_merged_first(self, petstore_document: SpecDocument) -> None:
        resolver = SchemaResolver.from_document(petstore_document)
        pet = resolver.resolve({"$ref": "#/definitions/Pet"})
        assert pet.name == "Pet"
        assert list(pet.properties) == ["name", "tag", "id"]
        assert pet.required == ["name", "id"]
        assert pet.extends == []
        assert pet.properties["tag"].nullable

    def test_resolved_tree_has_no_references(self, users_document: SpecDocument) -> None:
        resolver = SchemaResolver.from_document(users_document)

        def walk(node) -> None:
            assert not isinstance(node, ReferenceSchema)
            if isinstance(node, ArraySchema):
                walk(node.items)
            elif isinstance(node, ObjectSchema):
                for child in node.properties.values():
                    walk(child)

        for name in resolver.definition_names:
            walk(resolver.resolve({"$ref": f"#/components/schemas/{name}"}))

    def test_accepts_parsed_nodes(self) -> None:
        resolver = SchemaResolver({"Id": {"type": "integer"}})
        node = resolver.resolve(ReferenceSchema(target="Id"))
        assert node == PrimitiveSchema(type="integer", name="Id")


# ---------------------------------------------------------------------------
# Non-schema references
# ---------------------------------------------------------------------------


class TestPointers:
    def test_resolve_pointer(self, users_api_raw: dict) -> None:
        limit = resolve_pointer(users_api_raw, "#/components/parameters/Limit")
        assert limit["name"] == "limit"

    def test_resolve_pointer_array_index(self) -> None:
        doc = {"servers": [{"url": "a"}, {"url": "b"}]}
        assert resolve_pointer(doc, "#/servers/1") == {"url": "b"}

    def test_resolve_pointer_missing_key(self) -> None:
        with pytest.raises(UnresolvedSchemaRef, match="not found"):
            resolve_pointer({"components": {}}, "#/components/parameters/Nope")

    def test_external_pointer_rejected(self) -> None:
        with pytest.raises(UnresolvedSchemaRef, match="local"):
            resolve_pointer({}, "common.yaml#/Limit")

    def test_dereference_follows_chains(self) -> None:
        doc = {
            "components": {
                "parameters": {
                    "A": {"$ref": "#/components/parameters/B"},
                    "B": {"name": "b", "in": "query"},
                }
            }
        }
        assert dereference(doc, {"$ref": "#/components/parameters/A"})["name"] == "b"

    def test_dereference_detects_loops(self) -> None:
        doc = {"x": {"$ref": "#/y"}, "y": {"$ref": "#/x"}}
        with pytest.raises(UnresolvedSchemaRef, match="circular"):
            dereference(doc, {"$ref": "#/x"})
