"""Tests for specbind.emitters.typescript."""

from __future__ import annotations

import pytest

from specbind.emitters.typescript import TypeScriptRenderer, comment_text, property_key
from specbind.exceptions import NameCollision
from specbind.models import (
    ArraySchema,
    CyclicSchema,
    Endpoint,
    HTTPMethod,
    ObjectSchema,
    Parameter,
    ParameterLocation,
    PrimitiveSchema,
)


def _endpoint(identifier: str, response=None, method: HTTPMethod = HTTPMethod.GET, **kwargs) -> Endpoint:
    return Endpoint(
        path=kwargs.pop("path", f"/{identifier}"),
        method=method,
        identifier=identifier,
        response_schema=response,
        **kwargs,
    )


class TestHelpers:
    def test_property_key(self) -> None:
        assert property_key("userId") == "userId"
        assert property_key("X-Request-Id") == '"X-Request-Id"'

    def test_comment_text_is_single_line_and_safe(self) -> None:
        assert comment_text("Lists\n  users */ now") == "Lists users *\\/ now"
        assert comment_text(None) == ""


class TestExpressions:
    @pytest.fixture
    def renderer(self) -> TypeScriptRenderer:
        return TypeScriptRenderer([])

    @pytest.mark.parametrize(
        "node, expected",
        [
            (PrimitiveSchema(type="integer"), "number"),
            (PrimitiveSchema(type="string", nullable=True), "string | null"),
            (PrimitiveSchema(type="any"), "unknown"),
            (PrimitiveSchema(type="string", enum=["a", "b"]), '"a" | "b"'),
            (ArraySchema(items=PrimitiveSchema(type="boolean")), "boolean[]"),
            (
                ArraySchema(items=PrimitiveSchema(type="string", nullable=True)),
                "(string | null)[]",
            ),
            (ObjectSchema(), "Record<string, unknown>"),
        ],
    )
    def test_primitive_and_array_expressions(self, renderer: TypeScriptRenderer, node, expected: str) -> None:
        assert renderer.expression(node) == expected

    def test_object_literal(self, renderer: TypeScriptRenderer) -> None:
        node = ObjectSchema(
            properties={
                "id": PrimitiveSchema(type="integer", description="Primary key"),
                "display-name": PrimitiveSchema(type="string"),
            },
            required=["id"],
        )
        assert renderer.expression(node) == (
            "{\n"
            "  /** Primary key */\n"
            "  id: number;\n"
            '  "display-name"?: string;\n'
            "}"
        )


class TestCollection:
    def test_users_api_type_names(self, users_endpoints) -> None:
        renderer = TypeScriptRenderer(users_endpoints)
        assert renderer.type_names == [
            "User",
            "ListUsersResponse",
            "NewUser",
            "TreeNode",
            "HealthCheckResponse",
        ]

    def test_response_and_body_types(self, users_endpoints) -> None:
        renderer = TypeScriptRenderer(users_endpoints)
        list_users, create_user, get_user, delete_user = users_endpoints[:4]
        assert renderer.response_type(list_users) == "ListUsersResponse"
        assert renderer.response_type(create_user) == "User"
        assert renderer.body_type(create_user) == "NewUser"
        assert renderer.body_type(get_user) is None
        assert renderer.response_type(delete_user) == "unknown"

    def test_declarations(self, users_endpoints) -> None:
        declarations = TypeScriptRenderer(users_endpoints).declarations()
        assert declarations[0] == (
            "export interface User {\n"
            "  id: number;\n"
            "  name: string;\n"
            "  email?: string;\n"
            "}"
        )
        assert declarations[1] == "export type ListUsersResponse = User[];"

    def test_recursive_schema_becomes_recursive_interface(self, users_endpoints) -> None:
        renderer = TypeScriptRenderer(users_endpoints)
        tree = dict(zip(renderer.type_names, renderer.declarations()))["TreeNode"]
        assert tree == (
            "/** A node with nested children */\n"
            "export interface TreeNode {\n"
            "  label: string;\n"
            "  children?: TreeNode[];\n"
            "}"
        )

    def test_nested_definitions_are_declared(self) -> None:
        address = ObjectSchema(name="Address", properties={"city": PrimitiveSchema(type="string")})
        customer = ObjectSchema(name="Customer", properties={"address": address})
        renderer = TypeScriptRenderer([_endpoint("getCustomer", customer)])
        assert renderer.type_names == ["Customer", "Address"]
        assert "  address?: Address;" in renderer.declarations()[0]

    def test_nullable_use_of_definition(self) -> None:
        address = ObjectSchema(name="Address", properties={"city": PrimitiveSchema(type="string")})
        customer = ObjectSchema(
            name="Customer",
            properties={"billing": address.model_copy(update={"nullable": True}), "shipping": address},
        )
        renderer = TypeScriptRenderer([_endpoint("getCustomer", customer)])
        customer_decl, address_decl = renderer.declarations()
        assert "  billing?: Address | null;" in customer_decl
        assert "  shipping?: Address;" in customer_decl
        assert address_decl.startswith("export interface Address {")

    def test_cycle_target_named_after_definition(self) -> None:
        renderer = TypeScriptRenderer([])
        assert renderer.expression(CyclicSchema(target="tree_node")) == "TreeNode"

    def test_anonymous_body_alias(self) -> None:
        body = ObjectSchema(properties={"title": PrimitiveSchema(type="string")}, required=["title"])
        endpoint = _endpoint(
            "createPost",
            method=HTTPMethod.POST,
            parameters=[Parameter(name="body", location=ParameterLocation.BODY, schema=body, required=True)],
        )
        renderer = TypeScriptRenderer([endpoint])
        assert renderer.type_names == ["CreatePostBody"]
        assert renderer.body_type(endpoint) == "CreatePostBody"

    def test_primitive_responses_stay_inline(self) -> None:
        endpoint = _endpoint("count", PrimitiveSchema(type="integer"))
        renderer = TypeScriptRenderer([endpoint])
        assert renderer.type_names == []
        assert renderer.response_type(endpoint) == "number"

    def test_type_collision_uses_method_suffix(self) -> None:
        item = ObjectSchema(name="Item", properties={})
        endpoints = [
            _endpoint("item", ObjectSchema(properties={"a": item}), path="/a"),
            _endpoint("item", ObjectSchema(properties={}), method=HTTPMethod.POST, path="/b"),
        ]
        renderer = TypeScriptRenderer(endpoints)
        assert renderer.type_names == ["Item", "ItemResponse", "ItemResponsePost"]

    def test_unresolvable_type_collision_raises(self) -> None:
        endpoints = [
            _endpoint("a", ObjectSchema(name="Thing", properties={}), path="/1"),
            _endpoint("b", ObjectSchema(name="thing", properties={}), path="/2"),
            _endpoint("c", ObjectSchema(name="THING", properties={}), path="/3"),
        ]
        with pytest.raises(NameCollision):
            TypeScriptRenderer(endpoints)
