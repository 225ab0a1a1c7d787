"""Deterministic mock data shaped by resolved schemas.

:class:`MockSynthesizer` walks a resolved :data:`~specbind.models.SchemaNode`
and produces a JSON-compatible sample value. The value depends only on the
schema, the name of the field being filled and the position of the element
inside its array, so generating twice yields identical mock modules.

For primitives the first of these wins: the schema's ``example``, its
``default``, the first ``enum`` value, a sample for the ``format``, a sample
guessed from the field name, a sample for the ``type``. Arrays hold
``array_length`` elements (2 or 3), objects include every declared field,
and a :class:`~specbind.models.CyclicSchema` edge ends in ``None``.
"""

from __future__ import annotations

import base64
import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from specbind.models import (
    ArraySchema,
    CyclicSchema,
    Endpoint,
    HTTPMethod,
    MockResponse,
    ObjectSchema,
    PrimitiveSchema,
    SchemaNode,
)

logger = logging.getLogger(__name__)

_BASE_DATE = date(2024, 1, 1)
_BASE_DATETIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
_UUID_NAMESPACE = uuid.UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")


def _label(field: str) -> str:
    return field.replace("_", " ").strip() or "value"


def _email(field: str, index: int) -> str:
    return f"user{index + 1}@example.com"


def _date(field: str, index: int) -> str:
    return (_BASE_DATE + timedelta(days=index)).isoformat()


def _datetime(field: str, index: int) -> str:
    value = _BASE_DATETIME + timedelta(days=index)
    return value.isoformat().replace("+00:00", "Z")


def _time(field: str, index: int) -> str:
    return time(12, index % 60).isoformat()


def _uuid(field: str, index: int) -> str:
    return str(uuid.uuid5(_UUID_NAMESPACE, f"{field}:{index}"))


def _uri(field: str, index: int) -> str:
    slug = _label(field).replace(" ", "-").lower()
    return f"https://example.com/{slug}/{index + 1}"


_FORMATS: dict[str, Callable[[str, int], Any]] = {
    "email": _email,
    "date": _date,
    "date-time": _datetime,
    "time": _time,
    "uuid": _uuid,
    "uri": _uri,
    "url": _uri,
    "hostname": lambda field, index: f"host{index + 1}.example.com",
    "ipv4": lambda field, index: f"192.0.2.{index + 1}",
    "ipv6": lambda field, index: f"2001:db8::{index + 1}",
    "byte": lambda field, index: base64.b64encode(
        f"{_label(field)} {index + 1}".encode()
    ).decode("ascii"),
    "binary": lambda field, index: f"<binary {_label(field)} {index + 1}>",
    "password": lambda field, index: "********",
    "int32": lambda field, index: index + 1,
    "int64": lambda field, index: index + 1,
    "float": lambda field, index: round(1.5 + index, 2),
    "double": lambda field, index: round(1.5 + index, 2),
}

# Field-name hints, checked in order against the lowercased name of a string field.
_NAME_HINTS: tuple[tuple[str, str], ...] = (
    ("email", "email"),
    ("url", "uri"),
    ("uri", "uri"),
    ("uuid", "uuid"),
    ("created_at", "date-time"),
    ("updated_at", "date-time"),
    ("timestamp", "date-time"),
    ("date", "date"),
)


class MockSynthesizer:
    """Builds sample values and mock responses.

    Args:
        array_length: Elements per synthesized array, 2 or 3.
        latency_ms: Simulated latency attached to every
            :class:`~specbind.models.MockResponse`.

    Raises:
        ValueError: If *array_length* is outside 2..3 or *latency_ms* is
            negative.
    """

    def __init__(self, array_length: int = 2, latency_ms: int = 250) -> None:
        if not 2 <= array_length <= 3:
            raise ValueError(f"array_length must be 2 or 3, got {array_length}")
        if latency_ms < 0:
            raise ValueError(f"latency_ms must not be negative, got {latency_ms}")
        self.array_length = array_length
        self.latency_ms = latency_ms

    def synthesize(
        self,
        node: Optional[SchemaNode],
        field_name: Optional[str] = None,
        index: int = 0,
    ) -> Any:
        """Return a sample value matching *node*.

        Args:
            node: A resolved schema node. ``None`` yields ``None``.
            field_name: Name of the field being filled, used for hints.
            index: Position of the enclosing array element.
        """
        if node is None or isinstance(node, CyclicSchema):
            return None
        if isinstance(node, ArraySchema):
            return [
                self.synthesize(node.items, field_name, i)
                for i in range(self.array_length)
            ]
        if isinstance(node, ObjectSchema):
            return {
                name: self.synthesize(child, name, index)
                for name, child in node.properties.items()
            }
        if isinstance(node, PrimitiveSchema):
            return self._primitive(node, field_name or "", index)
        logger.debug("No mock value for unresolved %s node", node.kind)
        return None

    def _primitive(self, node: PrimitiveSchema, field: str, index: int) -> Any:
        if node.example is not None:
            return node.example
        if node.default is not None:
            return node.default
        if node.enum:
            return node.enum[0]
        if node.format in _FORMATS:
            return _FORMATS[node.format](field, index)

        if node.type == "integer":
            return index + 1
        if node.type == "number":
            return round(1.5 + index, 2)
        if node.type == "boolean":
            return index % 2 == 0
        if node.type == "null":
            return None
        if node.type in ("string", "any"):
            lowered = field.lower()
            for hint, fmt in _NAME_HINTS:
                if hint in lowered:
                    return _FORMATS[fmt](field, index)
            if node.type == "any" and not field:
                return None
            return f"{_label(field)} {index + 1}" if field else f"string {index + 1}"
        return None

    def for_endpoint(self, endpoint: Endpoint) -> MockResponse:
        """Return the mock response the generated client serves for *endpoint*.

        Status is 201 for POST, 204 for a DELETE without a response schema,
        200 otherwise.
        """
        status = 200
        if endpoint.method == HTTPMethod.POST:
            status = 201
        elif endpoint.method == HTTPMethod.DELETE and endpoint.response_schema is None:
            status = 204
        return MockResponse(
            identifier=endpoint.identifier,
            method=endpoint.method,
            path=endpoint.path,
            status=status,
            data=self.synthesize(endpoint.response_schema),
            latency_ms=self.latency_ms,
        )

    def synthesize_all(self, endpoints: Sequence[Endpoint]) -> list[MockResponse]:
        """Return one mock response per endpoint, in endpoint order."""
        return [self.for_endpoint(endpoint) for endpoint in endpoints]
