"""Identifier casing and collision-checked name allocation.

Binding names and type names are derived from endpoint identifiers with the
casing the target language expects. :class:`NameRegistry` hands those names
out once per run and applies the disambiguation rule: on a collision append
the capitalized HTTP method, and if that name is taken too, fail with
:class:`~specbind.exceptions.NameCollision`.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from specbind.exceptions import NameCollision

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9]|$|[^A-Za-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+")


def split_words(text: str) -> list[str]:
    """Split *text* on separators and camel-case boundaries.

    >>> split_words("get_userProfile-byID")
    ['get', 'user', 'Profile', 'by', 'ID']
    """
    return _WORD_RE.findall(text)


def to_pascal(text: str) -> str:
    """``"get_users_by_id"`` -> ``"GetUsersById"``."""
    name = "".join(w[0].upper() + w[1:].lower() for w in split_words(text))
    if not name:
        return "Unnamed"
    return f"_{name}" if name[0].isdigit() else name


def to_camel(text: str) -> str:
    """``"get_users_by_id"`` -> ``"getUsersById"``."""
    pascal = to_pascal(text)
    if pascal.startswith("_"):
        return pascal
    return pascal[0].lower() + pascal[1:]


class NameRegistry:
    """Allocates unique names derived from identifiers.

    Args:
        transform: Turns an identifier into the base name, e.g.
            ``lambda ident: "use" + to_pascal(ident)``.

    Example::

        registry = NameRegistry(to_pascal)
        registry.allocate("list_users", "get")    # 'ListUsers'
        registry.allocate("listUsers", "post")    # 'ListUsersPost'
    """

    def __init__(self, transform: Callable[[str], str]) -> None:
        self._transform = transform
        self._taken: dict[str, str] = {}

    def allocate(self, identifier: str, method: Optional[str] = None) -> str:
        """Return a name for *identifier* that no earlier call received.

        Raises:
            NameCollision: If both the base name and the method-suffixed
                name are already taken.
        """
        name = self._transform(identifier)
        if name not in self._taken:
            self._taken[name] = identifier
            return name

        suffix = (method or "").capitalize()
        candidate = name + suffix
        if not suffix or candidate in self._taken:
            raise NameCollision(candidate, identifier)
        self._taken[candidate] = identifier
        return candidate

    def __contains__(self, name: str) -> bool:
        return name in self._taken

    @property
    def names(self) -> list[str]:
        """Names handed out so far, in allocation order."""
        return list(self._taken)
