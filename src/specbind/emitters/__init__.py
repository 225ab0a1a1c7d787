"""Frontend code emitters and their registry.

Each supported frontend target is one :class:`~specbind.emitters.base.CodeEmitter`
subclass registered in :data:`EMITTERS` under its framework tag. Adding a
target means adding a subclass and a registry entry; nothing else branches
on the framework.

Typical usage::

    from specbind.emitters import get_emitter

    modules = get_emitter("react").emit(endpoints, auth, config.base_url)
"""

from __future__ import annotations

from typing import Optional

from jinja2 import Environment

from specbind.emitters.base import CodeEmitter
from specbind.emitters.react import ReactEmitter
from specbind.emitters.typescript import TypeScriptRenderer
from specbind.emitters.vue import VueEmitter
from specbind.exceptions import UnsupportedFramework

EMITTERS: dict[str, type[CodeEmitter]] = {
    "react": ReactEmitter,
    "vue": VueEmitter,
}
"""Framework tag -> emitter class. ``react`` is the default target."""


def get_emitter(framework: str, environment: Optional[Environment] = None) -> CodeEmitter:
    """Instantiate the emitter registered for *framework*.

    Raises:
        UnsupportedFramework: If no emitter is registered under *framework*.
    """
    emitter_cls = EMITTERS.get(framework.strip().lower())
    if emitter_cls is None:
        raise UnsupportedFramework(framework, sorted(EMITTERS))
    return emitter_cls(environment)


__all__ = [
    "EMITTERS",
    "CodeEmitter",
    "ReactEmitter",
    "TypeScriptRenderer",
    "VueEmitter",
    "get_emitter",
]
