"""Vue target: one composable per endpoint in ``composables.ts``.

Composables expose ``data``, ``loading`` and ``error`` refs plus an
``execute`` function. Composables for safe methods call ``execute`` from
``onMounted``; mutating ones wait for the caller.
"""

from __future__ import annotations

from typing import Sequence

from specbind.emitters.base import CodeEmitter, used_type_names
from specbind.emitters.typescript import TypeScriptRenderer
from specbind.models import Endpoint, GeneratedModule


class VueEmitter(CodeEmitter):
    """Emits Vue 3 composition-API composables."""

    binding_template = "vue/composable.ts.j2"
    bindings_template = "vue/composables.ts.j2"

    @property
    def framework(self) -> str:
        return "vue"

    @property
    def bindings_filename(self) -> str:
        return "composables.ts"

    def emit_endpoint_binding(
        self,
        endpoint: Endpoint,
        name: str,
        renderer: TypeScriptRenderer,
        mocks_enabled: bool = False,
    ) -> str:
        context = self.binding_context(endpoint, name, renderer, mocks_enabled)
        return self._render(self.binding_template, **context).strip()

    def emit_bindings(
        self,
        endpoints: Sequence[Endpoint],
        names: Sequence[str],
        renderer: TypeScriptRenderer,
        mocks_enabled: bool = False,
    ) -> GeneratedModule:
        bindings = [
            self.emit_endpoint_binding(endpoint, name, renderer, mocks_enabled)
            for endpoint, name in zip(endpoints, names)
        ]
        content = self._render(
            self.bindings_template,
            bindings=bindings,
            uses_mounted=any(e.method.is_safe for e in endpoints),
            type_imports=used_type_names("\n".join(bindings), renderer),
        )
        return self._module("bindings", content, names)
