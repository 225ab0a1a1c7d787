"""React target: one hook per endpoint in ``hooks.ts``.

Every hook returns ``{ data, loading, error, execute }``. Hooks for safe
methods (GET, HEAD, OPTIONS, TRACE) run ``execute`` from a ``useEffect``
when the component mounts and whenever their arguments change; hooks for
mutating methods only run when the caller invokes ``execute``.
"""

from __future__ import annotations

from typing import Sequence

from specbind.emitters.base import CodeEmitter, used_type_names
from specbind.emitters.typescript import TypeScriptRenderer
from specbind.models import Endpoint, GeneratedModule


class ReactEmitter(CodeEmitter):
    """Emits React hooks built on ``useState``, ``useCallback`` and ``useEffect``."""

    binding_template = "react/hook.ts.j2"
    bindings_template = "react/hooks.ts.j2"

    @property
    def framework(self) -> str:
        return "react"

    @property
    def bindings_filename(self) -> str:
        return "hooks.ts"

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
            uses_effect=any(e.method.is_safe for e in endpoints),
            type_imports=used_type_names("\n".join(bindings), renderer),
        )
        return self._module("bindings", content, names)
