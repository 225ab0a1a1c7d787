"""The ``connect`` pipeline: discover, normalize, generate, write.

:class:`Pipeline` drives one run through a fixed sequence of states::

    idle -> discovering -> normalizing -> generating -> done
                  \\              \\              \\
                   +--------------+--------------+--> failed

Stages run strictly one after another; the only concurrency is inside
conventional discovery. When a :class:`~specbind.exceptions.SpecbindError`
escapes a stage, the stage name is recorded on the error, the pipeline moves
to ``failed`` and the error propagates unchanged. Any other exception also
moves the pipeline to ``failed`` before propagating. Nothing is retried
within a run and nothing survives it.
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

import httpx

from specbind.auth import AuthStrategyResolver, create_default_resolver
from specbind.emitters import CodeEmitter, get_emitter
from specbind.exceptions import SpecbindError
from specbind.mock import MockSynthesizer
from specbind.models import (
    AuthStrategyDescriptor,
    DiscoveryResult,
    Endpoint,
    GenerationConfig,
    GenerationResult,
    MockResponse,
)
from specbind.parser.discovery import DiscoveryStrategy, discover
from specbind.parser.normalizer import (
    PublicPathPolicy,
    endpoints_from_seeds,
    normalize_endpoints,
)
from specbind.writer import write_modules

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    NORMALIZING = "normalizing"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class Pipeline:
    """One ``connect`` run for *config*.

    Args:
        config: The resolved generation config.
        transport: httpx transport for discovery probes (tests pass an
            :class:`httpx.MockTransport`).
        auth_resolver: Auth strategy registry; the built-in one by default.
        strategies: Discovery chain to use instead of the default one.
        on_transition: Called with each state the pipeline enters, after
            ``idle``.

    Example::

        pipeline = Pipeline(resolve_config(base_url="http://localhost:8000"))
        result = pipeline.run()
        print(result.written)
    """

    def __init__(
        self,
        config: GenerationConfig,
        transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
        auth_resolver: Optional[AuthStrategyResolver] = None,
        strategies: Optional[Sequence[DiscoveryStrategy]] = None,
        on_transition: Optional[Callable[[PipelineState], None]] = None,
    ) -> None:
        self.config = config
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]
        self.error: Optional[SpecbindError] = None
        self._transport = transport
        self._auth_resolver = auth_resolver or create_default_resolver()
        self._strategies = strategies
        self._on_transition = on_transition

    def generate(self) -> GenerationResult:
        """Run every stage except writing and return the generated modules.

        Raises:
            SpecbindError: The first error any stage raised, with ``stage``
                set.
        """
        result = self._build()
        self._transition(PipelineState.DONE)
        return result

    def run(self) -> GenerationResult:
        """Run every stage and write the modules to ``config.output_dir``.

        Raises:
            SpecbindError: The first error any stage raised, with ``stage``
                set. Write failures surface as
                :class:`~specbind.exceptions.EmissionError`.
        """
        result = self._build()
        with self._stage(PipelineState.GENERATING):
            paths = write_modules(result.modules, self.config.output_dir)
        result.written = [str(p) for p in paths]
        self._transition(PipelineState.DONE)
        return result

    # -- stages -----------------------------------------------------------

    def _build(self) -> GenerationResult:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline already ran (state: {self.state.value})")

        # Pure lookups, so an unknown framework or auth mode fails before any network I/O.
        with self._stage(PipelineState.IDLE):
            emitter = get_emitter(self.config.framework)
            auth = self._auth_resolver.resolve(self.config.auth_mode, self.config)

        with self._stage(PipelineState.DISCOVERING):
            discovery = discover(self.config, self._strategies, self._transport)

        with self._stage(PipelineState.NORMALIZING):
            endpoints = self._normalize(discovery)

        with self._stage(PipelineState.GENERATING):
            return self._generate(discovery, endpoints, emitter, auth)

    def _normalize(self, discovery: DiscoveryResult) -> list[Endpoint]:
        if discovery.document is not None:
            policy = PublicPathPolicy(self.config.public_paths)
            return normalize_endpoints(discovery.document, policy=policy)
        return endpoints_from_seeds(discovery.seeds)

    def _generate(
        self,
        discovery: DiscoveryResult,
        endpoints: list[Endpoint],
        emitter: CodeEmitter,
        auth: AuthStrategyDescriptor,
    ) -> GenerationResult:
        mocks: Optional[list[MockResponse]] = None
        if self.config.mock:
            synthesizer = MockSynthesizer(
                array_length=self.config.mock_array_length,
                latency_ms=self.config.mock_latency_ms,
            )
            mocks = synthesizer.synthesize_all(endpoints)

        modules = emitter.emit(endpoints, auth, self.config.base_url, mocks)
        # Bindings export one name per endpoint, types one per declaration.
        exports = {module.name: module.exports for module in modules}
        return GenerationResult(
            strategy=discovery.strategy,
            endpoints=endpoints,
            modules=modules,
            binding_names=list(exports["bindings"]),
            type_names=list(exports["types"]),
            mocks=mocks or [],
        )

    # -- state machine ----------------------------------------------------

    def _transition(self, state: PipelineState) -> None:
        if state is not self.state:
            logger.debug("Pipeline %s -> %s", self.state.value, state.value)
            self.state = state
            self.history.append(state)
            if self._on_transition is not None:
                self._on_transition(state)

    @contextmanager
    def _stage(self, state: PipelineState) -> Iterator[None]:
        self._transition(state)
        try:
            yield
        except SpecbindError as exc:
            exc.stage = state.value
            self.error = exc
            self._transition(PipelineState.FAILED)
            raise
        except Exception:
            self._transition(PipelineState.FAILED)
            raise
