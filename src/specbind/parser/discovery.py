"""Find the backend's API description: explicit spec, conventional probe, or heuristics.

Discovery is an ordered chain of :class:`DiscoveryStrategy` objects. Each one
either returns a :class:`~specbind.models.DiscoveryResult` or ``None`` to
hand over to the next strategy; :func:`discover` raises
:class:`~specbind.exceptions.SpecNotFound` when the whole chain comes up
empty.

The default chain:

1. :class:`ExplicitSpecStrategy` -- load ``config.spec`` when one was given.
   Malformed content raises :class:`~specbind.exceptions.SpecParseError`;
   a missing file or unreachable URL is logged and probing takes over.
2. :class:`ConventionalProbeStrategy` -- request the usual spec locations
   (``/openapi.json``, ``/v3/api-docs``, ...) concurrently and keep the first
   well-formed document. Outstanding probes are cancelled as soon as one
   wins, and the whole probe is bounded by ``config.discovery_timeout``.
3. :class:`HeuristicProbeStrategy` -- request common REST paths and record
   the ones that exist as :class:`~specbind.models.EndpointSeed` entries
   (method and path only).

:func:`discover` fixes one deadline, ``config.discovery_timeout`` seconds
after it starts, and hands it to every strategy. Strategies stop issuing
requests once it has passed and never give a single request more time than
is left, so the timeout bounds the whole chain rather than each request.

Transport failures inside probes are raised as
:class:`~specbind.exceptions.NetworkError` and absorbed by the probing
strategy; they never escape :func:`discover`.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import httpx

from specbind.exceptions import NetworkError, SpecNotFound, SpecParseError
from specbind.models import (
    DiscoveryResult,
    EndpointSeed,
    GenerationConfig,
    HTTPMethod,
    SpecDocument,
)
from specbind.parser.loader import (
    content_type_hint,
    detect_spec_version,
    load_document,
    parse_spec_text,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{[^}/]+\}")

# Methods advertised in an Allow header that are not worth a binding.
_IGNORED_ALLOW = frozenset({HTTPMethod.OPTIONS, HTTPMethod.HEAD, HTTPMethod.TRACE})


def _deadline_for(config: GenerationConfig, deadline: Optional[float]) -> float:
    """*deadline* or, when none was given, one ``discovery_timeout`` from now."""
    if deadline is None:
        return time.monotonic() + config.discovery_timeout
    return deadline


def _request_timeout(config: GenerationConfig, deadline: float) -> float:
    """Seconds one request may take: what is left, capped at the timeout."""
    return max(0.0, min(deadline - time.monotonic(), config.discovery_timeout))


class DiscoveryStrategy(ABC):
    """One link of the discovery chain."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier reported in :attr:`DiscoveryResult.strategy`."""
        ...

    @abstractmethod
    def discover(
        self, config: GenerationConfig, deadline: Optional[float] = None
    ) -> Optional[DiscoveryResult]:
        """Try to discover the API.

        Args:
            config: The active generation config.
            deadline: :func:`time.monotonic` value after which no request
                may be started. ``None`` means ``config.discovery_timeout``
                from now.

        Returns:
            A result on success, ``None`` to let the next strategy try.
        """
        ...


class ExplicitSpecStrategy(DiscoveryStrategy):
    """Load the spec location given on the command line or in config."""

    @property
    def name(self) -> str:
        return "explicit"

    def discover(
        self, config: GenerationConfig, deadline: Optional[float] = None
    ) -> Optional[DiscoveryResult]:
        if not config.spec:
            return None
        deadline = _deadline_for(config, deadline)
        logger.debug("Loading explicit spec from %s", config.spec)
        try:
            document = load_document(config.spec, timeout=_request_timeout(config, deadline))
        except SpecNotFound as exc:
            logger.warning("Explicit spec unavailable, probing instead: %s", exc)
            return None
        return DiscoveryResult(strategy=self.name, document=document)


class ConventionalProbeStrategy(DiscoveryStrategy):
    """Probe the conventional spec locations concurrently, first success wins.

    Args:
        transport: Optional httpx transport, mainly for tests
            (:class:`httpx.MockTransport`).
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    @property
    def name(self) -> str:
        return "conventional"

    def discover(
        self, config: GenerationConfig, deadline: Optional[float] = None
    ) -> Optional[DiscoveryResult]:
        if not config.discovery_paths:
            return None
        deadline = _deadline_for(config, deadline)
        if deadline <= time.monotonic():
            logger.debug("Conventional discovery skipped: discovery deadline passed")
            return None
        document = asyncio.run(self._probe_all(config, deadline))
        if document is None:
            return None
        return DiscoveryResult(strategy=self.name, document=document)

    async def _probe_all(self, config: GenerationConfig, deadline: float) -> Optional[SpecDocument]:
        semaphore = asyncio.Semaphore(config.probe_concurrency)
        async with httpx.AsyncClient(
            base_url=config.base_url,
            timeout=_request_timeout(config, deadline),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            tasks = [
                asyncio.create_task(self._probe(client, semaphore, path, deadline))
                for path in config.discovery_paths
            ]
            try:
                return await _first_success(tasks, deadline)
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

    async def _probe(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        path: str,
        deadline: float,
    ) -> Optional[SpecDocument]:
        """Fetch one candidate location; ``None`` unless it holds a spec."""
        async with semaphore:
            # A handler that blocks the event loop can outlive the deadline.
            if time.monotonic() >= deadline:
                return None
            try:
                response = await _fetch_async(client, path)
            except NetworkError as exc:
                logger.debug("Probe %s: %s", path, exc)
                return None

        if not response.is_success:
            logger.debug("Probe %s: HTTP %s", path, response.status_code)
            return None

        try:
            raw = parse_spec_text(response.text, hint=content_type_hint(response))
            version = detect_spec_version(raw)
        except SpecParseError as exc:
            logger.debug("Probe %s: not a spec document (%s)", path, exc)
            return None

        logger.debug("Probe %s: found spec version %s", path, version)
        return SpecDocument(raw=raw, version=version, source=str(response.url))


async def _fetch_async(client: httpx.AsyncClient, path: str) -> httpx.Response:
    try:
        return await client.get(path)
    except httpx.RequestError as exc:
        raise NetworkError(f"{client.base_url}{path}", str(exc) or type(exc).__name__) from exc


async def _first_success(
    tasks: list[asyncio.Task],
    deadline: float,
) -> Optional[SpecDocument]:
    """Wait for the first task returning a document, until *deadline*.

    When several tasks finish in the same wake-up, the one listed earlier in
    *tasks* wins so results are reproducible.
    """
    pending = set(tasks)
    while pending:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug("Conventional discovery ran out of time")
            return None
        done, pending = await asyncio.wait(
            pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
        )
        for task in sorted(done, key=tasks.index):
            document = task.result()
            if document is not None:
                return document
    return None


class HeuristicProbeStrategy(DiscoveryStrategy):
    """Infer endpoints by probing common REST path conventions.

    A path exists when GET answers with anything but 404 or a 5xx; 401
    and 403 count as existing, and 405 means the path exists without GET.
    An ``Allow`` header on an OPTIONS request adds further methods.
    Placeholders such as ``{id}`` are probed with ``1``.

    Args:
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport

    @property
    def name(self) -> str:
        return "heuristic"

    def discover(
        self, config: GenerationConfig, deadline: Optional[float] = None
    ) -> Optional[DiscoveryResult]:
        deadline = _deadline_for(config, deadline)
        seeds: list[EndpointSeed] = []
        with httpx.Client(
            base_url=config.base_url,
            timeout=config.discovery_timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for template in config.heuristic_paths:
                if time.monotonic() >= deadline:
                    logger.debug("Heuristic discovery stopped at %s: discovery deadline passed", template)
                    break
                for method in self._probe_methods(client, template, config, deadline):
                    seeds.append(EndpointSeed(path=template, method=method))

        if not seeds:
            return None
        logger.debug("Heuristic discovery found %d endpoint(s)", len(seeds))
        return DiscoveryResult(strategy=self.name, seeds=seeds)

    def _probe_methods(
        self,
        client: httpx.Client,
        template: str,
        config: GenerationConfig,
        deadline: float,
    ) -> list[HTTPMethod]:
        concrete = _PLACEHOLDER_RE.sub("1", template)
        try:
            response = _fetch(client, "GET", concrete, _request_timeout(config, deadline))
        except NetworkError as exc:
            logger.debug("Heuristic probe %s: %s", concrete, exc)
            return []

        status = response.status_code
        if status == 404 or status >= 500:
            return []

        methods: list[HTTPMethod] = []
        if status != 405:
            methods.append(HTTPMethod.GET)
        if time.monotonic() >= deadline:
            return methods
        for method in self._allowed_methods(client, concrete, _request_timeout(config, deadline)):
            if method not in methods:
                methods.append(method)
        return methods

    def _allowed_methods(self, client: httpx.Client, path: str, timeout: float) -> list[HTTPMethod]:
        try:
            response = _fetch(client, "OPTIONS", path, timeout)
        except NetworkError as exc:
            logger.debug("Heuristic OPTIONS %s: %s", path, exc)
            return []
        allowed: list[HTTPMethod] = []
        for token in response.headers.get("allow", "").split(","):
            try:
                method = HTTPMethod(token.strip().lower())
            except ValueError:
                continue
            if method not in _IGNORED_ALLOW and method not in allowed:
                allowed.append(method)
        return allowed


def _fetch(client: httpx.Client, method: str, path: str, timeout: float) -> httpx.Response:
    try:
        return client.request(method, path, timeout=timeout)
    except httpx.RequestError as exc:
        raise NetworkError(f"{client.base_url}{path}", str(exc) or type(exc).__name__) from exc


def default_strategies(
    transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
    async_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[DiscoveryStrategy]:
    """Build the standard chain: explicit, conventional, heuristic.

    Args:
        transport: Transport shared by both probing strategies.
            :class:`httpx.MockTransport` implements the sync and async
            interfaces, so one instance serves both.
        async_transport: Overrides the transport of the concurrent probe.
    """
    return [
        ExplicitSpecStrategy(),
        ConventionalProbeStrategy(async_transport or transport),  # type: ignore[arg-type]
        HeuristicProbeStrategy(transport),  # type: ignore[arg-type]
    ]


def discover(
    config: GenerationConfig,
    strategies: Optional[Sequence[DiscoveryStrategy]] = None,
    transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
) -> DiscoveryResult:
    """Run the discovery chain and return the first result.

    Args:
        config: The active generation config.
        strategies: Chain to run instead of :func:`default_strategies`.
        transport: Transport passed to the default probing strategies.

    Returns:
        The first :class:`~specbind.models.DiscoveryResult` produced.

    Raises:
        SpecParseError: If an explicit spec was given but is malformed.
        SpecNotFound: If no strategy produced a document or any endpoint
            before ``config.discovery_timeout`` ran out.
    """
    chain = list(strategies) if strategies is not None else default_strategies(transport)
    deadline = time.monotonic() + config.discovery_timeout
    for strategy in chain:
        result = strategy.discover(config, deadline)
        if result is not None:
            logger.debug("Discovery succeeded via %s strategy", strategy.name)
            return result
        logger.debug("Discovery strategy %s found nothing", strategy.name)

    raise SpecNotFound(
        f"No API description found for {config.base_url}: no spec document at "
        f"{len(config.discovery_paths)} conventional location(s) and no "
        "endpoints answered heuristic probes"
    )
