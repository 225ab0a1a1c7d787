"""Auth strategy resolver -- registry and lookup for auth strategies.

:class:`AuthStrategyResolver` maps auth mode strings (``"token"``,
``"cookie"``, ``"session"``) to :class:`~specbind.auth.base.AuthStrategy`
instances. The mapping is pure: resolving never performs I/O.

For most use cases, call :func:`create_default_resolver` to get a resolver
pre-loaded with every built-in strategy.
"""

from __future__ import annotations

from specbind.auth.base import AuthStrategy
from specbind.exceptions import ConfigError, UnsupportedAuthMode
from specbind.models import AuthMode, AuthStrategyDescriptor, GenerationConfig


class AuthStrategyResolver:
    """Registry of auth strategies keyed by mode.

    Example::

        resolver = AuthStrategyResolver()
        resolver.register(TokenStrategy())
        descriptor = resolver.resolve("token", config)
        assert descriptor.inject_bearer
    """

    def __init__(self) -> None:
        self._strategies: dict[str, AuthStrategy] = {}

    def register(self, strategy: AuthStrategy) -> None:
        """Register *strategy* under its mode, replacing any previous one."""
        self._strategies[strategy.mode.value] = strategy

    def get_strategy(self, mode: str | AuthMode) -> AuthStrategy:
        """Return the strategy registered for *mode*.

        Raises:
            UnsupportedAuthMode: If nothing is registered for *mode*.
        """
        key = mode.value if isinstance(mode, AuthMode) else str(mode).strip().lower()
        strategy = self._strategies.get(key)
        if strategy is None:
            raise UnsupportedAuthMode(str(mode), self.list_modes())
        return strategy

    def resolve(self, mode: str | AuthMode, config: GenerationConfig) -> AuthStrategyDescriptor:
        """Return the descriptor for *mode* under *config*.

        Raises:
            UnsupportedAuthMode: If *mode* is unknown.
            ConfigError: If the strategy rejects the config.
        """
        strategy = self.get_strategy(mode)
        errors = strategy.validate_config(config)
        if errors:
            raise ConfigError(
                f"Invalid settings for auth mode '{strategy.mode.value}': "
                + "; ".join(errors)
            )
        return strategy.describe(config)

    def list_modes(self) -> list[str]:
        """Return the registered mode names, sorted."""
        return sorted(self._strategies)


def create_default_resolver() -> AuthStrategyResolver:
    """Create a resolver with the ``token``, ``cookie`` and ``session`` strategies."""
    from specbind.auth.strategies import CookieStrategy, SessionStrategy, TokenStrategy

    resolver = AuthStrategyResolver()
    resolver.register(TokenStrategy())
    resolver.register(CookieStrategy())
    resolver.register(SessionStrategy())
    return resolver
