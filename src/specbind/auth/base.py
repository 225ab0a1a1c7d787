"""Abstract base class for auth strategies.

An auth strategy decides how the *generated* client carries credentials: a
bearer header, browser cookies, or cookies plus a CSRF token. Strategies do
not talk to the backend themselves; they translate an auth mode and the
active :class:`~specbind.models.GenerationConfig` into an
:class:`~specbind.models.AuthStrategyDescriptor` that every emitter's client
template renders.

To add a mode, subclass :class:`AuthStrategy`, return the new
:class:`~specbind.models.AuthMode` from :attr:`~AuthStrategy.mode` and
implement :meth:`~AuthStrategy.describe`.

See Also:
    :mod:`specbind.auth.resolver` for registration and lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from specbind.models import AuthMode, AuthStrategyDescriptor, GenerationConfig


class AuthStrategy(ABC):
    """Maps one auth mode to the behaviour of the generated client.

    Strategies are registered with
    :class:`~specbind.auth.resolver.AuthStrategyResolver` and looked up by
    their :attr:`mode` value.
    """

    @property
    @abstractmethod
    def mode(self) -> AuthMode:
        """Return the auth mode this strategy handles."""
        ...

    @abstractmethod
    def describe(self, config: GenerationConfig) -> AuthStrategyDescriptor:
        """Return the descriptor the client template is rendered with.

        Args:
            config: The active generation config.
        """
        ...

    def validate_config(self, config: GenerationConfig) -> list[str]:
        """Check the config settings this strategy depends on.

        Returns:
            Human-readable problems; empty when the config is usable.
        """
        return []
