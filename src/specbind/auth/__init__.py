"""Auth strategies for generated clients.

This package maps an auth mode to the credential behaviour of the emitted
HTTP client:

- ``token`` -- bearer header from an injected token provider.
- ``cookie`` -- browser cookies only (``credentials: 'include'``).
- ``session`` -- cookies plus a CSRF token on mutating requests.

The main entry points are:

- :class:`AuthStrategy` -- abstract base class for a mode.
- :class:`AuthStrategyResolver` -- registry mapping mode strings to
  strategies.
- :func:`create_default_resolver` -- a resolver pre-loaded with the built-in
  strategies.

Typical usage::

    from specbind.auth import create_default_resolver

    descriptor = create_default_resolver().resolve(config.auth_mode, config)
"""

from specbind.auth.base import AuthStrategy
from specbind.auth.resolver import AuthStrategyResolver, create_default_resolver
from specbind.auth.strategies import CookieStrategy, SessionStrategy, TokenStrategy

__all__ = [
    "AuthStrategy",
    "AuthStrategyResolver",
    "CookieStrategy",
    "SessionStrategy",
    "TokenStrategy",
    "create_default_resolver",
]
