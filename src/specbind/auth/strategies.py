"""Built-in auth strategies: ``token``, ``cookie`` and ``session``."""

from __future__ import annotations

from specbind.auth.base import AuthStrategy
from specbind.models import AuthMode, AuthStrategyDescriptor, GenerationConfig


class TokenStrategy(AuthStrategy):
    """Bearer token in the ``Authorization`` header.

    The generated client never reads browser storage. It asks a token
    provider injected by the application (``apiClient.setTokenProvider``)
    and sends ``Authorization: Bearer <token>`` when one is returned.
    ``config.token_key`` is the key the bundled storage adapter passes to the
    store the application hands it.
    """

    @property
    def mode(self) -> AuthMode:
        return AuthMode.TOKEN

    def describe(self, config: GenerationConfig) -> AuthStrategyDescriptor:
        return AuthStrategyDescriptor(
            mode=self.mode,
            inject_bearer=True,
            token_key=config.token_key,
        )

    def validate_config(self, config: GenerationConfig) -> list[str]:
        if not config.token_key.strip():
            return ["token_key must not be empty in token mode"]
        return []


class CookieStrategy(AuthStrategy):
    """Rely on cookies the browser already holds (``credentials: 'include'``)."""

    @property
    def mode(self) -> AuthMode:
        return AuthMode.COOKIE

    def describe(self, config: GenerationConfig) -> AuthStrategyDescriptor:
        return AuthStrategyDescriptor(mode=self.mode, include_credentials=True)


class SessionStrategy(AuthStrategy):
    """Cookie session plus a CSRF token attached to mutating requests.

    Where the token comes from is configured by ``config.csrf``: a cookie
    (``csrftoken`` by default) or a GET endpoint returning it in a JSON
    field. It is sent in ``config.csrf.header_name``.
    """

    @property
    def mode(self) -> AuthMode:
        return AuthMode.SESSION

    def describe(self, config: GenerationConfig) -> AuthStrategyDescriptor:
        return AuthStrategyDescriptor(
            mode=self.mode,
            include_credentials=True,
            csrf=config.csrf,
        )

    def validate_config(self, config: GenerationConfig) -> list[str]:
        csrf = config.csrf
        errors = []
        if not csrf.header_name.strip():
            errors.append("csrf.header_name must not be empty")
        if csrf.source == "cookie" and not csrf.cookie_name.strip():
            errors.append("csrf.cookie_name is required when csrf.source is 'cookie'")
        if csrf.source == "endpoint":
            if not csrf.endpoint.startswith("/"):
                errors.append("csrf.endpoint must be a path starting with '/'")
            if not csrf.response_field.strip():
                errors.append("csrf.response_field is required when csrf.source is 'endpoint'")
        return errors
