"""Tests for specbind.pipeline."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from specbind.exceptions import DuplicateEndpoint, SpecNotFound, UnsupportedAuthMode, UnsupportedFramework
from specbind.models import GenerationConfig
from specbind.pipeline import Pipeline, PipelineState


def _config(tmp_path: Path, **overrides) -> GenerationConfig:
    values = {
        "base_url": "http://backend.test",
        "output_dir": str(tmp_path / "api"),
        "discovery_timeout": 2.0,
    }
    values.update(overrides)
    return GenerationConfig(**values)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestPipelineSuccess:
    def test_state_history(self, config: GenerationConfig, users_backend) -> None:
        pipeline = Pipeline(config, transport=users_backend)
        pipeline.generate()
        assert pipeline.state is PipelineState.DONE
        assert pipeline.history == [
            PipelineState.IDLE,
            PipelineState.DISCOVERING,
            PipelineState.NORMALIZING,
            PipelineState.GENERATING,
            PipelineState.DONE,
        ]
        assert pipeline.error is None

    def test_on_transition_sees_each_state(self, config: GenerationConfig, users_backend) -> None:
        seen: list[PipelineState] = []
        Pipeline(config, transport=users_backend, on_transition=seen.append).generate()
        assert seen == [
            PipelineState.DISCOVERING,
            PipelineState.NORMALIZING,
            PipelineState.GENERATING,
            PipelineState.DONE,
        ]

    def test_generate_does_not_write(self, config: GenerationConfig, users_backend) -> None:
        result = Pipeline(config, transport=users_backend).generate()
        assert result.strategy == "conventional"
        assert [m.filename for m in result.modules] == ["client.ts", "hooks.ts", "types.ts"]
        assert result.written == []
        assert not Path(config.output_dir).exists()

    def test_result_names(self, config: GenerationConfig, users_backend) -> None:
        result = Pipeline(config, transport=users_backend).generate()
        assert len(result.binding_names) == len(result.endpoints) == 6
        assert result.binding_names[0] == "useListUsers"
        assert result.type_names[0] == "User"
        assert result.module("types").filename == "types.ts"
        assert result.binding_names == result.module("bindings").exports
        assert result.type_names == result.module("types").exports
        assert result.mocks == []

    def test_run_writes_modules(self, tmp_path: Path, users_backend) -> None:
        config = _config(tmp_path, mock=True, framework="vue")
        result = Pipeline(config, transport=users_backend).run()
        output = tmp_path / "api"
        assert sorted(p.name for p in output.iterdir()) == [
            "client.ts",
            "composables.ts",
            "mocks.ts",
            "types.ts",
        ]
        assert result.written == [str(output / name) for name in ("client.ts", "composables.ts", "types.ts", "mocks.ts")]
        assert (output / "client.ts").read_text(encoding="utf-8") == result.module("client").content

    def test_rerun_is_rejected(self, config: GenerationConfig, users_backend) -> None:
        pipeline = Pipeline(config, transport=users_backend)
        pipeline.generate()
        with pytest.raises(RuntimeError, match="already ran"):
            pipeline.run()

    def test_heuristic_seeds_require_auth(self, tmp_path: Path, make_backend) -> None:
        backend = make_backend({"/api/users": [], "/health": {"status": "ok"}})
        config = _config(tmp_path, heuristic_paths=["/health", "/api/users", "/api/orders"])
        result = Pipeline(config, transport=backend).generate()
        assert result.strategy == "heuristic"
        assert [(e.method.value, e.path) for e in result.endpoints] == [
            ("get", "/health"),
            ("get", "/api/users"),
        ]
        assert all(e.requires_auth for e in result.endpoints)
        assert all(e.response_schema is None for e in result.endpoints)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestPipelineFailures:
    def test_unknown_framework_fails_before_network(self, config: GenerationConfig) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(404)

        pipeline = Pipeline(
            config.model_copy(update={"framework": "svelte"}),
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(UnsupportedFramework) as exc_info:
            pipeline.generate()
        assert exc_info.value.stage == "idle"
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.history == [PipelineState.IDLE, PipelineState.FAILED]
        assert pipeline.error is exc_info.value
        assert calls == []

    def test_unknown_auth_mode_fails_in_setup(self, config: GenerationConfig) -> None:
        pipeline = Pipeline(config.model_copy(update={"auth_mode": "oauth"}))
        with pytest.raises(UnsupportedAuthMode) as exc_info:
            pipeline.generate()
        assert exc_info.value.stage == "idle"

    def test_nothing_discovered(self, config: GenerationConfig, make_backend) -> None:
        pipeline = Pipeline(config, transport=make_backend({}))
        with pytest.raises(SpecNotFound) as exc_info:
            pipeline.run()
        assert exc_info.value.stage == "discovering"
        assert pipeline.history[-2:] == [PipelineState.DISCOVERING, PipelineState.FAILED]
        assert not Path(config.output_dir).exists()

    def test_unexpected_error_fails_pipeline(
        self, config: GenerationConfig, users_backend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(modules, output_dir):
            raise ValueError("disk on fire")

        monkeypatch.setattr("specbind.pipeline.write_modules", broken)
        pipeline = Pipeline(config, transport=users_backend)
        with pytest.raises(ValueError, match="disk on fire"):
            pipeline.run()
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.history[-2:] == [PipelineState.GENERATING, PipelineState.FAILED]
        assert pipeline.error is None

    def test_duplicate_endpoint_fails_normalization(self, config: GenerationConfig, make_backend) -> None:
        document = {
            "openapi": "3.0.0",
            "info": {"title": "dup", "version": "1"},
            "paths": {
                "/users": {"get": {"responses": {"200": {"description": "ok"}}}},
                "/users/": {"get": {"responses": {"200": {"description": "ok"}}}},
            },
        }
        pipeline = Pipeline(config, transport=make_backend({"/openapi.json": document}))
        with pytest.raises(DuplicateEndpoint) as exc_info:
            pipeline.generate()
        assert exc_info.value.stage == "normalizing"
        assert pipeline.state is PipelineState.FAILED


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestUsersScenario:
    def test_token_auth_with_mocks(self, tmp_path: Path, make_backend) -> None:
        document = {
            "openapi": "3.0.0",
            "info": {"title": "users", "version": "1"},
            "paths": {
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "responses": {
                            "200": {
                                "description": "ok",
                                "content": {
                                    "application/json": {
                                        "schema": {
                                            "type": "array",
                                            "items": {"$ref": "#/components/schemas/User"},
                                        }
                                    }
                                },
                            }
                        },
                    },
                    "post": {
                        "operationId": "createUser",
                        "requestBody": {
                            "required": True,
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "object",
                                        "required": ["name"],
                                        "properties": {"name": {"type": "string"}},
                                    }
                                }
                            },
                        },
                        "responses": {
                            "201": {
                                "description": "created",
                                "content": {
                                    "application/json": {"schema": {"$ref": "#/components/schemas/User"}}
                                },
                            }
                        },
                    },
                },
                "/health": {"get": {"operationId": "health", "responses": {"200": {"description": "ok"}}}},
            },
            "components": {
                "schemas": {
                    "User": {
                        "type": "object",
                        "required": ["id", "name"],
                        "properties": {
                            "id": {"type": "integer"},
                            "name": {"type": "string"},
                        },
                    }
                }
            },
        }
        config = _config(tmp_path, mock=True)
        result = Pipeline(config, transport=make_backend({"/swagger.json": document})).run()

        assert [(e.method.value, e.path, e.requires_auth) for e in result.endpoints] == [
            ("get", "/users", True),
            ("post", "/users", True),
            ("get", "/health", False),
        ]
        assert result.binding_names == ["useListUsers", "useCreateUser", "useHealth"]

        output = tmp_path / "api"
        hooks = (output / "hooks.ts").read_text(encoding="utf-8")
        assert "export function useListUsers() {" in hooks
        assert "export function useCreateUser() {" in hooks
        client = (output / "client.ts").read_text(encoding="utf-8")
        assert 'headers["Authorization"] = "Bearer " + token;' in client
        mocks = (output / "mocks.ts").read_text(encoding="utf-8")
        assert '"GET /users"' in mocks
        assert '"POST /users": {\n    status: 201,' in mocks
        assert '"GET /health"' in mocks

        list_users, create_user, health = result.mocks
        assert 2 <= len(list_users.data) <= 3
        for user in list_users.data:
            assert set(user) == {"id", "name"}
            assert isinstance(user["id"], int)
            assert isinstance(user["name"], str)
        assert create_user.status == 201
        assert set(create_user.data) == {"id", "name"}
        assert health.data is None
        assert "async (callArgs: { body: CreateUserBody }): Promise<User> => {" in hooks
        assert "export interface CreateUserBody {\n  name: string;\n}" in (output / "types.ts").read_text(encoding="utf-8")
