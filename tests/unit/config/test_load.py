# pyright: reportAny=false
"""Unit tests for configuration loading entry points."""

from pathlib import Path

import pytest
import yaml

from supastorj.config import (
    DEFAULT_CONFIG,
    load_config,
    resolve_document,
    safe_load_config,
    save_config,
)
from supastorj.exceptions import ConfigCycleError, ConfigValidationError

DOCUMENT = """
project_name: stack
environment: development
environments:
  development:
    services:
      storage:
        image: supabase/storage-api:latest
        environment:
          AUTH_JWT_SECRET: ${JWT_SECRET}
          REGION: ${REGION}
          LOG_LEVEL: debug
  production:
    extends: development
    services:
      storage:
        environment:
          LOG_LEVEL: info
"""


def _write(root: Path, content: str = DOCUMENT, env: str = "JWT_SECRET=from-file\n"):
    _ = (root / ".supastorj.yaml").write_text(content)
    _ = (root / ".env").write_text(env)


class TestResolveDocument:
    def test_interpolates_then_resolves(self) -> None:
        config = resolve_document(
            yaml.safe_load(DOCUMENT), {"JWT_SECRET": "abc", "REGION": "eu"}
        )

        storage = config.get_service("storage", "production")
        assert storage.environment == {
            "AUTH_JWT_SECRET": "abc",
            "REGION": "eu",
            "LOG_LEVEL": "info",
        }
        assert storage.image == "supabase/storage-api:latest"
        assert config.variables == {"JWT_SECRET": "abc", "REGION": "eu"}

    def test_schema_error(self) -> None:
        with pytest.raises(ConfigValidationError):
            _ = resolve_document({"settings": {"telemetry": "maybe"}}, {})

    def test_cycle(self) -> None:
        document = {"environments": {"a": {"extends": "b"}, "b": {"extends": "a"}}}

        with pytest.raises(ConfigCycleError):
            _ = resolve_document(document, {})


class TestLoadConfig:
    def test_loads_project_files(self, tmp_path: Path) -> None:
        _write(tmp_path)

        config = load_config(project_root=tmp_path, environ={"REGION": "us"})

        storage = config.get_service("storage")
        assert config.project_name == "stack"
        assert storage.environment["AUTH_JWT_SECRET"] == "from-file"
        assert storage.environment["REGION"] == "us"

    def test_process_environment_overrides_env_file(self, tmp_path: Path) -> None:
        _write(tmp_path)

        config = load_config(
            project_root=tmp_path, environ={"JWT_SECRET": "from-process"}
        )

        assert config.active.services["storage"].environment["AUTH_JWT_SECRET"] == (
            "from-process"
        )

    def test_unresolved_token_is_kept(self, tmp_path: Path) -> None:
        _write(tmp_path)

        config = load_config(project_root=tmp_path, environ={})

        assert config.active.services["storage"].environment["REGION"] == "${REGION}"

    def test_environment_argument_wins(self, tmp_path: Path) -> None:
        _write(tmp_path)

        config = load_config(
            project_root=tmp_path,
            environment="production",
            environ={"SUPASTORJ_ENVIRONMENT": "staging"},
        )

        assert config.environment == "production"
        assert config.active.services["storage"].environment["LOG_LEVEL"] == "info"

    def test_prefixed_environment_variables_override_document(
        self, tmp_path: Path
    ) -> None:
        _write(tmp_path)

        config = load_config(
            project_root=tmp_path,
            environ={"SUPASTORJ_SETTINGS__LOG_LEVEL": "error"},
        )

        assert config.settings.log_level == "error"

    def test_missing_default_file_yields_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=tmp_path, environ={})

        assert config.project_name == "supastorj"
        assert config.environments == {}

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            _ = load_config(tmp_path / "nope.yaml", project_root=tmp_path, environ={})

    def test_explicit_env_file(self, tmp_path: Path) -> None:
        _write(tmp_path)
        env_file = tmp_path / "prod.env"
        _ = env_file.write_text("JWT_SECRET=prod-secret\n")

        config = load_config(project_root=tmp_path, env_path=env_file, environ={})

        assert config.variables["JWT_SECRET"] == "prod-secret"


class TestSafeLoadConfig:
    def test_success(self, tmp_path: Path) -> None:
        _write(tmp_path)

        config = safe_load_config(project_root=tmp_path)

        assert config.project_name == "stack"

    def test_invalid_document_exits(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _write(
            tmp_path,
            "environment: production\n"
            "environments:\n  production:\n    services: 5\n",
        )

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(project_root=tmp_path)

        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_setting_exits_with_environment_override(
        self, tmp_path: Path
    ) -> None:
        _write(tmp_path, "settings:\n  telemetry: maybe\n")

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(project_root=tmp_path, environment="staging")

        assert exc_info.value.code == 1

    def test_unparsable_yaml_exits(self, tmp_path: Path) -> None:
        _write(tmp_path, "settings: [broken\n")

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(project_root=tmp_path)

        assert exc_info.value.code == 1

    def test_cycle_exits(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _write(
            tmp_path,
            "environments:\n  a:\n    extends: b\n  b:\n    extends: a\n",
        )

        with pytest.raises(SystemExit):
            _ = safe_load_config(project_root=tmp_path)

        assert "Circular dependency" in capsys.readouterr().err

    def test_missing_explicit_file_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            _ = safe_load_config(tmp_path / "nope.yaml", project_root=tmp_path)


class TestSaveConfig:
    def test_round_trips_default_document(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / ".supastorj.yaml"

        save_config(DEFAULT_CONFIG, path)

        assert yaml.safe_load(path.read_text()) == DEFAULT_CONFIG
