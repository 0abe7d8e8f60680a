from collections.abc import Callable
from pathlib import Path

import orjson
import pytest
import yaml

from supastorj.cli import ExitCode
from supastorj.config import generate_default_config, save_config


@pytest.fixture
def configured_project(project_root: Path) -> Path:
    document = generate_default_config()
    document["project_name"] = "media"
    save_config(document, project_root / ".supastorj.yaml")
    return project_root


def _write(path: Path, document: object) -> Path:
    _ = path.write_text(yaml.safe_dump(document))
    return path


class TestConfigInit:
    def test_writes_default_config(
        self,
        supastorj_cli: Callable[..., int],
        project_root: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "init", "--project-name", "media")

        config_file = project_root / ".supastorj.yaml"
        assert exit_code == 0
        assert "Wrote" in capsys.readouterr().out
        document = yaml.safe_load(config_file.read_text())
        assert document["project_name"] == "media"
        assert set(document["environments"]) == {"development", "production"}

    def test_refuses_to_overwrite(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "init")

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert "already exists" in capsys.readouterr().out

    def test_force_overwrites(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
    ) -> None:
        exit_code = supastorj_cli("config", "init", "--force")

        document = yaml.safe_load((configured_project / ".supastorj.yaml").read_text())
        assert exit_code == 0
        assert document["project_name"] == "supastorj"

    def test_custom_path(
        self, supastorj_cli: Callable[..., int], tmp_path: Path
    ) -> None:
        target = tmp_path / "elsewhere" / "stack.yaml"

        exit_code = supastorj_cli("config", "init", "--path", str(target))

        assert exit_code == 0
        assert target.is_file()


class TestConfigShow:
    def test_yaml_output(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "show")

        data = yaml.safe_load(capsys.readouterr().out)
        assert exit_code == 0
        assert data["project_name"] == "media"
        assert "variables" not in data

    def test_json_output_with_variables(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("JWT_SECRET", "s3cret")

        exit_code = supastorj_cli(
            "config", "show", "--format", "json", "--show-variables"
        )

        data = orjson.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert data["variables"]["JWT_SECRET"] == "s3cret"
        storage = data["environments"]["development"]["services"]["storage"]
        assert storage["environment"]["AUTH_JWT_SECRET"] == "s3cret"

    def test_section(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "show", "--section", "project_name")

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "media"

    def test_missing_section(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "show", "--section", "settings.nope")

        assert exit_code == ExitCode.NOT_FOUND
        assert "Key not found: settings.nope" in capsys.readouterr().out

    def test_environment_override(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli(
            "--environment", "production", "config", "show", "--section", "environment"
        )

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "production"


class TestConfigValidate:
    def test_valid_file(
        self,
        supastorj_cli: Callable[..., int],
        configured_project: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli("config", "validate")

        assert exit_code == 0
        assert "is valid" in capsys.readouterr().out

    def test_schema_error(
        self,
        supastorj_cli: Callable[..., int],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = _write(tmp_path / "bad.yaml", {"settings": {"telemetry": "sometimes"}})

        exit_code = supastorj_cli("config", "validate", "--file", str(path))

        output = capsys.readouterr().out
        assert exit_code == ExitCode.VALIDATION_ERROR
        assert "1 error(s), 0 warning(s)" in output
        assert "settings.telemetry" in output

    def test_cycle_is_reported_as_json(
        self,
        supastorj_cli: Callable[..., int],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = _write(
            tmp_path / "cycle.yaml",
            {
                "environment": "a",
                "environments": {"a": {"extends": "b"}, "b": {"extends": "a"}},
            },
        )

        exit_code = supastorj_cli(
            "config", "validate", "--file", str(path), "--format", "json"
        )

        data = orjson.loads(capsys.readouterr().out)
        assert exit_code == ExitCode.VALIDATION_ERROR
        assert data["valid"] is False
        assert [issue["key"] for issue in data["issues"]] == [
            "environments.a.extends",
            "environments.b.extends",
        ]

    def test_warnings_fail_only_in_strict_mode(
        self,
        supastorj_cli: Callable[..., int],
        tmp_path: Path,
    ) -> None:
        path = _write(
            tmp_path / "warn.yaml",
            {"environment": "staging", "environments": {"development": {}}},
        )

        assert supastorj_cli("config", "validate", "--file", str(path)) == 0
        assert (
            supastorj_cli("config", "validate", "--file", str(path), "--strict")
            == ExitCode.VALIDATION_ERROR
        )

    def test_unparsable_file(
        self,
        supastorj_cli: Callable[..., int],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = tmp_path / "broken.yaml"
        _ = path.write_text("settings: [unclosed\n")

        exit_code = supastorj_cli("config", "validate", "--file", str(path))

        assert exit_code == ExitCode.LOAD_ERROR
        assert "Error:" in capsys.readouterr().out

    def test_missing_file(
        self,
        supastorj_cli: Callable[..., int],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = supastorj_cli(
            "config", "validate", "--file", str(tmp_path / "absent.yaml")
        )

        assert exit_code == ExitCode.LOAD_ERROR
        assert "Config file not found" in capsys.readouterr().out
