from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from supastorj.adapters import HealthResult, ServiceState
from supastorj.cli import CLIContext, create_app
from supastorj.registry import ServiceRegistry
from tests.conftest import FakeAdapter

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an empty project directory with no configuration file."""
    root = tmp_path / "project"
    root.mkdir()
    monkeypatch.delenv("SUPASTORJ_DEBUG", raising=False)
    return root


@pytest.fixture
def stack() -> list[FakeAdapter]:
    """Services returned by the patched registry; tests may modify the list."""
    return [
        FakeAdapter("storage"),
        FakeAdapter(
            "imgproxy",
            state=ServiceState.STOPPED,
            health=HealthResult(healthy=False, message="stopped (exit code: 1)"),
        ),
    ]


@pytest.fixture
def supastorj_cli(
    console: Console,
    project_root: Path,
    stack: list[FakeAdapter],
    mocker: MockerFixture,
) -> Callable[..., int]:
    """Create a CLI runner that returns the exit code.

    Global options go before the command. The registry is replaced by one
    built from the ``stack`` fixture.
    """

    def _build(*_args: object, **_kwargs: object) -> ServiceRegistry:
        return ServiceRegistry(stack, project_name="test")

    _ = mocker.patch("supastorj.cli._shared.build_registry", side_effect=_build)
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run the CLI through its meta app and return the exit code."""
        try:
            app.meta(["--project-root", str(project_root), *args])
        except SystemExit as e:
            if e.code is None:
                return 0
            return e.code if isinstance(e.code, int) else 1
        finally:
            CLIContext.reset()
        return 0

    return _run
