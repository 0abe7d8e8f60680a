from __future__ import annotations

from typing import TYPE_CHECKING, cast

from cyclopts import App

from supastorj.cli._commands import register_commands

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class TestCommandRegistration:
    def test_register_commands_registers_subcommands(
        self, mocker: MockerFixture
    ) -> None:
        mock_app = mocker.MagicMock(spec=App)
        register_commands(mock_app)

        assert cast("int", mock_app.command.call_count) == 9  # pyright: ignore[reportAny]

    def test_registers_every_command_name(self) -> None:
        app = App(name="supastorj")
        register_commands(app)

        for name in (
            "status",
            "health",
            "stats",
            "logs",
            "start",
            "stop",
            "restart",
            "exec",
            "config",
        ):
            assert isinstance(app[name], App)
