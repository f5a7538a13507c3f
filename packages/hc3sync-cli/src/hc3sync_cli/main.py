from __future__ import annotations

import typer

from hc3sync_cli.commands.config import config_app
from hc3sync_cli.commands.install import (
    activate_command,
    install_command,
    notify_command,
    reinstall_command,
)
from hc3sync_cli.commands.status import list_command, status_command

app = typer.Typer(
    name="hc3sync",
    help="hc3sync: install HC3 emulator tasks and launch configurations",
    no_args_is_help=True,
)

app.command("activate")(activate_command)
app.command("notify")(notify_command)
app.command("install")(install_command)
app.command("reinstall")(reinstall_command)
app.command("status")(status_command)
app.command("list")(list_command)
app.add_typer(
    config_app,
    name="config",
    help="View configuration",
)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
