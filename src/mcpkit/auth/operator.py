"""Human-in-the-loop channel used during manual login."""

import sys
import webbrowser
from enum import Enum
from typing import Protocol

import anyio
import typer


class OperatorReply(str, Enum):
    """What the operator asked for after the manual login prompt."""

    CONTINUE = "continue"  # operator believes login is complete
    SKIP = "skip"  # proceed without authentication
    ABORT = "abort"  # stop the run


def parse_operator_reply(line: str | None) -> OperatorReply:
    """Interpret one line of operator input. End of input counts as abort."""
    if line is None:
        return OperatorReply.ABORT
    text = line.strip().lower()
    if text == "skip":
        return OperatorReply.SKIP
    if text == "abort":
        return OperatorReply.ABORT
    return OperatorReply.CONTINUE


class OperatorChannel(Protocol):
    """Shows messages to the operator and reads their replies."""

    def notify(self, message: str) -> None: ...

    def open_viewer(self, url: str) -> None: ...

    async def read_line(self) -> str | None: ...


class ConsoleOperator:
    """Operator channel on the controlling terminal."""

    def __init__(self, open_viewer: bool = True):
        self._open_viewer = open_viewer

    def notify(self, message: str) -> None:
        typer.echo(message)

    def open_viewer(self, url: str) -> None:
        if self._open_viewer:
            webbrowser.open(url)

    async def read_line(self) -> str | None:
        # No timeout: login takes as long as the operator needs
        line = await anyio.to_thread.run_sync(sys.stdin.readline, abandon_on_cancel=True)
        return line if line else None
