# tests/test_rcon_ui.py
import asyncio

import pytest
from prompt_toolkit.application import create_app_session
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput
from prompt_toolkit.widgets import TextArea

from source_rcon import rcon_ui
from source_rcon.errors import ConnectionClosed, UnexpectedResponse


class FakeConn:
    def __init__(self, replies):
        self.replies = replies
        self.seen = []
        self.closed = False

    def exec(self, cmd):
        self.seen.append(cmd)
        reply = self.replies[cmd]
        if isinstance(reply, Exception):
            if isinstance(reply, ConnectionClosed):
                self.closed = True
            raise reply
        return reply


def in_app_session(coro_fn, keys=""):
    """Run coro_fn() inside a prompt_toolkit session fed by a pipe."""
    async def main():
        with create_pipe_input() as inp:
            inp.send_text(keys)
            with create_app_session(input=inp, output=DummyOutput()):
                return await asyncio.wait_for(coro_fn(), timeout=5)
    return asyncio.run(main())


def test_append_keeps_buffer_bounded(monkeypatch):
    monkeypatch.setattr(rcon_ui, "LOG_TRIM_LIMIT", 8)

    async def fill():
        area = TextArea(focusable=False, read_only=False)
        rcon_ui._append(None, area, "> list\n")
        first = area.text
        rcon_ui._append(None, area, "There are 0 players\n")
        return first, area.text, area.buffer.cursor_position

    first, text, cursor = in_app_session(fill)
    assert first == "> list\n"
    assert text == "players\n"
    assert cursor == len(text)


def test_submit_runs_commands_and_reports_errors():
    conn = FakeConn({"list": "There are 0 players", "bad": UnexpectedResponse("odd packet")})

    async def drive():
        console = rcon_ui.RconConsole(conn, "localhost:25575")
        exits = []
        console.app.exit = lambda **kw: exits.append(kw)
        await console.submit("")
        await console.submit("list")
        await console.submit("bad")
        await console.submit("Q")
        return console.output.text, exits

    text, exits = in_app_session(drive)
    assert conn.seen == ["list", "bad"]
    assert "> list\nThere are 0 players\n" in text
    assert "[rcon error] odd packet" in text
    assert exits == [{}]


def test_enter_key_runs_each_pasted_line_and_exits_on_lost_connection():
    conn = FakeConn({
        "list": "There are 0 players",
        "stop": ConnectionClosed("connection closed by server"),
        "never": "unreachable",
    })
    holder = {}

    async def drive():
        console = holder["console"] = rcon_ui.RconConsole(conn, "localhost:25575")
        await console.run()

    with pytest.raises(ConnectionClosed):
        in_app_session(drive, keys="list\rstop\rnever\r")
    assert conn.seen == ["list", "stop"]
    text = holder["console"].output.text
    assert "There are 0 players" in text
    assert "[rcon] connection lost" in text
