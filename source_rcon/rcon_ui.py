# source_rcon/rcon_ui.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .connection import Connection
from .errors import ConnectionFailed, RconError

log = logging.getLogger(__name__)

LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area
QUIT_WORDS = ("Q", "/quit")


class RconConsole:
    """Fullscreen RCON console: scrolling output + an input bar."""

    def __init__(self, conn: Connection, title: str):
        self.conn = conn
        self.output = TextArea(
            style="class:log",
            focusable=False,
            scrollbar=True,
            wrap_lines=True,
            read_only=False,  # programmatic inserts
        )
        self.input_field = TextArea(height=1, prompt="> ", multiline=False)
        status = Label(
            text=f"RCON — {title}    (Q / Ctrl-C / Esc to disconnect)",
            style="class:status",
        )
        # one request in flight at a time on the connection
        self.busy = asyncio.Lock()

        kb = KeyBindings()

        @kb.add("enter", filter=has_focus(self.input_field))
        def _(event) -> None:
            # Take the line now; a pasted batch of lines must not overwrite it.
            cmd = (self.input_field.text or "").strip()
            self.input_field.buffer.document = Document(text="")
            event.app.create_background_task(self.submit(cmd))

        @kb.add("c-c")
        @kb.add("escape")
        def _(event) -> None:
            event.app.exit()

        self.app = Application(
            layout=Layout(HSplit([status, self.output, self.input_field]), focused_element=self.input_field),
            key_bindings=kb,
            full_screen=True,
            style=Style.from_dict(
                {
                    "log": "bg:#0e162b #d1d5db",
                    "status": "reverse",
                }
            ),
        )

    async def submit(self, cmd: str) -> None:
        if not cmd:
            return
        if cmd in QUIT_WORDS:
            self.app.exit()
            return
        async with self.busy:
            if self.conn.closed:
                return
            try:
                out = await asyncio.to_thread(self.conn.exec, cmd)
                _append(self.app, self.output, f"> {cmd}\n{out}\n" if out else f"> {cmd}\n")
            except ConnectionFailed as e:
                log.debug("Connection lost", exc_info=True)
                _append(self.app, self.output, f"[rcon] connection lost: {e}\n")
                self.app.exit(exception=e)
            except RconError as e:
                _append(self.app, self.output, f"[rcon error] {e}\n")

    async def run(self) -> None:
        _append(self.app, self.output, "Logged in.\n")
        await self.app.run_async()


async def run_rcon_ui(conn: Connection, title: str) -> None:
    await RconConsole(conn, title).run()


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
