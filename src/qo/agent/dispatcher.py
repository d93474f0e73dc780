"""
Command dispatcher: one input line in, output lines out.

The dispatcher owns the scrollback (append-only, cleared only by the
``clear`` command) and hands every emitted line to a renderer as soon as it
exists, so the echo shows up before a slow command finishes. Dispatches are
serialised: at most one handler is in flight at a time.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Optional

from qo.agent.errors import CommandNotFound
from qo.commands import CommandRegistry, CommandResult

logger = logging.getLogger("qo.dispatcher")


@dataclass(frozen=True)
class OutputLine:
    """One unit of terminal scrollback."""
    text: str
    is_error: bool = False
    is_echo: bool = False


@dataclass(frozen=True)
class Invocation:
    raw: str
    name: str
    args: tuple

    @classmethod
    def parse(cls, raw: str) -> Optional["Invocation"]:
        """Split a line on whitespace; None for a blank line."""
        line = (raw or "").strip()
        if not line:
            return None
        name, *args = line.split()
        return cls(raw=line, name=name, args=tuple(args))


class Renderer:
    """No-op rendering adapter. Subclass to draw lines somewhere."""

    def render(self, line: OutputLine):
        pass

    def clear(self):
        pass

    def open_modal(self, kind: str):
        pass


class Dispatcher:
    """Routes input lines to registered commands and records the output."""

    def __init__(self, registry: CommandRegistry, session, renderer: Renderer = None):
        self.registry = registry
        self.session = session
        self.renderer = renderer or Renderer()
        self.scrollback: list[OutputLine] = []
        self._lock: asyncio.Lock | None = None

    def emit(self, text: str, is_error: bool = False, is_echo: bool = False) -> OutputLine:
        """Append a line to the scrollback and render it."""
        line = OutputLine(text=text, is_error=is_error, is_echo=is_echo)
        self.scrollback.append(line)
        self.renderer.render(line)
        return line

    def clear(self):
        self.scrollback.clear()
        self.renderer.clear()

    async def dispatch(self, raw: str) -> list[OutputLine]:
        """Run one input line. Returns the lines this call emitted."""
        invocation = Invocation.parse(raw)
        if invocation is None:
            return []

        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            return await self._run(invocation)

    async def _run(self, invocation: Invocation) -> list[OutputLine]:
        produced = [self.emit(invocation.raw, is_echo=True)]
        logger.debug("dispatch %s args=%s", invocation.name, list(invocation.args))

        command = self.registry.lookup(invocation.name)
        if command is None:
            produced.append(self.emit(str(CommandNotFound(invocation.name)), is_error=True))
            return produced

        try:
            result = command.execute(list(invocation.args), self.session)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.warning("Command %s failed: %s", invocation.name, exc, exc_info=self.session.verbose)
            produced.append(self.emit(f"Error: {exc}", is_error=True))
            return produced

        if not isinstance(result, CommandResult):
            result = CommandResult(text=result or "")

        if result.clear:
            self.clear()
        if result.text:
            produced.append(self.emit(result.text))
        if result.modal:
            self.renderer.open_modal(result.modal)
        return produced
