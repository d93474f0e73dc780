"""
Command registry for the quant-optik terminal.

A command is a name, a one-line description, and a handler
``handler(args, session) -> str | CommandResult`` that may be a plain
function or a coroutine function. Registration happens once, while the
registry is built; after ``freeze()`` the table is read-only.
"""

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class Command:
    """A terminal command bound to its handler."""
    name: str
    description: str
    handler: Callable

    def execute(self, args: list[str], session):
        """Run the handler. May return an awaitable."""
        return self.handler(args, session)


@dataclass
class CommandResult:
    """Handler output plus UI-state requests for the renderer.

    ``text`` follows the plain-string contract: empty means no output line.
    ``clear`` empties the scrollback; ``modal`` names a form to open
    (``"login"`` or ``"register"``).
    """
    text: str = ""
    clear: bool = False
    modal: Optional[str] = None


class CommandRegistry:
    """Ordered, append-only mapping of command name -> Command."""

    def __init__(self):
        self._commands: dict[str, Command] = {}
        self._frozen = False

    def register(self, name: str, description: str):
        """Decorator to register a handler under ``name``."""
        def decorator(func):
            if self._frozen:
                raise RuntimeError(f"Registry is frozen; cannot register {name!r}")
            if name in self._commands:
                raise ValueError(f"Duplicate command name: {name!r}")
            self._commands[name] = Command(name=name, description=description, handler=func)
            return func
        return decorator

    def freeze(self) -> "CommandRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> Optional[Command]:
        """Exact, case-sensitive lookup."""
        return self._commands.get(name)

    def list_commands(self) -> list[Command]:
        """All commands in registration order."""
        return list(self._commands.values())

    def names(self) -> list[str]:
        return list(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)
