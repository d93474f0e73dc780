"""
Interactive terminal for quant-optik.

A prompt_toolkit REPL on top of the dispatcher. Each submitted line is
awaited to completion before the next prompt appears; output lines are
drawn with rich in the session's theme color.
"""

import asyncio
import logging
import signal
import threading
import time

from rich.console import Console
from rich.text import Text
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style

from qo.agent.config import CONFIG_DIR
from qo.agent.dispatcher import Dispatcher, OutputLine, Renderer
from qo.agent.errors import CredentialError
from qo.agent.session import Session
from qo.commands.builtin import build_registry
from qo.ui.status import THEME_COLORS, THINKING_PHASES, ThinkingStatus

logger = logging.getLogger("qo.terminal")

ERROR_COLOR = "#FF0000"
EXIT_WORDS = ("exit", "quit")


class CommandCompleter(Completer):
    """Complete the command name (first token) with its description."""

    def __init__(self, registry):
        self.registry = registry

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor.lstrip()
        if " " in text:
            return
        for command in self.registry.list_commands():
            if command.name.startswith(text):
                yield Completion(
                    command.name,
                    start_position=-len(text),
                    display_meta=command.description,
                )


class RichRenderer(Renderer):
    """Draws output lines on a rich Console in the session's theme color."""

    def __init__(self, console: Console, session: Session, prompt: str = "⟩⟩"):
        self.console = console
        self.session = session
        self.prompt = prompt
        self.pending_modal = None

    @property
    def color(self) -> str:
        return THEME_COLORS.get(self.session.theme, THEME_COLORS["green"])

    def render(self, line: OutputLine):
        # Text objects, not markup: model output may contain [brackets]
        if line.is_echo:
            text = Text(f"{self.prompt} ", style=f"bold {self.color}")
            text.append(line.text, style=self.color)
        elif line.is_error:
            text = Text(line.text, style=ERROR_COLOR)
        else:
            text = Text(line.text, style=self.color)
        self.console.print(text)

    def clear(self):
        self.console.clear()

    def open_modal(self, kind: str):
        self.pending_modal = kind


def _build_key_bindings(terminal):
    """Key bindings: Tab completes the command name, Ctrl+C double-tap to exit."""
    kb = KeyBindings()

    @kb.add("tab")
    def _complete(event):
        event.app.current_buffer.start_completion()

    @kb.add("c-c")
    def _handle_ctrl_c(event):
        buf = event.app.current_buffer
        now = time.time()
        if now - terminal._last_interrupt < 0.5:
            # Double Ctrl+C signals exit
            event.app.exit(result="__EXIT__")
        else:
            terminal._last_interrupt = now
            terminal._show_exit_hint = True
            buf.reset()
            event.app.invalidate()

            def _clear_hint():
                time.sleep(0.5)
                terminal._show_exit_hint = False
                if event.app.is_running:
                    event.app.invalidate()

            threading.Thread(target=_clear_hint, daemon=True).start()

    return kb


class InteractiveTerminal:
    """Interactive quantum optics tutor terminal."""

    def __init__(self, config=None, verbose=False, session: Session = None,
                 console: Console = None, registry=None):
        self.session = session or Session(config=config, verbose=verbose)
        self.console = console or Console()
        self.registry = registry or build_registry()
        self.renderer = RichRenderer(
            self.console, self.session, prompt=self.session.config.get("ui.prompt", "⟩⟩"),
        )
        self.dispatcher = Dispatcher(self.registry, self.session, self.renderer)
        self.history_file = CONFIG_DIR / "history"
        self._last_interrupt = 0.0
        self._show_exit_hint = False
        self._prompt_session = None

    def _get_prompt_session(self) -> PromptSession:
        if self._prompt_session is None:
            self.history_file.parent.mkdir(parents=True, exist_ok=True)
            self._prompt_session = PromptSession(
                history=FileHistory(str(self.history_file)),
                completer=CommandCompleter(self.registry),
                complete_while_typing=False,
                key_bindings=_build_key_bindings(self),
            )
        return self._prompt_session

    def _prompt_style(self) -> Style:
        return Style.from_dict({"prompt": f"bold {self.renderer.color}"})

    def _bottom_toolbar(self):
        if self._show_exit_hint:
            return HTML('<style fg="#888888">  Press Ctrl+C again to exit</style>')
        user = self.session.current_user or "guest"
        return HTML(
            f'  <style fg="#000000" bg="{self.renderer.color}"> {self.session.current_model} </style>'
            f'<style fg="#555555">  theme: {self.session.theme}  ·  user: {user}  ·  help for commands</style>'
        )

    def run(self):
        """Run the interactive session until exit."""
        asyncio.run(self.run_async())

    async def run_async(self):
        prompt_session = self._get_prompt_session()
        while True:
            try:
                line = await prompt_session.prompt_async(
                    [("class:prompt", f"{self.renderer.prompt} ")],
                    style=self._prompt_style(),
                    bottom_toolbar=self._bottom_toolbar,
                )
                self._show_exit_hint = False
            except (EOFError, KeyboardInterrupt):
                break

            if line == "__EXIT__" or line.strip() in EXIT_WORDS:
                break

            await self.handle_line(line)

        self.console.print("Goodbye.")
        self._print_usage_summary()

    async def handle_line(self, line: str) -> list[OutputLine]:
        """Dispatch one line, with a spinner for network-bound commands."""
        tokens = line.split()
        phase = THINKING_PHASES.get(tokens[0]) if tokens else None

        if phase is None:
            produced = await self.dispatcher.dispatch(line)
        else:
            produced = await self._dispatch_with_status(line, phase)

        kind, self.renderer.pending_modal = self.renderer.pending_modal, None
        if kind:
            await self._credential_form(kind)
        return produced

    async def _dispatch_with_status(self, line: str, phase: str) -> list[OutputLine]:
        task = asyncio.ensure_future(self.dispatcher.dispatch(line))
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, task.cancel)
            installed = True
        except (NotImplementedError, RuntimeError):
            installed = False

        try:
            with ThinkingStatus(
                self.console,
                phase,
                spinner_style=self.session.config.get("ui.spinner", "photon_pulse"),
                theme=self.session.theme,
            ) as status:
                status.start_async_refresh()
                return await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            self.console.print(Text("Interrupted.", style="dim"))
            return []
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

    async def _credential_form(self, kind: str):
        """Ask for username and password, then submit ``kind`` (login/register)."""
        # Separate in-memory session so credentials never reach the history file
        form = PromptSession()
        try:
            username = await form.prompt_async("username: ")
            password = await form.prompt_async("password: ", is_password=True)
        except (EOFError, KeyboardInterrupt):
            self.console.print(Text("Cancelled.", style="dim"))
            return None
        return self.submit_credentials(kind, username, password)

    def submit_credentials(self, kind: str, username: str, password: str) -> OutputLine:
        """Run login/register against the session and record the outcome as a line."""
        action = self.session.register if kind == "register" else self.session.login
        try:
            message = action(username, password)
        except CredentialError as exc:
            return self.dispatcher.emit(str(exc), is_error=True)
        return self.dispatcher.emit(message)

    def _print_usage_summary(self):
        summary = self.session.usage_summary()
        if summary:
            self.console.print(Text(f"  {summary}", style="dim"))
