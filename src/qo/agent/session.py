"""
Terminal session context.

Everything a command handler may touch lives here: the signed-in user, the
display theme, the credential registry, and the lazily built AI and paper
lookup clients. Handlers receive the session explicitly instead of reading
module globals.
"""

import logging

from qo.agent.config import VALID_THEMES, Config
from qo.agent.credentials import CredentialStore
from qo.agent.errors import InvalidCredentials, ValidationFailure

logger = logging.getLogger("qo.session")

DEFAULT_THEME = "green"
MIN_USERNAME = 3
MIN_PASSWORD = 6


def normalize_theme(color) -> str:
    """Known theme names pass through, anything else becomes green."""
    return color if color in VALID_THEMES else DEFAULT_THEME


class Session:
    """State shared by the dispatcher and command handlers for one terminal run."""

    def __init__(self, config: Config = None, credentials: CredentialStore = None,
                 ai=None, papers=None, verbose: bool = False):
        self.config = config or Config.load()
        self.verbose = verbose
        self.credentials = credentials or CredentialStore(self.config.get("auth.store_path"))
        self.current_user: str | None = None
        self.theme = normalize_theme(self.config.get("ui.theme"))
        self._ai = ai
        self._papers = papers

    def get_ai(self):
        """Return the AI Query Client, building it from config on first use."""
        if self._ai is None:
            from qo.models.query import AIQueryClient
            self._ai = AIQueryClient.from_config(self.config)
        return self._ai

    def get_papers(self):
        if self._papers is None:
            from qo.tools.arxiv import PaperLookup
            self._papers = PaperLookup.from_config(self.config, self.get_ai())
        return self._papers

    @property
    def current_model(self) -> str:
        ai = self._ai
        if ai is not None:
            return ai.llm.model
        return self.config.get("llm.model")

    def usage_summary(self) -> str | None:
        """Token/cost summary, or None if no AI call was made."""
        if self._ai is None or not self._ai.llm.usage.calls:
            return None
        return self._ai.llm.usage.summary()

    def set_theme(self, color) -> str:
        self.theme = normalize_theme(color)
        return self.theme

    # -- credentials ---------------------------------------------------------

    def login(self, username: str, password: str) -> str:
        record = self.credentials.get(username)
        if record is None or record.get("password") != password:
            logger.info("Rejected login for %r", username)
            raise InvalidCredentials()
        self.current_user = username
        return f"Welcome back, {username}!"

    def register(self, username: str, password: str) -> str:
        if self.credentials.exists(username):
            raise ValidationFailure("Username taken")
        if len(username) < MIN_USERNAME or len(password) < MIN_PASSWORD:
            raise ValidationFailure("Username (3+) and password (6+) too short")
        self.credentials.add(username, password)
        self.current_user = username
        return f"Account created for {username}!"

    def logout(self):
        self.current_user = None
