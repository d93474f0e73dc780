"""Shared pytest configuration and fixtures."""

import os
import sys
from pathlib import Path
import pytest

# Ensure `import qo` works when running from repo root without editable install.
SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


def pytest_addoption(parser):
    parser.addoption(
        "--run-e2e", action="store_true", default=False,
        help="Run end-to-end tests that hit real APIs",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-e2e"):
        return  # Run all tests including e2e
    # Skip e2e tests by default
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e to run")
    for item in items:
        if "test_e2e" in item.nodeid or "e2e" in item.keywords:
            item.add_marker(skip_e2e)


def has_api_key():
    return bool(os.environ.get("DEEPSEEK_API_KEY"))


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeAI:
    """Stands in for AIQueryClient; records every query."""

    def __init__(self, reply="AI says hi"):
        from qo.models.llm import LLMClient
        self.reply = reply
        self.calls = []
        self.llm = LLMClient(provider="deepseek", model="fake-model")

    async def query(self, prompt, context=""):
        self.calls.append((prompt, context))
        return self.reply


class FakePapers:
    def __init__(self, reply="- paper summary"):
        self.reply = reply
        self.queries = []

    async def summarize_papers(self, query):
        self.queries.append(query)
        return self.reply


# ---------------------------------------------------------------------------
# Session / dispatcher fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path):
    from qo.agent.config import Config
    return Config(data={"auth.store_path": str(tmp_path / "users.json")})


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def fake_papers():
    return FakePapers()


@pytest.fixture
def session(config, fake_ai, fake_papers):
    from qo.agent.session import Session
    return Session(config=config, ai=fake_ai, papers=fake_papers)


@pytest.fixture
def registry():
    from qo.commands.builtin import build_registry
    return build_registry()


# ---------------------------------------------------------------------------
# Rich console capture fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def captured_console():
    """Yield a (console, buffer) tuple for capturing Rich output."""
    from io import StringIO
    from rich.console import Console
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, width=120)
    return console, buf
