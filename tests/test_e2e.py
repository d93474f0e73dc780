"""Live smoke tests against DeepSeek and arXiv. Run with --run-e2e."""

import asyncio

import pytest

from conftest import has_api_key
from qo.agent.config import Config
from qo.models.query import AIQueryClient
from qo.tools.arxiv import PaperLookup

pytestmark = pytest.mark.e2e


@pytest.mark.skipif(not has_api_key(), reason="DEEPSEEK_API_KEY not set")
def test_live_ask():
    ai = AIQueryClient.from_config(Config.load())
    answer = asyncio.run(ai.query("In one sentence, what is a photon?", "Be brief."))
    assert answer
    assert not answer.startswith("AI Error: ")


def test_live_arxiv_titles():
    lookup = PaperLookup.from_config(Config(data={}), ai=None)
    titles = asyncio.run(lookup.fetch_titles("squeezed light"))
    assert 1 <= len(titles) <= 5
