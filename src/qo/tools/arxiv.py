"""
Paper lookup: arXiv Atom feed -> titles -> tutor summary.

The feed is read as raw text and titles are pulled out with a plain pattern
match rather than an XML parser. The first ``<title>`` in an arXiv feed is
the feed's own title, so it is skipped.
"""

import logging
import re

from qo.agent.errors import NetworkFailure, NotFound
from qo.tools.http_client import request_text

logger = logging.getLogger("qo.arxiv")

DEFAULT_ENDPOINT = "https://export.arxiv.org/api/query"
DEFAULT_QUERY = "quantum optics"
SENTINEL = "arXiv API Error"
SUMMARY_CONTEXT = "Provide bullet-point summaries with key equations."

_TITLE_RE = re.compile(r"<title>[^<]+")


def extract_titles(feed: str, limit: int = 5) -> list[str]:
    """Return up to ``limit`` entry titles, skipping the feed title."""
    matches = _TITLE_RE.findall(feed or "")
    return [m[len("<title>"):] for m in matches[1:1 + limit]]


def search_url(endpoint: str, query: str) -> str:
    return f"{endpoint}?search_query=all:{query}"


class PaperLookup:
    """Paper Lookup Helper bound to an AI query client."""

    def __init__(self, ai, endpoint: str = DEFAULT_ENDPOINT, max_titles: int = 5,
                 timeout: float | None = None, http_client=None):
        self.ai = ai
        self.endpoint = endpoint
        self.max_titles = max_titles
        self.timeout = timeout
        self._http = http_client

    @classmethod
    def from_config(cls, config, ai) -> "PaperLookup":
        return cls(
            ai,
            endpoint=config.get("arxiv.endpoint", DEFAULT_ENDPOINT),
            max_titles=int(config.get("arxiv.max_titles", 5)),
            timeout=config.http_timeout(),
        )

    async def fetch_titles(self, query: str) -> list[str]:
        """Fetch the feed for ``query`` and extract titles.

        Raises:
            NetworkFailure: the request failed or returned a non-2xx status.
            NotFound: the feed held no entry titles.
        """
        url = search_url(self.endpoint, query)
        logger.debug("GET %s", url)
        feed, error = await request_text(url, timeout=self.timeout, client=self._http)
        if error:
            raise NetworkFailure(error)
        titles = extract_titles(feed, limit=self.max_titles)
        if not titles:
            raise NotFound(f"No arXiv entries for {query!r}")
        return titles

    async def summarize_papers(self, query: str) -> str:
        try:
            titles = await self.fetch_titles(query)
        except (NetworkFailure, NotFound) as exc:
            logger.warning("arXiv lookup failed: %s", exc)
            return SENTINEL
        results = "\n".join(titles)
        return await self.ai.query(f"Summarize these papers: {results}", SUMMARY_CONTEXT)
