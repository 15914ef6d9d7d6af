"""
Web Search Tool
===============

Live web results from the Tavily search API.

Tavily API Notes:
- Single endpoint: POST https://api.tavily.com/search
- The API key travels in the JSON body (`api_key`), not a header
- `include_answer` asks Tavily for a short synthesized answer
- Results carry title, content, url and (sometimes) published_date

Output shapes:
    Direct Answer: ...            (answer + up to 3 supporting sources)
    Search Results: ...           (up to 5 results, no answer)
    No search results found...    (nothing usable)
"""

import httpx

from chatpilot.errors import ConfigurationError, ToolExecutionError
from chatpilot.tools import Tool, ToolCapability
from chatpilot.utils.logger import Logger

logger = Logger("WebSearch")

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

# Queries that probably need something newer than the model's training data
REAL_TIME_INDICATORS = [
    "news", "latest", "current", "today", "recent", "now",
    "stock price", "weather", "breaking news", "update",
    "what happened", "current events", "trending",
]

# Queries phrased as a lookup
SEARCH_INDICATORS = [
    "what is", "who is", "how to", "where is", "when did",
    "information about", "tell me about", "explain",
    "research", "find out", "look up",
]

MAX_SUPPORTING_SOURCES = 3
NO_RESULTS_MESSAGE = "No search results found for this query."


class WebSearchTool(Tool):
    """
    Searches the web through Tavily.

    A missing API key does not stop the tool from activating; it raises
    ConfigurationError when a search is actually attempted.

    Example:
        tool = WebSearchTool(api_key="tvly-...")
        if tool.should_activate("latest news on fusion power"):
            text = await tool.execute("latest news on fusion power")
    """

    name = "WebSearch"
    description = "Search the web for current information using Tavily"
    capability = ToolCapability.WEB_SEARCH

    def __init__(
        self,
        api_key: str | None = None,
        search_depth: str = "basic",
        max_results: int = 5,
        base_url: str = TAVILY_SEARCH_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None
    ):
        self.api_key = api_key
        self.search_depth = search_depth
        self.max_results = max_results
        self.base_url = base_url
        self.timeout = timeout
        self._http_client = http_client

        if not api_key:
            logger.warning("Tavily API key not found. Web search will fail until one is set.")

    def should_activate(self, query: str) -> bool:
        lower_query = query.lower()
        return (
            any(indicator in lower_query for indicator in REAL_TIME_INDICATORS)
            or any(indicator in lower_query for indicator in SEARCH_INDICATORS)
        )

    async def execute(self, query: str) -> str:
        if not self.api_key:
            raise ConfigurationError("Tavily API key not configured. Set TAVILY_API_KEY in .env")

        logger.info(f"Executing Tavily search for: {query[:60]}")
        data = await self._search(query)
        return self.format_response(data)

    async def _search(self, query: str) -> dict:
        payload = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": self.search_depth,
            "include_answer": True,
            "include_images": False,
            "include_raw_content": False,
            "max_results": self.max_results,
            "include_domains": [],
            "exclude_domains": [],
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.base_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.base_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Tavily request failed", e)
            raise ToolExecutionError(f"Web search failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Tavily API error: {response.status_code} - {response.text[:200]}")
            raise ToolExecutionError(f"Tavily API error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise ToolExecutionError("Tavily returned a non-JSON response") from e

    def format_response(self, data: dict) -> str:
        """Render a Tavily response as prompt-ready text."""
        answer = data.get("answer")
        results = data.get("results") or []

        if answer:
            text = f"Direct Answer: {answer}\n\n"
            if results:
                text += "Supporting Sources:\n"
                for index, result in enumerate(results[:MAX_SUPPORTING_SOURCES], start=1):
                    text += (
                        f"{index}. {result.get('title', '')}\n"
                        f"{result.get('content', '')}\n"
                        f"Source: {result.get('url', '')}\n\n"
                    )
            return text

        if results:
            text = "Search Results:\n\n"
            for index, result in enumerate(results[:self.max_results], start=1):
                text += (
                    f"{index}. {result.get('title', '')}\n"
                    f"{result.get('content', '')}\n"
                    f"Source: {result.get('url', '')}\n"
                    f"Published: {result.get('published_date') or 'Unknown'}\n\n"
                )
            return text

        return NO_RESULTS_MESSAGE
