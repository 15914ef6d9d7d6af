"""
Usage Statistics
================

Counters for cost observability: how many queries the agent handled, how
often each tool ran, and how many classifier model calls the local heuristic
made unnecessary.

One UsageStats instance is created by the composition root and shared by the
agent and its intent classifier. Counters only go up until `reset()`.
"""

from dataclasses import asdict, dataclass

from chatpilot.tools import ToolCapability


@dataclass
class UsageStats:
    """
    Attributes:
        queries: Pipeline runs started
        web_searches: Web search tool invocations
        calculations: Calculator tool invocations
        date_time_lookups: Date/time tool invocations
        calls_avoided: Classifier model calls skipped because the local
            heuristic alone ruled out web search
    """
    queries: int = 0
    web_searches: int = 0
    calculations: int = 0
    date_time_lookups: int = 0
    calls_avoided: int = 0

    def record_query(self) -> None:
        self.queries += 1

    def record_tool(self, capability: ToolCapability | None) -> None:
        if capability is ToolCapability.WEB_SEARCH:
            self.web_searches += 1
        elif capability is ToolCapability.CALCULATION:
            self.calculations += 1
        elif capability is ToolCapability.DATE_TIME:
            self.date_time_lookups += 1

    def record_call_avoided(self) -> None:
        self.calls_avoided += 1

    def reset(self) -> None:
        self.queries = 0
        self.web_searches = 0
        self.calculations = 0
        self.date_time_lookups = 0
        self.calls_avoided = 0

    def snapshot(self) -> dict[str, int]:
        return asdict(self)
