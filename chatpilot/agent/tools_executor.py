"""
Tool Executor
=============

Runs the tools the agent selected for a query.

The executor:
1. Starts every selected tool at once (asyncio.gather)
2. Waits for all of them before returning
3. Counts each invocation in UsageStats
4. Contains failures: a tool that raises is logged and left out, so one
   broken tool only reduces the context, never the answer

Results come back in the order the tools were given, with failed tools
omitted.
"""

import asyncio
from dataclasses import dataclass

from chatpilot.agent.stats import UsageStats
from chatpilot.tools import Tool
from chatpilot.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolOutcome:
    """
    Result of running one tool.

    Attributes:
        name: The tool name
        content: Text output, or None if the tool failed
        error: The exception the tool raised, if any
    """
    name: str
    content: str | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ToolExecutor:
    """
    Concurrent, failure-isolated tool runner.

    Example:
        executor = ToolExecutor(stats)
        outcomes = await executor.execute_all([web_search, calculator], query)

        for outcome in outcomes:
            if outcome.success:
                context.add(outcome.name, outcome.content)
    """

    def __init__(self, stats: UsageStats | None = None):
        self.stats = stats or UsageStats()

    async def execute_one(self, tool: Tool, query: str) -> ToolOutcome:
        logger.info(f"Using tool: {tool.name}")
        self.stats.record_tool(tool.capability)

        try:
            content = await tool.execute(query)
        except Exception as e:
            logger.error(f"Tool {tool.name} failed", e)
            return ToolOutcome(name=tool.name, error=e)

        logger.debug(f"Tool {tool.name} succeeded", {"chars": len(content)})
        return ToolOutcome(name=tool.name, content=content)

    async def execute_all(self, tools: list[Tool], query: str) -> list[ToolOutcome]:
        """Run all tools concurrently; every outcome is collected before returning."""
        if not tools:
            return []

        outcomes = await asyncio.gather(*(self.execute_one(tool, query) for tool in tools))
        return list(outcomes)

    async def execute_successful(self, tools: list[Tool], query: str) -> list[ToolOutcome]:
        """Like execute_all, but drops tools that failed."""
        outcomes = await self.execute_all(tools, query)
        return [outcome for outcome in outcomes if outcome.success]
