"""
Agent Tools
===========

Tools are small capabilities the agent can run before answering, to put facts
the model does not have into its prompt:

1. WebSearchTool: live information from Tavily
2. CalculatorTool: arithmetic the model should not guess at
3. DateTimeTool: the current date, time and date differences

How tools are used:
1. The agent classifies the query's intent
2. Each tool decides for itself whether the query concerns it
   (`should_activate`), and the intent can switch a tool on through the
   tool's declared capability
3. Activated tools run concurrently; each returns plain text
4. The agent ranks the texts and folds them into the prompt

Contract for implementations:
- `should_activate` is cheap, synchronous and side-effect free
- `execute` returns an explanatory string when it has nothing useful to say
- `execute` raises only for infrastructure problems (network, missing key);
  the agent logs and skips a tool that raises

This module provides:
- ToolCapability enum used to map intent flags to tools
- Tool abstract base class
- ToolRegistry for managing the agent's tools
"""

from abc import ABC, abstractmethod
from enum import Enum

from chatpilot.utils.logger import Logger

logger = Logger("Tools")


class ToolCapability(str, Enum):
    """What a tool provides. The intent classifier speaks in these terms."""
    WEB_SEARCH = "web_search"
    CALCULATION = "calculation"
    DATE_TIME = "date_time"


class Tool(ABC):
    """
    Base class for agent tools.

    Example:
        class EchoTool(Tool):
            name = "Echo"
            description = "Repeats the query"
            capability = None

            def should_activate(self, query: str) -> bool:
                return query.startswith("echo")

            async def execute(self, query: str) -> str:
                return query
    """

    name: str = "base"
    description: str = ""
    capability: ToolCapability | None = None

    @abstractmethod
    def should_activate(self, query: str) -> bool:
        """Whether this query obviously needs the tool."""

    @abstractmethod
    async def execute(self, query: str) -> str:
        """Produce findings for the query as plain text."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class ToolRegistry:
    """
    Ordered collection of tools, looked up by name.

    Example:
        registry = ToolRegistry()
        registry.register(CalculatorTool())

        registry.get("Calculator")
        registry.list_names()  # ["Calculator"]
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Raises:
            ValueError: If a tool with this name already exists
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns True if it was registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_all(self) -> list[Tool]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


__all__ = [
    "Tool",
    "ToolCapability",
    "ToolRegistry",
]
