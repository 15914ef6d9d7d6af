"""
Composition Root
================

Builds a ready-to-use agent from configuration:

    Config ──► ChatClient ──┬──► IntentClassifier ──┐
                            │                       ├──► Agent
    UsageStats ─────────────┴───────────────────────┤
    WebSearchTool, CalculatorTool, DateTimeTool ────┘

Everything mutable (request queue, rate-limit window, conversation history,
usage counters) is created here and owned by the returned Agent, so two
agents built by two calls share nothing.

Usage:
    from chatpilot.app import create_agent

    agent = create_agent()
    answer = await agent.process("What's 12 * 7?", conversation_id="conv-1")
    print(agent.stats.snapshot())
"""

from chatpilot.agent import Agent, IntentClassifier, UsageStats
from chatpilot.client import ChatClient
from chatpilot.tools import Tool
from chatpilot.tools.calculator import CalculatorTool
from chatpilot.tools.datetime_tool import DateTimeTool
from chatpilot.tools.web_search import WebSearchTool
from chatpilot.utils.config import Config, get_config
from chatpilot.utils.logger import Logger, set_log_level

logger = Logger("App")


def create_default_tools(config: Config) -> list[Tool]:
    """Web search, calculator and date/time, in that order."""
    return [
        WebSearchTool(
            api_key=config.search.api_key,
            search_depth=config.search.search_depth,
            max_results=config.search.max_results,
        ),
        CalculatorTool(),
        DateTimeTool(),
    ]


def create_agent(
    config: Config | None = None,
    client: ChatClient | None = None,
    tools: list[Tool] | None = None
) -> Agent:
    """
    Wire up an Agent.

    Args:
        config: Settings; loaded from the environment when omitted
        client: Pre-built ChatClient (e.g. with a custom http_client)
        tools: Replaces the default tool set

    Raises:
        ConfigurationError: If the OpenAI API key is missing
    """
    config = config or get_config()
    set_log_level(config.log_level)

    client = client or ChatClient.from_config(config)
    stats = UsageStats()

    agent = Agent(
        client=client,
        tools=tools if tools is not None else create_default_tools(config),
        classifier=IntentClassifier(client, stats),
        stats=stats,
    )
    logger.info("Agent ready", {"model": client.model, "tools": agent.available_tools()})
    return agent
