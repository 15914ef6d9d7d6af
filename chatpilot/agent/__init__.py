"""
Agent System
============

The agent answers a query in five steps:
1. Classifies what the query needs
2. Selects tools
3. Runs them concurrently, tolerating failures
4. Ranks their findings by relevance
5. Sends an enhanced prompt through the completion client

This module provides:
- Agent: The pipeline
- IntentClassifier / IntentAnalysis: Two-tier intent classification
- AgentContext: Per-query findings and prompt synthesis
- ToolExecutor: Concurrent tool runner
- UsageStats: Cost observability counters
"""

from chatpilot.agent.context import AgentContext, Finding
from chatpilot.agent.core import Agent
from chatpilot.agent.intent import IntentAnalysis, IntentClassifier
from chatpilot.agent.stats import UsageStats
from chatpilot.agent.tools_executor import ToolExecutor

__all__ = [
    "Agent",
    "AgentContext",
    "Finding",
    "IntentAnalysis",
    "IntentClassifier",
    "ToolExecutor",
    "UsageStats",
]
