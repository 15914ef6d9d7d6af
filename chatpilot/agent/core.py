"""
Agent Core
==========

The pipeline that turns a user query into an answer.

Pipeline:
    User Query
         │
         ▼
    Classify Intent (local heuristic, model only when unsure)
         │
         ▼
    Select Tools (tool.should_activate OR intent wants its capability)
         │
         ▼
    Run Tools Concurrently (failures logged and dropped)
         │
         ▼
    Score + Rank Findings (top 5 by relevance)
         │
         ▼
    Enhanced Prompt (or the original query if nothing was found)
         │
         ▼
    ChatClient.send_with_history ──► answer text

Callers see either the answer or a single terminal error from the completion
client; tool and classifier problems only show up as thinner context.
"""

from chatpilot.agent.context import AgentContext
from chatpilot.agent.intent import IntentAnalysis, IntentClassifier
from chatpilot.agent.stats import UsageStats
from chatpilot.agent.tools_executor import ToolExecutor
from chatpilot.client import ChatClient
from chatpilot.errors import AgentError
from chatpilot.tools import Tool, ToolRegistry
from chatpilot.utils.logger import Logger

logger = Logger("Agent")


class Agent:
    """
    Tool-augmented chat agent.

    Example:
        agent = create_agent()

        answer = await agent.process(
            "What's 15% of 240, and what's the weather in Paris today?",
            conversation_id="conv-1",
        )
    """

    def __init__(
        self,
        client: ChatClient,
        tools: list[Tool] | None = None,
        classifier: IntentClassifier | None = None,
        stats: UsageStats | None = None
    ):
        """
        Args:
            client: Completion client used for the final answer
            tools: Initial tools, in execution order
            classifier: Intent classifier; defaults to one sharing client and stats
            stats: Usage counters shared with the classifier
        """
        self.client = client
        self.stats = stats or UsageStats()
        self.classifier = classifier or IntentClassifier(client, self.stats)
        self.executor = ToolExecutor(self.stats)

        self.registry = ToolRegistry()
        for tool in tools or []:
            self.registry.register(tool)

        logger.info(f"Agent initialized with tools: {', '.join(self.registry.list_names()) or 'none'}")

    async def process(
        self,
        query: str,
        conversation_id: str,
        system_prompt: str | None = None
    ) -> str:
        """
        Answer a query, using tools where they help.

        Raises:
            CompletionError: If the final completion fails after retries
            AgentError: If the model returned no content
        """
        logger.info(f"Processing query: {query[:50]}...")
        self.stats.record_query()

        intent = await self.classifier.classify(query)
        logger.debug(
            "Intent analysis",
            {
                "source": intent.source,
                "confidence": intent.confidence,
                "web_search": intent.needs_web_search,
                "calculation": intent.needs_calculation,
                "date_time": intent.needs_date_time,
                "categories": intent.categories,
            },
        )

        context = await self.gather_information(query, intent)
        logger.info(
            "Gathered context",
            {"tools_used": context.tools_used, "findings": len(context.findings)},
        )

        prompt = context.to_prompt()

        response = await self.client.send_with_history(prompt, conversation_id, system_prompt)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AgentError("Failed to generate AI response")

        logger.info(f"Generated response ({len(content)} chars)")
        return content

    def select_tools(self, query: str, intent: IntentAnalysis) -> list[Tool]:
        return [
            tool for tool in self.registry.get_all()
            if tool.should_activate(query) or intent.wants(tool.capability)
        ]

    async def gather_information(self, query: str, intent: IntentAnalysis) -> AgentContext:
        """Run the selected tools and collect their scored findings."""
        context = AgentContext(original_query=query)

        outcomes = await self.executor.execute_successful(self.select_tools(query, intent), query)
        for outcome in outcomes:
            context.add(outcome.name, outcome.content)

        return context

    # ==========================================================================
    # Tool management
    # ==========================================================================

    def add_tool(self, tool: Tool) -> None:
        self.registry.register(tool)

    def remove_tool(self, name: str) -> bool:
        return self.registry.unregister(name)

    def available_tools(self) -> list[str]:
        return self.registry.list_names()

    def clear_conversation(self, conversation_id: str) -> None:
        """Forget a conversation's history."""
        self.client.clear_history(conversation_id)
        logger.info(f"Cleared conversation {conversation_id}")
