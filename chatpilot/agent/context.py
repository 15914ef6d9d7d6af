"""
Context Synthesis
=================

Turns tool output into an enhanced prompt for the chat model.

For each query the agent builds one AgentContext:
1. Every successful tool result becomes a Finding with a relevance score
2. Findings are ranked by relevance and the top five are kept
3. The kept findings are folded into a prompt that restates the query and
   asks the model to answer from them, citing sources

Relevance is deliberately simple: the fraction of meaningful query words
(longer than two characters) that appear inside some word of the result.
It is a ranking signal between tools, not a measure of answer quality.

AgentContext is ephemeral; it is discarded once the prompt is built.
"""

from dataclasses import dataclass, field
from datetime import datetime

MAX_FINDINGS = 5
MIN_QUERY_WORD_LENGTH = 3


@dataclass
class Finding:
    """
    One piece of gathered information.

    Attributes:
        source: Name of the tool that produced it
        content: The tool's text output
        relevance: Score in [0, 1]
    """
    source: str
    content: str
    relevance: float


@dataclass
class AgentContext:
    """
    Information gathered for a single query.

    Attributes:
        original_query: The user's query, unmodified
        findings: Scored tool results, in the order tools finished
        tools_used: Names of tools that returned a result
        created_at: When the pipeline run started
    """
    original_query: str
    findings: list[Finding] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def add(self, source: str, content: str) -> Finding:
        """Score a tool result and record it."""
        finding = Finding(
            source=source,
            content=content,
            relevance=calculate_relevance(content, self.original_query),
        )
        self.findings.append(finding)
        self.tools_used.append(source)
        return finding

    def ranked_findings(self, limit: int = MAX_FINDINGS) -> list[Finding]:
        """Findings by descending relevance. Ties keep their gathered order."""
        return sorted(self.findings, key=lambda finding: finding.relevance, reverse=True)[:limit]

    def to_prompt(self) -> str:
        return synthesize_prompt(self)


def calculate_relevance(content: str, query: str) -> float:
    """
    Fraction of query words (length > 2) contained in some word of content.

    Example:
        calculate_relevance("Paris weather: sunny", "weather in Paris")
        # 1.0  ("weather" and "paris" both found, "in" ignored)
    """
    query_words = [word for word in query.lower().split() if len(word) >= MIN_QUERY_WORD_LENGTH]
    if not query_words:
        return 0.0

    content_words = content.lower().split()
    matches = sum(
        1 for query_word in query_words
        if any(query_word in content_word for content_word in content_words)
    )
    return matches / len(query_words)


def synthesize_prompt(context: AgentContext) -> str:
    """
    Build the enhanced prompt.

    With no findings the original query is returned unchanged.
    """
    if not context.findings:
        return context.original_query

    ranked = context.ranked_findings()
    context_sections = "\n\n".join(f"[{finding.source}]: {finding.content}" for finding in ranked)

    return (
        f"User Query: {context.original_query}\n\n"
        f"Additional Context (gathered from {', '.join(context.tools_used)}):\n"
        f"{context_sections}\n\n"
        "Please provide a comprehensive answer to the user's query using the above context "
        "information. Prioritize accuracy and cite sources when relevant. If the context "
        "information is not directly related to the query, you may use your general knowledge "
        "while noting what information comes from external sources."
    )
