"""
Intent Classification
=====================

Decides which tools a query needs before the agent answers it.

Classifying with the chat model costs a paid API call per query, so the
classifier works in two tiers:

    query
      │
      ▼
    LOCAL PASS (regex, free)
      │  "explain / how to / define / code / math"  ──► no web search, 0.9
      │  "current / today / latest / weather / ..."  ──► web search,    0.9
      │  calculation / date-time keywords            ──► flags,   floor 0.8
      │  nothing                                     ──► 0.5
      ▼
    confident and no web search needed? ──yes──► done (model call avoided)
      │ no
      ▼
    MODEL PASS (JSON-only classification prompt)
      │ request or parse failure
      ▼
    KEYWORD HEURISTIC (never fails)

Topic categories (news, finance, weather, science, sports, entertainment,
general) are attached to every result as hints for tool selection.
"""

import json
import re
from dataclasses import dataclass, field

from chatpilot.agent.stats import UsageStats
from chatpilot.client import ChatClient
from chatpilot.errors import CompletionError
from chatpilot.tools import ToolCapability
from chatpilot.utils.logger import Logger

logger = Logger("Intent")

LOCAL_CONFIDENCE = 0.9
FLAG_CONFIDENCE_FLOOR = 0.8
DEFAULT_CONFIDENCE = 0.5
HEURISTIC_CONFIDENCE = 0.6

# Answerable from the model's own knowledge
NO_LIVE_DATA_PATTERN = re.compile(
    r"\b(explain|explanation|how does|how do|how to|what is an?|what are|define|definition|"
    r"meaning of|difference between|code|coding|function|algorithm|program|programming|"
    r"syntax|theorem|formula|proof|derivative|integral|history of)\b",
    re.IGNORECASE,
)

# Needs something newer than the model's training data
LIVE_DATA_PATTERN = re.compile(
    r"\b(current|currently|today|today's|tonight|right now|now|latest|breaking|recent|recently|"
    r"news|headlines|weather|forecast|stock|stocks|share price|price|prices|score|scores|"
    r"trending|this week|live)\b",
    re.IGNORECASE,
)

CALCULATION_PATTERN = re.compile(
    r"\b(calculate|compute|solve|sum of|average|percent|percentage|square root|"
    r"multiply|divide|plus|minus|times|to the power of)\b"
    r"|\d+(\.\d+)?\s*[+\-*/^%]\s*\d+(\.\d+)?",
    re.IGNORECASE,
)

DATE_TIME_PATTERN = re.compile(
    r"\b(what time|current time|what date|what day|day of (the )?week|tomorrow|yesterday|"
    r"timezone|time zone|days until|weeks until|days ago|weeks ago|months ago|calendar)\b",
    re.IGNORECASE,
)

CATEGORY_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("news", re.compile(r"\b(news|politics|election|government)\b")),
    ("finance", re.compile(r"\b(stock|finance|market|price|trading)\b")),
    ("weather", re.compile(r"\b(weather|temperature|rain|snow|climate)\b")),
    ("science", re.compile(r"\b(science|research|study|technology)\b")),
    ("sports", re.compile(r"\b(sports|game|score|team|player)\b")),
    ("entertainment", re.compile(r"\b(entertainment|movie|music|celebrity)\b")),
]

# Keyword lists for the fallback heuristic
REAL_TIME_KEYWORDS = ["today", "current", "latest", "now", "recent", "news", "stock", "weather", "price"]
CALCULATION_KEYWORDS = [
    "calculate", "compute", "math", "add", "subtract", "multiply", "divide", "+", "-", "*", "/", "=",
]
DATE_TIME_KEYWORDS = ["time", "date", "when", "schedule", "calendar", "tomorrow", "yesterday"]
SEARCH_KEYWORDS = ["what is", "who is", "how to", "explain", "define", "information about"]

CLASSIFICATION_PROMPT = """Analyze this user query and determine what tools might be needed to answer it comprehensively:

Query: "{query}"

Consider:
1. Does it need current/real-time information? (news, stocks, weather, recent events)
2. Does it need web search for factual information?
3. Does it need mathematical calculations?
4. Does it need current date/time information?
5. What categories does this query fall into?

Respond with a JSON object only, no other text:
{{
  "needsWebSearch": boolean,
  "needsCalculation": boolean,
  "needsDateTime": boolean,
  "needsRealTimeInfo": boolean,
  "categories": ["category1", "category2"],
  "reasoning": "one short sentence"
}}"""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


@dataclass
class IntentAnalysis:
    """
    What a query needs.

    Attributes:
        needs_web_search: Facts best looked up on the web
        needs_calculation: Arithmetic to compute exactly
        needs_date_time: Current date/time facts
        needs_real_time_info: Information newer than the model's knowledge
        categories: Topic hints ("general" when nothing matched)
        reasoning: Short explanation, when the model provided one
        confidence: 0..1, how sure the producing tier was
        source: "local", "model" or "heuristic"
    """
    needs_web_search: bool = False
    needs_calculation: bool = False
    needs_date_time: bool = False
    needs_real_time_info: bool = False
    categories: list[str] = field(default_factory=lambda: ["general"])
    reasoning: str = ""
    confidence: float = DEFAULT_CONFIDENCE
    source: str = "local"

    def wants(self, capability: ToolCapability | None) -> bool:
        """Whether this intent calls for a tool with the given capability."""
        if capability is ToolCapability.WEB_SEARCH:
            return self.needs_web_search or self.needs_real_time_info
        if capability is ToolCapability.CALCULATION:
            return self.needs_calculation
        if capability is ToolCapability.DATE_TIME:
            return self.needs_date_time
        return False


def categorize_query(query: str) -> list[str]:
    lower_query = query.lower()
    categories = [name for name, pattern in CATEGORY_PATTERNS if pattern.search(lower_query)]
    return categories or ["general"]


def extract_json_object(content: str) -> dict | None:
    """
    Parse a classification reply.

    Tries the whole reply as JSON first (structured output), then the first
    {...} block carved out of surrounding text.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_BLOCK.search(content)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None

    return data if isinstance(data, dict) else None


class IntentClassifier:
    """
    Two-tier intent classifier.

    Example:
        classifier = IntentClassifier(client, stats)

        intent = await classifier.classify("Explain how binary search works")
        intent.needs_web_search  # False, decided locally
        intent.source            # "local"

    Args:
        client: ChatClient for the model pass; None disables it
        stats: Shared UsageStats; counts model calls avoided
        max_retries: Queue retries for the model pass. Kept low because a
            failed classification only costs a fallback, not an answer.
        use_response_format: Ask the API for a JSON object response
    """

    MODEL_PASS_MAX_TOKENS = 200
    MODEL_PASS_TEMPERATURE = 0.1

    def __init__(
        self,
        client: ChatClient | None = None,
        stats: UsageStats | None = None,
        max_retries: int = 1,
        use_response_format: bool = True
    ):
        self.client = client
        self.stats = stats or UsageStats()
        self.max_retries = max_retries
        self.use_response_format = use_response_format

    async def classify(self, query: str) -> IntentAnalysis:
        local = self.classify_locally(query)

        if local.confidence > FLAG_CONFIDENCE_FLOOR and not local.needs_web_search:
            logger.debug("Local pass ruled out web search", {"query": query[:60]})
            self.stats.record_call_avoided()
            return local

        if self.client is None:
            return local

        return await self.classify_with_model(query)

    def classify_locally(self, query: str) -> IntentAnalysis:
        """Regex pass. No network, never fails."""
        intent = IntentAnalysis(categories=categorize_query(query), source="local")

        if NO_LIVE_DATA_PATTERN.search(query):
            intent.needs_web_search = False
            intent.confidence = LOCAL_CONFIDENCE
        elif LIVE_DATA_PATTERN.search(query):
            intent.needs_web_search = True
            intent.needs_real_time_info = True
            intent.confidence = LOCAL_CONFIDENCE

        intent.needs_calculation = CALCULATION_PATTERN.search(query) is not None
        intent.needs_date_time = DATE_TIME_PATTERN.search(query) is not None
        if intent.needs_calculation or intent.needs_date_time:
            intent.confidence = max(intent.confidence, FLAG_CONFIDENCE_FLOOR)

        return intent

    async def classify_with_model(self, query: str) -> IntentAnalysis:
        """Ask the chat model; fall back to the keyword heuristic on any failure."""
        options: dict = {
            "max_tokens": self.MODEL_PASS_MAX_TOKENS,
            "temperature": self.MODEL_PASS_TEMPERATURE,
            "max_retries": self.max_retries,
        }
        if self.use_response_format:
            options["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.send_message(
                CLASSIFICATION_PROMPT.format(query=query), **options
            )
        except CompletionError as e:
            logger.error("Intent analysis failed", e)
            return self.heuristic(query)

        content = response.choices[0].message.content if response.choices else None
        data = extract_json_object(content or "")
        if data is None:
            logger.warning("Classifier reply was not JSON, using heuristic", {"reply": (content or "")[:200]})
            return self.heuristic(query)

        categories = data.get("categories")
        if not isinstance(categories, list) or not categories:
            categories = categorize_query(query)

        return IntentAnalysis(
            needs_web_search=bool(data.get("needsWebSearch", False)),
            needs_calculation=bool(data.get("needsCalculation", False)),
            needs_date_time=bool(data.get("needsDateTime", False)),
            needs_real_time_info=bool(data.get("needsRealTimeInfo", False)),
            categories=[str(category) for category in categories],
            reasoning=str(data.get("reasoning") or ""),
            confidence=LOCAL_CONFIDENCE,
            source="model",
        )

    def heuristic(self, query: str) -> IntentAnalysis:
        """Keyword fallback used when the model pass is unavailable."""
        lower_query = query.lower()

        needs_real_time = any(keyword in lower_query for keyword in REAL_TIME_KEYWORDS)
        return IntentAnalysis(
            needs_web_search=needs_real_time or any(keyword in lower_query for keyword in SEARCH_KEYWORDS),
            needs_calculation=any(keyword in lower_query for keyword in CALCULATION_KEYWORDS),
            needs_date_time=any(keyword in lower_query for keyword in DATE_TIME_KEYWORDS),
            needs_real_time_info=needs_real_time,
            categories=categorize_query(lower_query),
            confidence=HEURISTIC_CONFIDENCE,
            source="heuristic",
        )
