"""
Tests for the two-tier intent classifier.
"""
import json
from unittest.mock import AsyncMock, Mock

import pytest

from chatpilot.agent.intent import (
    IntentAnalysis,
    IntentClassifier,
    categorize_query,
    extract_json_object,
)
from chatpilot.agent.stats import UsageStats
from chatpilot.errors import CompletionError, ErrorCategory
from chatpilot.tools import ToolCapability


def model_reply(content: str) -> Mock:
    """A ChatCompletion-shaped mock carrying `content`."""
    return Mock(choices=[Mock(message=Mock(content=content))])


def mock_client(content: str | None = None, error: Exception | None = None) -> Mock:
    client = Mock()
    if error is not None:
        client.send_message = AsyncMock(side_effect=error)
    else:
        client.send_message = AsyncMock(return_value=model_reply(content))
    return client


MODEL_JSON = json.dumps({
    "needsWebSearch": True,
    "needsCalculation": False,
    "needsDateTime": True,
    "needsRealTimeInfo": True,
    "categories": ["weather"],
    "reasoning": "Weather changes daily.",
})


class TestLocalPass:

    @pytest.mark.asyncio
    async def test_explain_query_needs_no_model_call(self):
        client = mock_client(MODEL_JSON)
        stats = UsageStats()
        classifier = IntentClassifier(client, stats)

        intent = await classifier.classify("Explain how binary search works")

        assert intent.needs_web_search is False
        assert intent.source == "local"
        assert intent.confidence == 0.9
        client.send_message.assert_not_awaited()
        assert stats.calls_avoided == 1

    @pytest.mark.asyncio
    async def test_current_weather_needs_web_search(self):
        classifier = IntentClassifier(client=None)

        intent = await classifier.classify("What's the current weather in Paris today?")

        assert intent.needs_web_search is True
        assert intent.needs_real_time_info is True
        assert "weather" in intent.categories

    def test_calculation_flag_raises_confidence_floor(self):
        intent = IntentClassifier().classify_locally("Please calculate 12 * 7")

        assert intent.needs_calculation is True
        assert intent.confidence == 0.8

    def test_date_time_flag(self):
        intent = IntentClassifier().classify_locally("How many days until Christmas?")

        assert intent.needs_date_time is True

    def test_nothing_matched_defaults(self):
        intent = IntentClassifier().classify_locally("Tell me a joke about penguins")

        assert intent.confidence == 0.5
        assert intent.needs_web_search is False
        assert intent.needs_calculation is False
        assert intent.categories == ["general"]


class TestModelPass:

    @pytest.mark.asyncio
    async def test_live_query_escalates_to_model(self):
        client = mock_client(MODEL_JSON)
        classifier = IntentClassifier(client)

        intent = await classifier.classify("What's the current weather in Paris today?")

        assert intent.source == "model"
        assert intent.needs_web_search is True
        assert intent.needs_date_time is True
        assert intent.categories == ["weather"]
        assert intent.reasoning == "Weather changes daily."

        _, kwargs = client.send_message.call_args
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_retries"] == 1

    @pytest.mark.asyncio
    async def test_json_carved_out_of_prose(self):
        client = mock_client(f"Sure, here is the analysis:\n{MODEL_JSON}\nHope that helps!")

        intent = await IntentClassifier(client).classify_with_model("Latest Tesla stock price")

        assert intent.source == "model"
        assert intent.needs_web_search is True

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_back_to_heuristic(self):
        client = mock_client("I think you need the web.")

        intent = await IntentClassifier(client).classify("Latest news about the election")

        assert intent.source == "heuristic"
        assert intent.needs_web_search is True
        assert "news" in intent.categories

    @pytest.mark.asyncio
    async def test_request_failure_falls_back_to_heuristic(self):
        client = mock_client(error=CompletionError("down", ErrorCategory.SERVER, status_code=503))

        intent = await IntentClassifier(client).classify("What's the stock price today?")

        assert intent.source == "heuristic"
        assert intent.needs_real_time_info is True
        assert intent.confidence == 0.6

    @pytest.mark.asyncio
    async def test_structured_output_can_be_disabled(self):
        client = mock_client(MODEL_JSON)

        await IntentClassifier(client, use_response_format=False).classify_with_model("anything")

        _, kwargs = client.send_message.call_args
        assert "response_format" not in kwargs


class TestIntentAnalysis:

    def test_wants_maps_capabilities_to_flags(self):
        intent = IntentAnalysis(needs_real_time_info=True, needs_calculation=True)

        assert intent.wants(ToolCapability.WEB_SEARCH) is True
        assert intent.wants(ToolCapability.CALCULATION) is True
        assert intent.wants(ToolCapability.DATE_TIME) is False
        assert intent.wants(None) is False


class TestHelpers:

    def test_extract_json_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}
        assert extract_json_object('prefix {"a": 1} suffix') == {"a": 1}
        assert extract_json_object("no json here") is None
        assert extract_json_object("[1, 2]") is None

    def test_categorize_query(self):
        assert categorize_query("Stock market news") == ["news", "finance"]
        assert categorize_query("Hello") == ["general"]
