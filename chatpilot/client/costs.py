"""Rough dollar-cost estimates for completion calls, for usage dashboards."""

# USD per 1K tokens
MODEL_RATES: dict[str, dict[str, float]] = {
    "gpt-4o": {"input": 0.005, "output": 0.015},
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-3.5-turbo": {"input": 0.001, "output": 0.002},
}

DEFAULT_RATE_MODEL = "gpt-4o"


def estimate_cost(input_tokens: int, output_tokens: int, model: str = DEFAULT_RATE_MODEL) -> float:
    """
    Estimate the cost of one call. Unknown models are priced as gpt-4o.

    Example:
        estimate_cost(1000, 500, "gpt-4")  # 0.06
    """
    rate = MODEL_RATES.get(model, MODEL_RATES[DEFAULT_RATE_MODEL])
    return (input_tokens / 1000) * rate["input"] + (output_tokens / 1000) * rate["output"]


def estimate_response_cost(response, model: str | None = None) -> float:
    """Estimate the cost of a ChatCompletion from its reported usage."""
    usage = getattr(response, "usage", None)
    if usage is None:
        return 0.0
    return estimate_cost(
        usage.prompt_tokens,
        usage.completion_tokens,
        model or getattr(response, "model", None) or DEFAULT_RATE_MODEL,
    )
