"""
ChatPilot - LLM Request Orchestration
=====================================

The request layer behind a voice-enabled chat client: a queued, rate-limited
chat completion client and a tool-augmented agent pipeline.

This package provides:
- Completion client with priority queue, rate limiting, retries and history
- Two-tier intent classifier that avoids paid calls when it can
- Tools for web search, calculation and date/time
- Agent pipeline that ranks tool findings into an enhanced prompt
"""

__version__ = "1.0.0"
