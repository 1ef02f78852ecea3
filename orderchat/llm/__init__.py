"""Completion service boundary"""

from orderchat.llm.gateway import CompletionGateway, fallback_response

__all__ = ["CompletionGateway", "fallback_response"]
