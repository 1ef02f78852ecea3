"""Completion gateway schemas"""

from typing import Optional
from pydantic import BaseModel


class LLMMessage(BaseModel):
    """Message in conversation"""
    role: str  # user, assistant
    content: str


class UsageStats(BaseModel):
    """Token usage statistics"""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class CompletionOptions(BaseModel):
    """Per-call completion settings; unset fields fall back to app settings"""
    provider: Optional[str] = None  # anthropic, openai, gemini, ollama
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class CompletionResult(BaseModel):
    """Completion text plus usage metadata"""
    text: str
    usage: Optional[UsageStats] = None
    model: str
    provider: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def is_fallback(self) -> bool:
        return self.model == "fallback"
