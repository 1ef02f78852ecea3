"""Base completion provider interface"""

from abc import ABC, abstractmethod
from typing import List

from orderchat.schemas.llm import LLMMessage, CompletionResult


class BaseLLMProvider(ABC):
    """Abstract base class for completion providers"""

    name = "base"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate a text reply; raise on any provider failure"""
        pass
