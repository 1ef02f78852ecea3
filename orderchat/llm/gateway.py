"""Completion gateway

The single boundary between the conversation engine and the completion
providers. complete() never raises: on timeout, provider error or empty
output it logs the failure and returns one of a fixed set of fallback
replies, tagged with model "fallback". There is no retry and no second
provider; a repeated completion could interpret the same customer turn twice.
"""

import asyncio
import time
import zlib
from typing import Dict, Optional

import structlog

from orderchat.config import settings
from orderchat.errors import ExternalServiceError
from orderchat.llm.providers import PROVIDERS, BaseLLMProvider, ProviderFactory
from orderchat.schemas.llm import CompletionOptions, CompletionResult, LLMMessage

logger = structlog.get_logger()

FALLBACK_MODEL = "fallback"

FALLBACK_RESPONSES = [
    "Disculpa, estoy teniendo problemas técnicos en este momento. ¿Podrías repetir tu mensaje?",
    "Lo siento, no pude procesar tu solicitud. ¿Puedes intentar de nuevo?",
    "Estoy experimentando dificultades técnicas. Por favor, intenta nuevamente en unos momentos.",
    "Disculpa la inconveniencia. ¿Podrías volver a enviar tu mensaje?",
]


def fallback_response(user_message: str) -> str:
    """Same message, same fallback"""
    index = zlib.crc32((user_message or "").encode("utf-8")) % len(FALLBACK_RESPONSES)
    return FALLBACK_RESPONSES[index]


class CompletionGateway:
    """Routes completions to a provider with a hard deadline and a fallback"""

    def __init__(
        self,
        providers: Optional[Dict[str, ProviderFactory]] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.providers = providers if providers is not None else PROVIDERS
        self.timeout_seconds = timeout_seconds or settings.completion_timeout_seconds

    def _get_provider_instance(self, provider: str, model: Optional[str]) -> BaseLLMProvider:
        provider_class = self.providers.get(provider)
        if not provider_class:
            raise ValueError(f"Unknown provider: {provider}")
        return provider_class(model)

    def _fallback(self, user_message: str, provider: str, started: float) -> CompletionResult:
        return CompletionResult(
            text=fallback_response(user_message),
            model=FALLBACK_MODEL,
            provider=provider,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def _generate(
        self,
        provider: str,
        model: Optional[str],
        context_text: str,
        user_message: str,
        temperature: float,
        max_tokens: int,
    ) -> CompletionResult:
        """One provider call; any provider failure surfaces as ExternalServiceError"""
        try:
            provider_instance = self._get_provider_instance(provider, model)
            return await provider_instance.generate(
                system_prompt=context_text,
                messages=[LLMMessage(role="user", content=user_message)],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise ExternalServiceError(provider, str(e) or type(e).__name__) from e

    async def complete(
        self,
        context_text: str,
        user_message: str,
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResult:
        options = options or CompletionOptions()
        provider = options.provider or settings.default_llm_provider
        model = options.model or (
            settings.default_llm_model if provider == settings.default_llm_provider else None
        )
        temperature = options.temperature if options.temperature is not None else settings.completion_temperature
        max_tokens = options.max_tokens or settings.completion_max_tokens

        started = time.monotonic()

        try:
            result = await asyncio.wait_for(
                self._generate(provider, model, context_text, user_message, temperature, max_tokens),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Completion timed out, using fallback reply",
                provider=provider,
                model=model,
                timeout_seconds=self.timeout_seconds,
            )
            return self._fallback(user_message, provider, started)
        except ExternalServiceError as e:
            logger.error(
                "Completion failed, using fallback reply",
                provider=provider,
                model=model,
                error=e.message,
                error_code=e.code,
                error_type=type(e.__cause__).__name__,
                user_message=(user_message or "")[:100],
            )
            return self._fallback(user_message, provider, started)

        if not result.text or not result.text.strip():
            logger.error("Completion returned empty text, using fallback reply", provider=provider, model=model)
            return self._fallback(user_message, provider, started)

        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Completion received",
            provider=provider,
            model=result.model,
            duration_ms=result.duration_ms,
            input_tokens=result.usage.input_tokens if result.usage else None,
            output_tokens=result.usage.output_tokens if result.usage else None,
            response_length=len(result.text),
        )
        return result
