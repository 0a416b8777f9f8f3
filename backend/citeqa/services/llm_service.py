"""LLM service for any OpenAI-compatible chat completions API."""
import asyncio
import os
import time
from typing import Optional

import httpx
from openai import AsyncOpenAI

from citeqa.exceptions import GenerationError
from citeqa.services.prompts import AnswerPrompt
from citeqa.utils.logger import logger

CHAT_COMPLETIONS_PATH = "/chat/completions"


def base_url_from_endpoint(api_url: str) -> str:
    """
    Turn a chat completions endpoint into the base URL the OpenAI SDK expects.

    The SDK appends /chat/completions itself, so only that suffix is removed:
    https://host/v1/chat/completions -> https://host/v1
    """
    base_url = api_url.rstrip("/")
    if base_url.endswith(CHAT_COMPLETIONS_PATH):
        base_url = base_url[: -len(CHAT_COMPLETIONS_PATH)]
    return base_url.rstrip("/")


class LLMService:
    """Service for generating text through the OpenAI SDK."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = "https://api.deepseek.com/v1/chat/completions",
        model: str = "deepseek-chat",
        timeout_seconds: float = 60.0,
        max_tokens: int = 1200,
        temperature: float = 0.3,
    ):
        """
        Initialize LLM service.

        Args:
            api_key: API key (from LLM_API_KEY env if not provided)
            api_url: Chat completions endpoint URL
            model: Model name to use
            timeout_seconds: Upper bound for one generation call
            max_tokens: Maximum tokens in a response
            temperature: Sampling temperature
        """
        self.api_key = api_key or os.getenv("LLM_API_KEY")
        if not self.api_key:
            raise ValueError("LLM_API_KEY environment variable is required")

        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

        base_url = base_url_from_endpoint(api_url)
        http_client = httpx.AsyncClient(timeout=timeout_seconds, trust_env=False)
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url,
            http_client=http_client,
        )

    async def generate(self, prompt: str, system_message: str = AnswerPrompt.SYSTEM_MESSAGE) -> str:
        """
        Generate a completion for a prompt.

        Args:
            prompt: User prompt
            system_message: System prompt

        Returns:
            Generated text

        Raises:
            GenerationError: If the call fails, times out or returns no text
        """
        start_time = time.time()

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_message},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(f"Generation timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error(f"Error calling LLM API: {str(e)}", exc_info=True)
            raise GenerationError(f"Failed to generate answer: {str(e)}") from e

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("LLM returned an empty response")

        answer = response.choices[0].message.content
        token_usage = None
        if response.usage is not None:
            token_usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.info(
            "LLM response generated",
            extra={
                "token_usage": token_usage,
                "response_time_ms": (time.time() - start_time) * 1000,
                "answer_length": len(answer),
            },
        )
        return answer

    async def close(self):
        """Close HTTP client."""
        await self.client.close()
