"""LLM provider abstraction for the memory engine."""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def complete_json(
        self,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """Generate a JSON completion for the given messages."""
        pass

    def complete_structured(
        self,
        messages: List[Dict[str, str]],
        schema: Type[SchemaT],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> SchemaT:
        """
        Generate a completion that must conform to ``schema``.

        Raises:
            pydantic.ValidationError: if the answer does not validate.
                There is no best-effort fallback.
        """
        response = self.complete_json(
            messages, max_tokens=max_tokens, temperature=temperature
        )
        return schema.model_validate(response)


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible LLM provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 0,
    ):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Model to use for completions
            base_url: Base URL for OpenAI-compatible API
            timeout: Per-request timeout in seconds
            max_retries: Client-level retries (0: retries belong to the caller)
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self.base_url = base_url

        if not self.api_key:
            raise ValueError("OpenAI API key not provided and OPENAI_API_KEY not set")

        try:
            from openai import OpenAI

            self.client = OpenAI(
                api_key=self.api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )
        except ImportError:
            raise ImportError(
                "openai package not installed. Install with: pip install openai"
            )

    def complete_json(
        self,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """Generate a JSON completion using OpenAI."""
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Model returned non-JSON content (%d chars)", len(content))
            # Keep the raw text so schema validation reports it
            return {"raw": content}


ScriptedResponse = Union[Dict[str, Any], str, Callable[[str], Any], Exception]


class MockProvider(LLMProvider):
    """
    Scripted LLM provider for testing without API calls.

    Responses are looked up by case-insensitive substring match against the
    last message. A response may be a dict, a string, a callable taking the
    prompt, or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[str, ScriptedResponse]] = None):
        """
        Initialize the mock provider.

        Args:
            responses: Dict mapping prompt patterns to mock responses
        """
        self.responses = responses or {}
        self.prompts: List[str] = []

    def _lookup(self, messages: List[Dict[str, str]]) -> Any:
        prompt = messages[-1].get("content", "") if messages else ""
        self.prompts.append(prompt)
        for pattern, response in self.responses.items():
            if pattern.lower() in prompt.lower():
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(prompt)
                return response
        return None

    def complete_json(
        self,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """Return a mock JSON completion."""
        response = self._lookup(messages)
        if response is None:
            return {}
        if isinstance(response, str):
            return json.loads(response)
        return response


def get_llm_provider(
    provider: str = "openai",
    api_key: Optional[str] = None,
    model: str = "gpt-4o-mini",
    **kwargs,
) -> LLMProvider:
    """
    Factory function to get an LLM provider.

    Args:
        provider: Provider name ("openai" or "mock")
        api_key: API key for the provider
        model: Model to use
        **kwargs: Additional provider-specific arguments

    Returns:
        LLMProvider instance
    """
    if provider == "openai":
        return OpenAIProvider(api_key=api_key, model=model, **kwargs)
    elif provider == "mock":
        return MockProvider(responses=kwargs.get("responses"))
    else:
        raise ValueError(f"Unknown provider: {provider}")
