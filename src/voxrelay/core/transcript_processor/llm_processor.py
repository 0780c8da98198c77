import os
import warnings
from dataclasses import dataclass
from typing import Dict, Optional

from litellm import completion, completion_cost

from ...utils.logger import get_logger
from ..errors import EnhancementError
from ..settings.settings import Settings

logger = get_logger(__name__)


# provider id -> (label, default api_base, api key environment variable)
PROVIDERS: Dict[str, tuple] = {
    "openai": ("OpenAI", None, "OPENAI_API_KEY"),
    "gemini": ("Google Gemini", None, "GEMINI_API_KEY"),
    "anthropic": ("Anthropic", None, "ANTHROPIC_API_KEY"),
    "openrouter": ("OpenRouter", None, "OPENROUTER_API_KEY"),
    "ollama": ("Ollama (Local)", "http://localhost:11434", None),
    "custom": ("Custom (OpenAI-compatible)", None, None),
}


@dataclass
class LLMResponse:
    content: str
    cost_usd: Optional[float] = None
    usage: Optional[dict] = (
        None  # token counts: prompt_tokens, completion_tokens, total_tokens
    )


class LLMProcessor:

    @staticmethod
    def format_model_name(model: str, provider: str) -> str:
        known_prefixes = (
            "openrouter/",
            "ollama/",
            "gemini/",
            "openai/",
            "anthropic/",
            "azure/",
        )

        if model.startswith(known_prefixes):
            return model

        prefix_map = {
            "openrouter": "openrouter/",
            "ollama": "ollama/",
            "gemini": "gemini/",
            # OpenAI-compatible servers are addressed through litellm's openai route
            "custom": "openai/",
        }

        prefix = prefix_map.get(provider)
        if prefix:
            return f"{prefix}{model}"

        return model

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMProcessor":
        """Build a processor for the active enhancement provider."""
        provider = settings.enhancement.provider
        provider_settings = settings.enhancement.get_provider_settings(provider)
        _, default_base, env_var = PROVIDERS.get(provider, (provider, None, None))

        if not provider_settings.model:
            raise EnhancementError(f"No model configured for provider '{provider}'")

        api_key = provider_settings.api_key or (
            os.environ.get(env_var) if env_var else None
        )
        if not api_key and env_var:
            raise EnhancementError(f"No API key configured for provider '{provider}'")

        api_base = provider_settings.api_base or default_base
        if provider == "custom" and not api_base:
            raise EnhancementError("Custom provider requires an API base URL")

        return cls(
            model=cls.format_model_name(provider_settings.model, provider),
            api_key=api_key,
            api_base=api_base,
        )

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base

        logger.info(
            f"LLMProcessor initialized with model: {model}, api_base: {api_base}"
        )

    def complete(self, prompt: str, temperature: float) -> LLMResponse:
        """
        Send a fully rendered prompt as a single user message.

        Raises ``EnhancementError`` when the call fails or the model returns
        no text.
        """
        kwargs = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = completion(**kwargs)
        except Exception as e:
            logger.error(f"LLM request failed: {e}", exc_info=True)
            raise EnhancementError(f"Enhancement request failed: {e}") from e

        result_text = response.choices[0].message.content if response.choices else None
        if not result_text or not result_text.strip():
            logger.error("LLM returned an empty response")
            raise EnhancementError("Enhancement returned an empty response")

        try:
            with warnings.catch_warnings():
                warnings.filterwarnings(
                    "ignore",
                    message="Pydantic serializer warnings",
                    category=UserWarning,
                )
                cost = completion_cost(completion_response=response)
        except Exception:
            cost = None

        usage = None
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        result_text = result_text.strip()
        logger.info(
            f"Completion finished: {len(prompt)} -> {len(result_text)} chars, cost=${cost:.6f}"
            if cost
            else f"Completion finished: {len(prompt)} -> {len(result_text)} chars"
        )

        return LLMResponse(content=result_text, cost_usd=cost, usage=usage)
