"""
LLM Model Catalogue
Models offered to API clients and the factory that picks a chat client for one.
"""

import logging
from typing import List, Optional, Tuple

from hedge_fund.llm.model_provider import LLMChatter, LLMModelConfig, ModelProvider
from hedge_fund.llm.providers import build_provider

logger = logging.getLogger(__name__)


class LLMModel:
    """A selectable model: display name, API model name and provider."""

    def __init__(self, display_name: str, model_name: str, provider: ModelProvider):
        self.display_name = display_name
        self.model_name = model_name
        self.provider = provider

    def __repr__(self) -> str:
        return f"LLMModel({self.display_name!r}, {self.model_name!r}, {self.provider.value!r})"

    def to_choice_tuple(self) -> Tuple[str, str, str]:
        return (self.display_name, self.model_name, self.provider.value)

    def to_dict(self) -> dict:
        return {
            'display_name': self.display_name,
            'model_name': self.model_name,
            'provider': self.provider.value,
        }

    def is_deepseek(self) -> bool:
        return self.provider == ModelProvider.DEEPSEEK

    def is_gemini(self) -> bool:
        return self.provider == ModelProvider.GEMINI

    def is_ollama(self) -> bool:
        return self.provider == ModelProvider.OLLAMA

    def has_json_mode(self) -> bool:
        """Whether the provider can be asked for a JSON-only response."""
        if self.is_deepseek() or self.is_gemini():
            return False
        if self.is_ollama():
            return "llama3" in self.model_name or "neural-chat" in self.model_name
        return True


# ============================================================================
# CATALOGUES
# ============================================================================

AVAILABLE_MODELS: List[LLMModel] = [
    LLMModel("[anthropic] claude-3.5-haiku", "claude-3-5-haiku-latest", ModelProvider.ANTHROPIC),
    LLMModel("[anthropic] claude-3.5-sonnet", "claude-3-5-sonnet-latest", ModelProvider.ANTHROPIC),
    LLMModel("[anthropic] claude-3-opus", "claude-3-opus-20240229", ModelProvider.ANTHROPIC),
    LLMModel("[deepseek] deepseek-coder", "deepseek-coder", ModelProvider.DEEPSEEK),
    LLMModel("[deepseek] deepseek-chat", "deepseek-chat", ModelProvider.DEEPSEEK),
    LLMModel("[gemini] gemini-1.5-flash", "gemini-1.5-flash-latest", ModelProvider.GEMINI),
    LLMModel("[gemini] gemini-1.5-pro", "gemini-1.5-pro-latest", ModelProvider.GEMINI),
    LLMModel("[groq] llama3-8b", "llama3-8b-8192", ModelProvider.GROQ),
    LLMModel("[groq] llama3-70b", "llama3-70b-8192", ModelProvider.GROQ),
    LLMModel("[groq] mixtral-8x7b", "mixtral-8x7b-32768", ModelProvider.GROQ),
    LLMModel("[openai] gpt-3.5-turbo", "gpt-3.5-turbo", ModelProvider.OPENAI),
    LLMModel("[openai] gpt-4o", "gpt-4o", ModelProvider.OPENAI),
    LLMModel("[openai] gpt-4-turbo", "gpt-4-turbo", ModelProvider.OPENAI),
]

OLLAMA_MODELS: List[LLMModel] = [
    LLMModel("[google] gemma3 (4B)", "gemma3:4b", ModelProvider.OLLAMA),
    LLMModel("[alibaba] qwen3 (4B)", "qwen3:4b", ModelProvider.OLLAMA),
    LLMModel("[meta] llama3.1 (8B)", "llama3.1:latest", ModelProvider.OLLAMA),
    LLMModel("[google] gemma3 (12B)", "gemma3:12b", ModelProvider.OLLAMA),
    LLMModel("[mistral] mistral-small3.1 (24B)", "mistral-small3.1", ModelProvider.OLLAMA),
    LLMModel("[google] gemma3 (27B)", "gemma3:27b", ModelProvider.OLLAMA),
    LLMModel("[alibaba] qwen3 (30B-a3B)", "qwen3:30b-a3b", ModelProvider.OLLAMA),
    LLMModel("[meta] llama-3.3 (70B)", "llama3.3:70b-instruct-q4_0", ModelProvider.OLLAMA),
]


def get_available_models() -> List[LLMModel]:
    return list(AVAILABLE_MODELS)


def get_ollama_models() -> List[LLMModel]:
    return list(OLLAMA_MODELS)


def get_llm_order() -> List[Tuple[str, str, str]]:
    return [model.to_choice_tuple() for model in AVAILABLE_MODELS]


def get_ollama_llm_order() -> List[Tuple[str, str, str]]:
    return [model.to_choice_tuple() for model in OLLAMA_MODELS]


def get_model_info(model_name: str) -> Optional[LLMModel]:
    """
    Look up a catalogue entry by API model name.

    Example:
        >>> get_model_info('gpt-4o').provider
        <ModelProvider.OPENAI: 'OpenAI'>
    """
    for model in AVAILABLE_MODELS + OLLAMA_MODELS:
        if model.model_name == model_name:
            return model
    return None


def get_model(model_config: LLMModelConfig, config) -> LLMChatter:
    """
    Build the chat client for one model configuration.

    Args:
        model_config: Provider, model name and sampling options
        config: Application Config (API keys, Ollama host)

    Returns:
        LLMChatter able to run the completion

    Raises:
        LLMProviderError: Provider not supported, or its API key is missing
    """
    logger.info(
        f"Initializing LLM client for provider: {model_config.provider}, "
        f"model: {model_config.model_name}"
    )
    return build_provider(model_config, config)
