"""
LLM Provider Types
Provider enum, chat message, per-call model configuration and the chat interface
every provider client implements.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ModelProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "Anthropic"
    DEEPSEEK = "DeepSeek"
    GEMINI = "Gemini"
    GROQ = "Groq"
    OPENAI = "OpenAI"
    OLLAMA = "Ollama"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_str(cls, value: str) -> "ModelProvider":
        """
        Parse a provider name case-insensitively.

        Raises:
            ValueError: If the name does not match a known provider

        Example:
            >>> ModelProvider.from_str(' groq ')
            <ModelProvider.GROQ: 'Groq'>
        """
        normalized = (value or "").strip().lower()
        for provider in cls:
            if provider.value.lower() == normalized:
                return provider
        raise ValueError(f"Unknown model provider: {value}")


@dataclass
class ChatMessage:
    role: str      # 'system', 'user' or 'assistant'
    content: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class LLMModelConfig:
    provider: ModelProvider
    model_name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None


@dataclass
class LLMResponse:
    content: str


class LLMChatter(ABC):
    """A client able to run one chat completion."""

    @abstractmethod
    async def chat(self, messages: List[ChatMessage], model_config: LLMModelConfig) -> LLMResponse:
        pass


def messages_to_payload(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    return [message.to_dict() for message in messages]
