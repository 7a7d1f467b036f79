"""
LLM Providers
Chat-completion clients over aiohttp, plus the helpers nodes use to call them.

Groq, OpenAI, DeepSeek and Ollama all speak the OpenAI chat-completions
protocol, so one client covers the four of them. Anthropic and Gemini are
listed in the catalogue but have no client yet.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import aiohttp

from hedge_fund.llm.model_provider import (
    ChatMessage,
    LLMChatter,
    LLMModelConfig,
    LLMResponse,
    ModelProvider,
    messages_to_payload,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 120

PROVIDER_BASE_URLS = {
    ModelProvider.GROQ: 'https://api.groq.com/openai/v1',
    ModelProvider.OPENAI: 'https://api.openai.com/v1',
    ModelProvider.DEEPSEEK: 'https://api.deepseek.com/v1',
}


class LLMProviderError(Exception):
    """A provider could not be built or could not be reached."""


# ============================================================================
# OPENAI-COMPATIBLE CLIENT
# ============================================================================

class OpenAICompatibleProvider(LLMChatter):
    """
    Client for any endpoint implementing POST {base_url}/chat/completions.

    Non-2xx responses are logged and returned as an "Error: ..." content
    string; the caller's JSON parsing then fails and it falls back to its
    default answer. Network failures raise LLMProviderError.
    """

    def __init__(self, provider: ModelProvider, base_url: str, api_key: Optional[str] = None,
                 json_mode: bool = False, session: Optional[aiohttp.ClientSession] = None):
        self.provider = provider
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.api_key = api_key
        self.json_mode = json_mode
        self.session = session

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, messages: List[ChatMessage], model_config: LLMModelConfig) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'model': model_config.model_name,
            'messages': messages_to_payload(messages),
        }
        if model_config.temperature is not None:
            payload['temperature'] = model_config.temperature
        if model_config.max_tokens is not None:
            payload['max_tokens'] = model_config.max_tokens
        if model_config.top_p is not None:
            payload['top_p'] = model_config.top_p
        if self.json_mode:
            payload['response_format'] = {'type': 'json_object'}
        return payload

    async def _post(self, session: aiohttp.ClientSession, payload: Dict[str, Any]) -> LLMResponse:
        async with session.post(
            self.url,
            json=payload,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
        ) as response:
            if response.status != 200:
                body = await response.text()
                logger.error(f"Error getting response from {self.provider}: {response.status} {body[:200]}")
                return LLMResponse(content=f"Error: {self.provider} returned status {response.status}")

            data = await response.json(content_type=None)

        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError):
            logger.error(f"Unexpected completion payload from {self.provider}: {str(data)[:200]}")
            return LLMResponse(content=f"Error: malformed response from {self.provider}")

        return LLMResponse(content=content or "")

    async def chat(self, messages: List[ChatMessage], model_config: LLMModelConfig) -> LLMResponse:
        payload = self._payload(messages, model_config)
        try:
            if self.session is not None:
                return await self._post(self.session, payload)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, payload)
        except aiohttp.ClientError as e:
            raise LLMProviderError(f"{self.provider} request failed: {e}") from e


# ============================================================================
# FACTORY
# ============================================================================

def _api_key_for(provider: ModelProvider, model_config: LLMModelConfig, config) -> Optional[str]:
    if model_config.api_key:
        return model_config.api_key
    keys = {
        ModelProvider.GROQ: getattr(config, 'groq_api_key', None),
        ModelProvider.OPENAI: getattr(config, 'openai_api_key', None),
        ModelProvider.DEEPSEEK: getattr(config, 'deepseek_api_key', None),
        ModelProvider.ANTHROPIC: getattr(config, 'anthropic_api_key', None),
        ModelProvider.GEMINI: getattr(config, 'google_api_key', None),
    }
    return keys.get(provider)


def build_provider(model_config: LLMModelConfig, config,
                   session: Optional[aiohttp.ClientSession] = None) -> LLMChatter:
    """
    Build the chat client for model_config.provider.

    Raises:
        LLMProviderError: Unsupported provider, or missing API key for a hosted one
    """
    provider = model_config.provider

    if provider in (ModelProvider.ANTHROPIC, ModelProvider.GEMINI):
        raise LLMProviderError(f"{provider} client not yet implemented")

    # Deferred: hedge_fund.llm.models imports this module
    from hedge_fund.llm.models import get_model_info
    info = get_model_info(model_config.model_name)
    json_mode = bool(info and info.provider == provider and info.has_json_mode())

    if provider == ModelProvider.OLLAMA:
        base_url = model_config.base_url or f"{getattr(config, 'ollama_host', 'http://localhost:11434').rstrip('/')}/v1"
        logger.info(f"Ollama configured with base_url: {base_url}")
        return OpenAICompatibleProvider(provider, base_url, json_mode=json_mode, session=session)

    api_key = _api_key_for(provider, model_config, config)
    if not api_key:
        raise LLMProviderError(f"Missing API key for {provider}")

    base_url = model_config.base_url or PROVIDER_BASE_URLS[provider]
    return OpenAICompatibleProvider(provider, base_url, api_key=api_key, json_mode=json_mode, session=session)


# ============================================================================
# HELPERS FOR NODES
# ============================================================================

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def parse_json_response(text: str) -> Optional[Any]:
    """
    Parse an LLM reply as JSON, accepting a ```json fenced block.

    Returns:
        Decoded value, or None if nothing parseable was found

    Example:
        >>> parse_json_response('```json\\n{"signal": "bullish"}\\n```')
        {'signal': 'bullish'}
    """
    if not text:
        return None

    candidates = [text.strip()]
    fenced = _FENCE_PATTERN.search(text)
    if fenced:
        candidates.insert(0, fenced.group(1))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    start, end = text.find('{'), text.rfind('}')
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass

    return None


async def call_llm(messages: List[ChatMessage], model_name: str, model_provider: str, config,
                   temperature: Optional[float] = None, max_tokens: Optional[int] = None,
                   top_p: Optional[float] = None) -> str:
    """
    Run one completion and return its text.

    Args:
        messages: System/user messages
        model_name: API model name (e.g. 'gpt-4o')
        model_provider: Provider name, case-insensitive
        config: Application Config
        temperature, max_tokens, top_p: Optional sampling options

    Raises:
        ValueError: Unknown provider name
        LLMProviderError: Provider unavailable
    """
    model_config = LLMModelConfig(
        provider=ModelProvider.from_str(model_provider),
        model_name=model_name,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
    )
    client = build_provider(model_config, config)
    response = await client.chat(messages, model_config)
    return response.content
