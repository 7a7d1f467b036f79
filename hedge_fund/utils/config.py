"""
Configuration Management
Loads environment variables and validates required API keys.
"""

from dotenv import load_dotenv
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

# Project root holds the optional .env file
project_root = Path(__file__).parent.parent.parent
env_path = project_root / '.env'


def load_environment() -> None:
    if env_path.exists():
        load_dotenv(env_path)
        logger.info(f"Loaded environment variables from {env_path}")
    else:
        logger.warning(f".env file not found at {env_path}. Using environment variables only.")
        load_dotenv()


# ============================================================================
# CONFIG VALUE
# ============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration, shared by every node and request.

    Example:
        >>> config = Config(financial_datasets_api_key='fd-key')
        >>> config.port
        8080
    """

    # LLM providers
    anthropic_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    ollama_host: str = 'http://localhost:11434'

    # Market data
    financial_datasets_api_key: Optional[str] = None
    financial_datasets_base_url: str = 'https://api.financialdatasets.ai'

    # Server
    host: str = '127.0.0.1'
    port: int = 8080
    log_level: str = 'INFO'

    @classmethod
    def load(cls, load_env_file: bool = True) -> "Config":
        """
        Build a Config from the environment (and the project .env file).

        Args:
            load_env_file: Read the project-root .env before reading variables

        Returns:
            Config populated from environment variables
        """
        if load_env_file:
            load_environment()

        return cls(
            anthropic_api_key=os.getenv('ANTHROPIC_API_KEY'),
            deepseek_api_key=os.getenv('DEEPSEEK_API_KEY'),
            groq_api_key=os.getenv('GROQ_API_KEY'),
            google_api_key=os.getenv('GOOGLE_API_KEY'),
            openai_api_key=os.getenv('OPENAI_API_KEY'),
            ollama_host=os.getenv('OLLAMA_HOST', 'http://localhost:11434'),
            financial_datasets_api_key=os.getenv('FINANCIAL_DATASETS_API_KEY'),
            financial_datasets_base_url=os.getenv(
                'FINANCIAL_DATASETS_BASE_URL', 'https://api.financialdatasets.ai'
            ),
            host=os.getenv('HOST', '127.0.0.1'),
            port=int(os.getenv('PORT', '8080')),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
        )


# ============================================================================
# VALIDATION
# ============================================================================

def validate_config(config: Config) -> None:
    """
    Validate that all required configuration is present.

    Only the market data key is strictly required; LLM keys are checked
    when a provider is actually used.

    Raises:
        ValueError: If required API keys are missing

    Example:
        >>> validate_config(Config.load())
        >>> # Raises ValueError if keys missing
    """
    missing_keys = []

    if not config.financial_datasets_api_key:
        missing_keys.append('FINANCIAL_DATASETS_API_KEY')

    if missing_keys:
        raise ValueError(
            f"Missing required API keys in .env file: {', '.join(missing_keys)}\n"
            f"Please copy .env.example to .env and add your API keys."
        )

    logger.info("Configuration validated successfully")


def get_config_summary(config: Config) -> Dict[str, object]:
    """
    Get configuration summary for debugging.

    Returns:
        Dict with configuration status (keys reported as present/absent only)
    """
    return {
        'anthropic_key_present': bool(config.anthropic_api_key),
        'deepseek_key_present': bool(config.deepseek_api_key),
        'groq_key_present': bool(config.groq_api_key),
        'google_key_present': bool(config.google_api_key),
        'openai_key_present': bool(config.openai_api_key),
        'financial_datasets_key_present': bool(config.financial_datasets_api_key),
        'ollama_host': config.ollama_host,
        'host': config.host,
        'port': config.port,
        'log_level': config.log_level,
    }
