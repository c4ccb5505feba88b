# nim_forwarder/core/config.py
import os
import logging
from types import MappingProxyType
from typing import Mapping, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from dotenv import load_dotenv
from pathlib import Path

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(' ' * 5 + os.path.basename(__file__))

# Load .env file into environment variables BEFORE loading settings
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path, override=True)
logger.info(f"Attempted to load environment variables from: {env_path}")

SERVICE_NAME = "OpenAI → NVIDIA NIM Proxy"
MODEL_OWNER = "nvidia-nim-proxy"

# Sampling defaults applied when the client omits (or zeroes) a value
DEFAULT_TEMPERATURE = 0.8
DEFAULT_MAX_TOKENS = 8192


class Settings(BaseSettings):
    # Upstream provider
    nim_api_base: str = Field("https://integrate.api.nvidia.com/v1", alias='NIM_API_BASE')
    nim_api_key: Optional[str] = Field(None, alias='NIM_API_KEY')

    # Capability toggles, fixed for the lifetime of the process
    show_reasoning: bool = Field(False, alias='SHOW_REASONING')
    enable_thinking_mode: bool = Field(False, alias='ENABLE_THINKING_MODE')

    # Report a per-category error type instead of the fixed OpenAI literal
    strict_error_types: bool = Field(False, alias='STRICT_ERROR_TYPES')

    @model_validator(mode='after')
    def process_settings(self) -> 'Settings':
        if not self.nim_api_base.startswith(("http://", "https://")):
            logger.warning(f"NIM_API_BASE does not look like an HTTP URL: {self.nim_api_base}")

        if not self.nim_api_key:
            logger.warning("NIM_API_KEY is not configured in .env or environment. Chat completions will fail.")

        logger.info(
            f"Reasoning display: {'on' if self.show_reasoning else 'off'}, "
            f"thinking mode: {'on' if self.enable_thinking_mode else 'off'}"
        )
        return self

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        extra = 'ignore'


# --- MODEL_MAPPING ---
# Client-facing (OpenAI style) model ids -> NVIDIA NIM model ids.
# Order matters: /api/v1/models lists the keys in this order.
MODEL_MAPPING: Mapping[str, str] = MappingProxyType({
    "gpt-3.5-turbo": "nvidia/llama-3.1-nemotron-ultra-253b-v1",
    "gpt-4": "qwen/qwen3-coder-480b-a35b-instruct",
    "gpt-4-turbo": "moonshotai/kimi-k2-instruct-0905",
    "deepseek-v3.1": "deepseek-ai/deepseek-v3.1",
    "claude-3-opus": "openai/gpt-oss-120b",
    "claude-3-sonnet": "openai/gpt-oss-20b",
    "gemini-pro": "qwen/qwen3-next-80b-a3b-thinking",
    "deepseek-3.1-terminus": "deepseek-ai/deepseek-v3.1-terminus",
})

# Used for any client model id missing from MODEL_MAPPING
DEFAULT_UPSTREAM_MODEL = "meta/llama-3.1-8b-instruct"

# Initialize settings once
settings = Settings()
logger.info("Settings loaded successfully.")
