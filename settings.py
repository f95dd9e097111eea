# settings.py
from __future__ import annotations
import os
from typing import Dict, Mapping, Optional
from dotenv import load_dotenv
from pydantic import BaseModel
from llm.config import ModelConfig


class ConfigError(RuntimeError):
    """Missing or invalid startup configuration."""


# ---------- Settings ----------

class Settings(BaseModel):
    DB_NAME: str = "banks"
    COLLECTION: str = "Question"
    GROUP_FIELD: str = "chapter"

    # pause after each record, for the model API rate limit
    PACING_SECONDS: float = 0.5

    MODELS: Dict[str, ModelConfig] = {
        # -------- OpenAI (Chat Completions) --------
        "gpt4-turbo": ModelConfig(
            provider="openai", model="gpt-4-turbo-preview",
            api_key_env="OPENAI_API_KEY",
            temperature=0.1, max_tokens=2048,
        ),
        "gpt35-turbo": ModelConfig(
            provider="openai", model="gpt-3.5-turbo",
            api_key_env="OPENAI_API_KEY",
            temperature=0.1, max_tokens=2048,
        ),
        "gpt4o": ModelConfig(
            provider="openai", model="gpt-4o",
            api_key_env="OPENAI_API_KEY",
            temperature=0.1, max_tokens=2048,
        ),
        "gpt4o-mini": ModelConfig(
            provider="openai", model="gpt-4o-mini",
            api_key_env="OPENAI_API_KEY",
            temperature=0.1, max_tokens=2048,
        ),

        # -------- OpenAI (Responses API), GPT-5 family --------
        "gpt-5-mini": ModelConfig(
            provider="openai", model="gpt-5-mini",
            api_key_env="OPENAI_API_KEY",
            max_tokens=4096,
            use_responses_api=True,
            extra_inputs={
                "reasoning": {"effort": "low"},
                "text": {"verbosity": "low"},
            },
        ),

        # -------- DeepSeek --------
        "deepseek": ModelConfig(
            provider="deepseek", model="deepseek-chat",
            api_key_env="DEEPSEEK_API_KEY",
            base_url="https://api.deepseek.com",
            temperature=0.1, top_p=0.95, max_tokens=2048,
        ),
    }

    # defaults; override via CLI
    MODEL_KEY: str = "gpt4-turbo"


settings = Settings()


# ---------- Runtime secrets ----------

class RuntimeConfig(BaseModel):
    mongodb_uri: str
    db_name: str
    collection: str


def load_runtime_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    db_name: Optional[str] = None,
    collection: Optional[str] = None,
) -> RuntimeConfig:
    """
    Read store settings from the environment (after loading .env).
    The model API key is checked by llm.factory when the client is built.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    uri = (env.get("MONGODB_URI") or "").strip()
    if not uri:
        raise ConfigError("MONGODB_URI is not defined in the environment or .env file")

    return RuntimeConfig(
        mongodb_uri=uri,
        db_name=db_name or env.get("MONGODB_DB") or settings.DB_NAME,
        collection=collection or env.get("MONGODB_COLLECTION") or settings.COLLECTION,
    )
