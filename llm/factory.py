# llm/factory.py
from __future__ import annotations
import os
from typing import Callable, Dict, List, Optional

from .config import ModelConfig
from .openai_client import OpenAIClient
from .deepseek_client import DeepSeekLLM

Messages = List[Dict[str, str]]
LLM = Callable[[Messages], Dict[str, str]]


def _get_key(env_name: Optional[str], fallbacks: Optional[List[str]] = None) -> Optional[str]:
    if env_name:
        v = os.getenv(env_name)
        if v:
            return v
    if fallbacks:
        for f in fallbacks:
            v = os.getenv(f)
            if v:
                return v
    return None


def _is_gpt5_model(model_name: Optional[str]) -> bool:
    """Heuristic: OpenAI GPT-5 family (Responses API)."""
    if not model_name:
        return False
    return str(model_name).lower().startswith("gpt-5")


def make_llm_from_config(cfg: ModelConfig) -> LLM:
    """
    Returns a callable:
        out = llm(messages)   # -> {"text": "..."}
    Raises RuntimeError when the provider's API key is missing.
    """
    provider = (cfg.provider or "").lower()

    # -------- OpenAI / compatible --------
    if provider in ("openai", "openai_compatible"):
        key = _get_key(cfg.api_key_env, ["OPENAI_API_KEY"])
        if not key:
            raise RuntimeError("OPENAI_API_KEY not set.")

        use_responses_api = bool(cfg.use_responses_api or _is_gpt5_model(cfg.model))
        base_url = cfg.base_url or os.getenv("OPENAI_BASE_URL") or None

        client = OpenAIClient(
            model=cfg.model,
            api_key=key,
            base_url=base_url,
            max_tokens=cfg.max_tokens or 2048,
            # GPT-5 disallows sampling knobs
            temperature=None if use_responses_api else (cfg.temperature if cfg.temperature is not None else 0.1),
            top_p=None if use_responses_api else cfg.top_p,
            timeout=cfg.timeout,
            use_responses_api=use_responses_api,
            extra_inputs=cfg.extra_inputs,
        )

        def _gen(messages: Messages) -> Dict[str, str]:
            return client(messages)

        return _gen

    # -------- DeepSeek (OpenAI-compatible over HTTP) --------
    if provider == "deepseek":
        api_key = _get_key(cfg.api_key_env, ["DEEPSEEK_API_KEY"])
        if not api_key:
            raise RuntimeError("DEEPSEEK_API_KEY not set.")
        client = DeepSeekLLM(
            model=cfg.model,
            api_key=api_key,
            base_url=cfg.base_url or "https://api.deepseek.com",
            timeout=cfg.timeout,
        )

        def _gen(messages: Messages) -> Dict[str, str]:
            return client.generate(
                messages,
                temperature=cfg.temperature if cfg.temperature is not None else 0.1,
                top_p=cfg.top_p if cfg.top_p is not None else 1.0,
                max_tokens=cfg.max_tokens or 2048,
            )

        return _gen

    raise ValueError(f"Unknown provider: {cfg.provider!r}")
