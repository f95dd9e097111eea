# llm/config.py
from __future__ import annotations
from typing import Any, Dict, Optional
from pydantic import BaseModel


class ModelConfig(BaseModel):
    provider: str
    model: str
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    seed: Optional[int] = None
    timeout: float = 90.0
    use_responses_api: bool = False
    extra_inputs: Optional[Dict[str, Any]] = None
