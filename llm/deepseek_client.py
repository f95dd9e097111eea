# llm/deepseek_client.py
"""
DeepSeek client (OpenAI-compatible chat endpoint over plain HTTP).
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import os
import requests
from dotenv import load_dotenv


class DeepSeekClient:

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: str = "https://api.deepseek.com",
        max_tokens: int = 2048,
        temperature: float = 0.1,
        top_p: float = 1.0,
        timeout: float = 90.0,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        self.model = model
        self.api_key = api_key or os.getenv("DEEPSEEK_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.timeout = timeout
        self._http = session or requests.Session()

    def __call__(self, messages: List[Dict[str, str]]) -> Dict[str, str]:
        """Direct callable interface"""
        return self.generate(messages)

    def generate(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> Dict[str, str]:
        temp = temperature if temperature is not None else self.temperature
        tp = top_p if top_p is not None else self.top_p
        mt = max_tokens if max_tokens is not None else self.max_tokens

        url = f"{self.base_url}/v1/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.model,
            "messages": messages,
            "temperature": temp,
            "top_p": tp,
            "max_tokens": mt,
        }

        response = self._http.post(url, headers=headers, json=body, timeout=self.timeout)
        if response.status_code != 200:
            raise RuntimeError(f"DeepSeek API error: {response.status_code} {response.text[:200]}")

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise RuntimeError("DeepSeek response missing choices")
        text = ((choices[0].get("message") or {}).get("content") or "").strip()
        return {"text": text}


# For compatibility with code that expects DeepSeekLLM
DeepSeekLLM = DeepSeekClient
