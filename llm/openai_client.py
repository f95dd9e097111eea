# llm/openai_client.py
from __future__ import annotations
from typing import Any, Dict, List, Optional
from openai import OpenAI


class OpenAIClient:
    """
    OpenAI client returning plain text completions:
      • Chat Completions API (gpt-4-turbo, gpt-4o, gpt-4o-mini, ...)
      • Responses API (gpt-5 family)

    Usage:
        client = OpenAIClient(model="gpt-4-turbo-preview", api_key="sk-...", temperature=0.1)
        out = client(messages)   # -> {"text": "..."}

    The formatter parses the text itself, so no response_format is requested:
    the model's LaTeX backslashes need repairing before they are valid JSON.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        max_tokens: Optional[int] = 2048,
        temperature: Optional[float] = 0.1,
        top_p: Optional[float] = 1.0,
        timeout: float = 90.0,
        use_responses_api: bool = False,
        extra_inputs: Optional[Dict[str, Any]] = None,
        sdk_client: Any = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.use_responses_api = bool(use_responses_api or (model or "").startswith("gpt-5"))
        self.extra_inputs = extra_inputs or {}

        if sdk_client is not None:
            self.client = sdk_client
        elif base_url:
            self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        else:
            self.client = OpenAI(api_key=api_key, timeout=timeout)

    # ----- Public callable -----
    def __call__(self, messages: List[Dict[str, str]]) -> Dict[str, str]:
        if self.use_responses_api:
            return {"text": self._call_responses(messages)}
        return {"text": self._call_chat(messages)}

    # ----- Internal: Chat Completions API -----
    def _call_chat(self, messages: List[Dict[str, str]]) -> str:
        kwargs: Dict[str, Any] = dict(
            model=self.model,
            messages=messages,
        )
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.top_p is not None:
            kwargs["top_p"] = self.top_p
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens

        resp = self.client.chat.completions.create(**kwargs)
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()

    # ----- Internal: Responses API -----
    def _call_responses(self, messages: List[Dict[str, str]]) -> str:
        """
        Responses API (gpt-5 family). Temperature/top_p are omitted since
        GPT-5 rejects them; reasoning/text options come from extra_inputs.
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "input": messages,
        }
        if self.max_tokens is not None:
            kwargs["max_output_tokens"] = self.max_tokens

        reasoning = self.extra_inputs.get("reasoning")
        text_opts = self.extra_inputs.get("text")
        if reasoning:
            kwargs["reasoning"] = reasoning
        if text_opts:
            kwargs["text"] = text_opts

        resp = self.client.responses.create(**kwargs)

        output_text = getattr(resp, "output_text", None)
        if output_text:
            return output_text.strip()

        parts = []
        for block in getattr(resp, "output", []) or []:
            for c in getattr(block, "content", []) or []:
                if getattr(c, "type", "") == "output_text":
                    parts.append(getattr(c, "text", "") or "")
        return "".join(parts).strip()


__all__ = ["OpenAIClient"]
