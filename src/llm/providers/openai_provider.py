from __future__ import annotations
import base64
import os
import httpx
from .base import LLMProvider

class OpenAIProvider(LLMProvider):
    def __init__(self):
        self.api_key = os.getenv("OPENAI_API_KEY", "").strip()
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        self.vision_model = os.getenv("OPENAI_VISION_MODEL", self.model).strip()
        self.base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").strip()
        self.timeout_s = float(os.getenv("LLM_TIMEOUT_S", "300"))

        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is missing")

    def _chat(self, payload: dict) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        with httpx.Client(timeout=self.timeout_s) as client:
            r = client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["choices"][0]["message"]["content"] or ""

    def generate(self, *, system: str, user: str, model: str | None = None) -> str:
        payload = {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0.1,
            "max_tokens": 1500,
        }
        return self._chat(payload)

    def describe_image(
        self,
        *,
        image: bytes,
        mime_type: str,
        instruction: str,
        model: str | None = None,
    ) -> str:
        encoded = base64.b64encode(image).decode("ascii")
        payload = {
            "model": model or self.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                        },
                    ],
                }
            ],
            "max_tokens": 1500,
        }
        return self._chat(payload)
