from __future__ import annotations
import base64
import os
import httpx
from .base import LLMProvider

class OllamaProvider(LLMProvider):
    def __init__(self):
        self.model = os.getenv("OLLAMA_MODEL", "llama3.1").strip()
        self.vision_model = os.getenv("OLLAMA_VISION_MODEL", "llava").strip()
        self.base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        self.timeout_s = float(os.getenv("LLM_TIMEOUT_S", "300"))

    def _chat(self, model: str, messages: list) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": model,
            "stream": False,
            "messages": messages,
            "options": {"temperature": 0.1},
        }

        with httpx.Client(timeout=self.timeout_s) as client:
            r = client.post(url, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["message"]["content"]

    def generate(self, *, system: str, user: str, model: str | None = None) -> str:
        return self._chat(
            model or self.model,
            [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )

    def describe_image(
        self,
        *,
        image: bytes,
        mime_type: str,
        instruction: str,
        model: str | None = None,
    ) -> str:
        return self._chat(
            model or self.vision_model,
            [
                {
                    "role": "user",
                    "content": instruction,
                    "images": [base64.b64encode(image).decode("ascii")],
                }
            ],
        )
