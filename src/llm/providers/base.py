from __future__ import annotations
from abc import ABC, abstractmethod

class LLMProvider(ABC):
    @abstractmethod
    def generate(self, *, system: str, user: str, model: str | None = None) -> str:
        """
        Must return the model output as TEXT (parsing/repair happens in the extractors).
        """
        raise NotImplementedError

    @abstractmethod
    def describe_image(
        self,
        *,
        image: bytes,
        mime_type: str,
        instruction: str,
        model: str | None = None,
    ) -> str:
        """
        Vision call: return the model's free-text answer about the image.
        """
        raise NotImplementedError
