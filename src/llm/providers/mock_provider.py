from __future__ import annotations
import json
from llm.providers.base import LLMProvider

class MockProvider(LLMProvider):
    """Offline provider for local runs without an API key."""

    def generate(self, *, system: str, user: str, model: str | None = None) -> str:
        """
        Returns canned responses based on the prompt content.
        """
        # JSON task-list extraction
        if "JSON array" in system:
            return json.dumps([
                {
                    "taskDescription": "Empty bins",
                    "frequency": "daily",
                    "estimatedDuration": "5 minutes",
                    "area": None,
                },
                {
                    "taskDescription": "Clean toilet and sink",
                    "frequency": "daily",
                    "estimatedDuration": "10 minutes",
                    "area": "bathroom",
                },
                {
                    "taskDescription": "Vacuum carpet",
                    "frequency": "weekly",
                    "estimatedDuration": "15 minutes",
                    "area": "bedroom",
                },
            ])

        # Labeled schedule block
        if "Tasks:" in system:
            return "\n".join([
                "Title: Bedroom Cleaning",
                "Type: Routine",
                "Frequency: weekly",
                "Area: bedrooms",
                "Tasks:",
                "- Dust all surfaces (Frequency: weekly)",
                "- Vacuum carpet (Frequency: weekly)",
                "  Additional notes: move furniture where possible",
                "- Wash curtains (Frequency: quarterly)",
            ])

        # Default fallback
        return ""

    def describe_image(
        self,
        *,
        image: bytes,
        mime_type: str,
        instruction: str,
        model: str | None = None,
    ) -> str:
        return "\n".join([
            "- Wipe mirror (Frequency: daily)",
            "- Clean sink (Frequency: daily)",
            "- Mop floor (Frequency: weekly)",
        ])
