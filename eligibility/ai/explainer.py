import os
import json
import logging
from typing import Dict, Any, Optional
import openai
from dotenv import load_dotenv

from .prompt_builder import build_system_prompt, build_user_prompt

load_dotenv()

logger = logging.getLogger(__name__)


class AIExplainer:
    """Optional narrative over a RecommendationResult. Never alters engine output."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.client = None
        if self.api_key:
            self.client = openai.OpenAI(api_key=self.api_key)

        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.max_tokens = 700
        self.temperature = 0.3

        # recommendation key -> response
        self.cache: Dict[str, Dict[str, Any]] = {}

    def get_explanation(self, cache_key: str, lead_inputs: Dict[str, Any], recommendation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Narrate a recommendation.
        Returns None if the API key is missing or the call fails.
        """
        if not self.client:
            logger.warning("⚠️ OpenAI API key not found. Skipping AI explanation.")
            return None

        if cache_key in self.cache:
            return self.cache[cache_key]

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": build_system_prompt()},
                    {"role": "user", "content": build_user_prompt(lead_inputs, recommendation)}
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"}
            )

            content = response.choices[0].message.content
            if not content:
                return None

            parsed = json.loads(content)
            self.cache[cache_key] = parsed
            return parsed

        except (openai.OpenAIError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error generating AI explanation: {e}")
            return None

# Singleton instance
explainer = AIExplainer()
