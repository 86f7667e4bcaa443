"""OpenAI-backed advisory reviewer."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from .base import AdvisoryModel
from ..core.config import settings

SYSTEM_PROMPT = (
    "You are an experienced German property appraiser reviewing an automated "
    "valuation. Return only valid JSON."
)


class OpenAIAdvisor(AdvisoryModel):
    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        api_key = settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        if client is None and not api_key:
            raise RuntimeError("OPENAI_API_KEY missing from settings")
        if not self.model:
            raise RuntimeError("OPENAI_MODEL missing from settings")
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout or settings.ADVISORY_TIMEOUT)

    async def review(self, features: Dict[str, Any]) -> Dict[str, Any]:
        """Ask the chat completion API for a second opinion on the valuation.

        Parameters
        ----------
        features: Dict[str, Any]
            Property input, valuation, land value, address and region.

        Returns
        -------
        Dict[str, Any]
            Parsed JSON with status, confidence, recommended_value and rationale.
        """
        prompt = (
            "Review this property valuation. Respond ONLY with a JSON object containing keys "
            "status (one of ok, minor-concern, major-concern), confidence (0-1), "
            "recommended_value (integer EUR or null) and rationale (one or two sentences). "
            f"Address: {features.get('address')}. Federal state: {features.get('region')}. "
            f"Property: {json.dumps(features.get('input'), ensure_ascii=False)}. "
            f"Land value: {json.dumps(features.get('land_value'), ensure_ascii=False)}. "
            f"Valuation: {json.dumps(features.get('valuation'), ensure_ascii=False)}"
        )

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0,
                response_format={"type": "json_object"},
            )
            content = completion.choices[0].message.content or ""
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise RuntimeError("Advisory reply is not valid JSON") from exc

        if not isinstance(data, dict) or "status" not in data:
            raise ValueError("Malformed advisory reply: missing status")
        return data
