from typing import Sequence
import asyncio
import json

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..integrations.base import GenerativeTextAdapter
from ..models.analytics import PatternAnalysis
from ..models.standup import StandupRecord
from ..utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_WINDOW = 5

UNPARSED_ANALYSIS = PatternAnalysis(
    trends=["Analysis completed"],
    concerns=[],
    recommendations=["Continue current work patterns"]
)
UNAVAILABLE_ANALYSIS = PatternAnalysis(
    trends=["Unable to analyze patterns"],
    concerns=["AI analysis unavailable"],
    recommendations=["Manual review recommended"]
)


class PatternAnalysisAgent:
    """Asks the model for a qualitative read of a member's recent standups"""

    def __init__(self, text_adapter: GenerativeTextAdapter, settings: Settings):
        self.text_adapter = text_adapter
        self.settings = settings

    def build_prompt(
        self,
        member_id: str,
        current: StandupRecord,
        history: Sequence[StandupRecord]
    ) -> str:
        recent = [record.model_dump(mode="json") for record in history[-HISTORY_WINDOW:]]

        return f"""Analyze the standup patterns for team member {member_id} and provide insights.

Current Standup:
{json.dumps(current.model_dump(mode="json"), indent=2)}

Historical Data (last {HISTORY_WINDOW} standups):
{json.dumps(recent, indent=2)}

Provide analysis on:
1. Productivity trends
2. Recurring blockers
3. Task completion patterns
4. PR merge patterns
5. Areas for improvement

Return insights as a JSON object with categories: trends, concerns, recommendations."""

    async def analyze(
        self,
        member_id: str,
        current: StandupRecord,
        history: Sequence[StandupRecord]
    ) -> PatternAnalysis:
        """Pattern analysis; falls back to canned results on any failure"""
        prompt = self.build_prompt(member_id, current, history)

        try:
            content = await asyncio.wait_for(
                self.text_adapter.invoke(prompt, max_tokens=1500, temperature=0.5),
                timeout=self.settings.question_timeout_seconds
            )
        except Exception as e:
            logger.warning(f"Pattern analysis unavailable for {member_id}: {repr(e)}")
            return UNAVAILABLE_ANALYSIS.model_copy(deep=True)

        try:
            return PatternAnalysis.model_validate_json(content)
        except (PydanticValidationError, TypeError) as e:
            logger.info(f"Pattern analysis response not structured: {str(e)}")
            return UNPARSED_ANALYSIS.model_copy(deep=True)
