from typing import Any, List, Optional, Sequence
import asyncio
import json
import re

from ..config import Settings
from ..integrations.base import GenerativeTextAdapter
from ..models.standup import LinkedReview, LinkedTask, StandupRecord, is_meaningful_blocker
from ..utils.logging import get_logger

logger = get_logger(__name__)

MAX_QUESTIONS = 5
CONTEXT_ITEMS_LIMIT = 5
BLOCKER_QUOTE_LENGTH = 50
OPEN_REVIEWS_THRESHOLD = 2
TASKS_THRESHOLD = 5

ENUMERATION_PREFIX = re.compile(r"^\d+[.)]\s*")
BULLET_PREFIX = re.compile(r"^[-*•]\s*")

DEFAULT_QUESTIONS = (
    "Are there any dependencies on other team members that might affect your plan for today?",
    "Do you need any additional resources or support to complete your planned work?",
    "Are there any risks or concerns about meeting your sprint commitments?",
)


class QuestionGenerator:
    """Generates follow-up questions for a freshly submitted standup.

    The generative-text adapter is only a best-effort source: whatever it
    does (raise, time out, return garbage) the caller still gets between one
    and five questions from the deterministic fallback.
    """

    def __init__(self, text_adapter: Optional[GenerativeTextAdapter], settings: Settings):
        self.text_adapter = text_adapter
        self.settings = settings

    def get_prompt(self, context: str) -> str:
        return f"""You are an AI assistant helping with daily standup meetings. Based on the following information, generate 3-5 intelligent follow-up questions that a scrum master or team lead would ask.

Context:
{context}

Focus on:
1. Incomplete or delayed tasks
2. Unmerged PRs with many comments
3. Recurring blockers
4. Dependencies between team members
5. Risk identification
6. Progress tracking

Generate questions that are:
- Specific and actionable
- Professional and supportive
- Focused on removing blockers
- Aimed at improving team productivity

Return only the questions as a JSON array of strings, no additional text."""

    async def generate_follow_up_questions(
        self,
        current: StandupRecord,
        previous: Sequence[StandupRecord],
        tasks: Sequence[LinkedTask],
        reviews: Sequence[LinkedReview]
    ) -> List[str]:
        """Return 1-5 follow-up questions; never raises on adapter failure."""

        questions: Optional[List[str]] = None

        if self.text_adapter is not None and self.settings.enable_ai_suggestions:
            try:
                questions = await self._generate_with_model(current, previous, tasks, reviews)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Question generation timed out after "
                    f"{self.settings.question_timeout_seconds}s for {current.member_id}"
                )
            except Exception as e:
                logger.warning(f"Question generation failed for {current.member_id}: {str(e)}")

        if not questions:
            logger.info(f"Using fallback questions for {current.member_id}")
            questions = self.generate_fallback_questions(current, tasks, reviews)

        return questions[:MAX_QUESTIONS]

    async def _generate_with_model(
        self,
        current: StandupRecord,
        previous: Sequence[StandupRecord],
        tasks: Sequence[LinkedTask],
        reviews: Sequence[LinkedReview]
    ) -> Optional[List[str]]:
        context = self.build_context(current, previous, tasks, reviews)
        prompt = self.get_prompt(context)

        text = await asyncio.wait_for(
            self.text_adapter.invoke(prompt, max_tokens=1000, temperature=0.7),
            timeout=self.settings.question_timeout_seconds
        )

        questions = self.parse_response(text)
        if questions is None:
            logger.warning("Model response held no usable questions")
        return questions

    def build_context(
        self,
        current: StandupRecord,
        previous: Sequence[StandupRecord],
        tasks: Sequence[LinkedTask],
        reviews: Sequence[LinkedReview]
    ) -> str:
        """Format the submission and its surroundings for the model"""

        lines = [
            f"Team Member: {current.member_id}",
            f"Date: {current.timestamp}",
            "",
            "CURRENT STANDUP:",
            f"Yesterday: {current.yesterday}",
            f"Today: {current.today}",
            f"Blockers: {current.blockers}",
            "",
        ]

        if tasks:
            lines.append(f"TASKS ({len(tasks)} total):")
            for index, task in enumerate(tasks[:CONTEXT_ITEMS_LIMIT], start=1):
                lines.append(f"{index}. {task.title or task.id} - Status: {task.status}")
            lines.append("")

        if reviews:
            lines.append(f"PULL REQUESTS ({len(reviews)} total):")
            for index, review in enumerate(reviews[:CONTEXT_ITEMS_LIMIT], start=1):
                lines.append(
                    f"{index}. {review.title} - State: {review.state}, "
                    f"Comments: {review.comment_count}"
                )
            lines.append("")

        if previous:
            latest = max(previous, key=lambda record: record.timestamp)
            lines.append("RECENT HISTORY:")
            lines.append(f"Last standup blockers: {latest.blockers or 'None'}")
            lines.append(f"Previous updates count: {len(previous)}")
            lines.append("")

        return "\n".join(lines)

    def parse_response(self, text: Any) -> Optional[List[str]]:
        """Extract questions from model output, or None when unusable"""
        if not isinstance(text, str) or not text.strip():
            return None

        content = text.strip()
        fence_start = content.find("```json")
        if fence_start != -1:
            fence_end = content.find("```", fence_start + 7)
            if fence_end != -1:
                content = content[fence_start + 7:fence_end].strip()

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            parsed = self.extract_questions_from_text(text)

        if not isinstance(parsed, list) or not parsed:
            return None
        if not all(isinstance(item, str) and item.strip() for item in parsed):
            return None
        return [item.strip() for item in parsed]

    def extract_questions_from_text(self, text: str) -> List[str]:
        """Pick question lines out of free-form text"""
        questions = []

        for line in text.split("\n"):
            trimmed = line.strip()
            if trimmed.endswith("?") and len(trimmed) > 10:
                cleaned = ENUMERATION_PREFIX.sub("", trimmed)
                cleaned = BULLET_PREFIX.sub("", cleaned).strip()
                if len(cleaned) > 5:
                    questions.append(cleaned)

        return questions

    def generate_fallback_questions(
        self,
        current: StandupRecord,
        tasks: Sequence[LinkedTask],
        reviews: Sequence[LinkedReview]
    ) -> List[str]:
        """Deterministic questions used when the model is unavailable"""
        questions = []

        if is_meaningful_blocker(current.blockers):
            blocker = current.blockers.strip()
            quoted = blocker[:BLOCKER_QUOTE_LENGTH]
            if len(blocker) > BLOCKER_QUOTE_LENGTH:
                quoted += "..."
            questions.append(f'What specific help do you need to resolve the blocker: "{quoted}"?')
            questions.append("How long do you estimate it will take to resolve your current blockers?")

        open_reviews = [review for review in reviews if review.is_open]
        if len(open_reviews) > OPEN_REVIEWS_THRESHOLD:
            questions.append(
                f"You have {len(open_reviews)} open PRs. Which ones are priority for review and merge?"
            )

        if len(tasks) > TASKS_THRESHOLD:
            questions.append(f"With {len(tasks)} assigned tasks, how are you prioritizing your work?")

        if not questions:
            questions.extend(DEFAULT_QUESTIONS)

        return questions[:MAX_QUESTIONS]
