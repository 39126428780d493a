from __future__ import annotations

import logging

from pydantic import ValidationError

from smartcv.core.tasks import TaskOrchestrator
from smartcv.core.workers import ANALYZE_CV, GENERATE_COVER_LETTER, PARSE_QUERY
from smartcv.errors import TaskError
from smartcv.llm.router import DEFAULT_HELP, FALLBACK_COVER_LETTER
from smartcv.types import ApplyJob, CVScore, IntentAdapter, SearchJobs, UnknownIntent

logger = logging.getLogger(__name__)

MIN_COVER_LETTER_CHARS = 50


def fallback_intent() -> UnknownIntent:
    return UnknownIntent(action="unknown", response=DEFAULT_HELP)


def fallback_score(reason: str = "CV analysis failed") -> CVScore:
    return CVScore(skills=0, experience=0, education=0, summary=reason)


class AIAssistant:
    """Typed boundary over the AI tasks; callers never see raw model output."""

    def __init__(self, tasks: TaskOrchestrator):
        self.tasks = tasks

    def parse_intent(self, text: str, *, identifier: str | None = None) -> SearchJobs | ApplyJob | UnknownIntent:
        try:
            raw = self.tasks.run(PARSE_QUERY, {"message": text}, identifier=identifier)
        except TaskError as exc:
            logger.error("parse-query failed identifier=%s error=%s", identifier, exc)
            return fallback_intent()

        try:
            return IntentAdapter.validate_python(raw)
        except ValidationError:
            logger.error("Invalid parse-query result identifier=%s result=%r", identifier, raw)
            response = raw.get("response") if isinstance(raw, dict) else None
            if isinstance(response, str) and response.strip():
                return UnknownIntent(action="unknown", response=response)
            return fallback_intent()

    def score_cv(self, cv_text: str, *, identifier: str | None = None) -> CVScore:
        try:
            raw = self.tasks.run(ANALYZE_CV, {"cv_text": cv_text}, identifier=identifier)
        except TaskError as exc:
            logger.error("analyze-cv failed identifier=%s error=%s", identifier, exc)
            return fallback_score()

        try:
            return CVScore.model_validate(raw)
        except ValidationError:
            logger.error("Invalid analyze-cv result identifier=%s result=%r", identifier, raw)
            return fallback_score("CV analysis failed due to invalid response format")

    def write_cover_letter(self, cv_text: str, *, identifier: str | None = None) -> str:
        try:
            letter = self.tasks.run(GENERATE_COVER_LETTER, {"cv_text": cv_text}, identifier=identifier)
        except TaskError as exc:
            logger.error("generate-cover-letter failed identifier=%s error=%s", identifier, exc)
            return FALLBACK_COVER_LETTER

        if not isinstance(letter, str) or len(letter.strip()) < MIN_COVER_LETTER_CHARS:
            logger.error("Invalid cover letter result identifier=%s", identifier)
            return FALLBACK_COVER_LETTER
        return letter.strip()
