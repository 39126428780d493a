from __future__ import annotations

from functools import partial
from typing import Any

from smartcv.core.cv_extraction import CVExtractor
from smartcv.core.tasks import TaskOrchestrator
from smartcv.llm.router import LLMRouter

EXTRACT_CV = "extract-cv"
PARSE_QUERY = "parse-query"
ANALYZE_CV = "analyze-cv"
GENERATE_COVER_LETTER = "generate-cover-letter"


def extract_cv(payload: dict[str, Any], *, extractor: CVExtractor) -> str:
    return extractor.extract(payload["content"], identifier=payload.get("identifier", ""))


def parse_query(payload: dict[str, Any], *, llm: LLMRouter) -> dict[str, Any]:
    return llm.parse_query(payload.get("message") or "")


def analyze_cv(payload: dict[str, Any], *, llm: LLMRouter) -> dict[str, Any]:
    return llm.analyze_cv(payload.get("cv_text") or "")


def generate_cover_letter(payload: dict[str, Any], *, llm: LLMRouter) -> str:
    return llm.write_cover_letter(payload.get("cv_text") or "")


def register_workers(tasks: TaskOrchestrator, *, extractor: CVExtractor, llm: LLMRouter) -> None:
    tasks.register(EXTRACT_CV, partial(extract_cv, extractor=extractor))
    tasks.register(PARSE_QUERY, partial(parse_query, llm=llm))
    tasks.register(ANALYZE_CV, partial(analyze_cv, llm=llm))
    tasks.register(GENERATE_COVER_LETTER, partial(generate_cover_letter, llm=llm))
