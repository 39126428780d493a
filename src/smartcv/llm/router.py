from __future__ import annotations

import logging
import re
from typing import Any

from smartcv.config import Settings, get_settings
from smartcv.llm.prompts import ANALYZE_CV_PROMPT, COVER_LETTER_PROMPT, PARSE_QUERY_PROMPT
from smartcv.llm.providers import ProviderPool

logger = logging.getLogger(__name__)

DEFAULT_HELP = 'I didn\'t understand your request. Try "find jobs in Lagos" or "apply 1".'

FALLBACK_COVER_LETTER = (
    "Dear Hiring Manager,\n\n"
    "I am excited to apply for this position. My skills and experience make me a strong "
    "candidate, and I would welcome the opportunity to contribute to your team. "
    "Please find my CV attached.\n\n"
    "Sincerely,\n"
    "[Your Name]"
)

_APPLY_ALL = re.compile(r"\bapply\s+(?:to\s+|for\s+)?(?:them\s+)?all\b")
_APPLY_ONE = re.compile(
    r"\bapply\b(?:\s+(?:to|for))?(?:\s+(?:job|number|no\.?))?\s*#?\s*([0-9a-f]{8}-[0-9a-f-]{27,}|\d+)\b"
)
_SEARCH_WORDS = re.compile(r"\b(find|search|show|list|looking|jobs?|vacanc(?:y|ies)|openings?)\b")
_TITLE = re.compile(
    r"\b(?:find|search(?:\s+for)?|show(?:\s+me)?|list|looking\s+for|any)\s+(?:me\s+)?(?:some\s+)?(.*?)\s*\b(?:jobs?|roles?|positions?|openings?)\b"
)
_LOCATION = re.compile(r"\b(?:in|around|near)\s+([a-z][a-z .'-]*?)\s*(?:\bat\b|\bfor\b|[?.!,]|$)")
_COMPANY = re.compile(r"\bat\s+([a-z0-9][a-z0-9 &.'-]*?)\s*(?:\bin\b|\bfor\b|[?.!,]|$)")
_YEARS = re.compile(r"(\d{1,2})\+?\s*(?:years|yrs)")
_SKILL_TOKENS = [
    "python", "java", "javascript", "typescript", "sql", "excel", "aws", "react", "node",
    "django", "flask", "docker", "kubernetes", "accounting", "marketing", "sales", "design",
    "communication", "leadership", "management", "analysis", "customer service",
]
_EDUCATION_LEVELS = [
    ("phd", 95), ("doctorate", 95), ("master", 85), ("msc", 85), ("mba", 85),
    ("bachelor", 70), ("bsc", 70), ("b.sc", 70), ("hnd", 60), ("ond", 45), ("diploma", 45),
]


class LLMRouter:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.pool = ProviderPool(self.settings)

    def parse_query(self, message: str) -> dict[str, Any]:
        data = self._call_json(system=PARSE_QUERY_PROMPT, user=message)
        if not data or not data.get("action"):
            return heuristic_intent(message)
        return data

    def analyze_cv(self, cv_text: str) -> dict[str, Any]:
        data = self._call_json(system=ANALYZE_CV_PROMPT, user=cv_text[:20000])
        if not data:
            return heuristic_cv_score(cv_text)
        return data

    def write_cover_letter(self, cv_text: str) -> str:
        text = self._call_text(system=COVER_LETTER_PROMPT, user=cv_text[:20000]).strip()
        return text or FALLBACK_COVER_LETTER

    def _call_json(self, *, system: str, user: str) -> dict[str, Any]:
        for provider in self.pool.available():
            try:
                return provider.complete_json(system=system, user=user)
            except Exception as exc:
                logger.warning("LLM JSON call failed provider=%s error=%s", provider.config.name, exc)
        return {}

    def _call_text(self, *, system: str, user: str) -> str:
        for provider in self.pool.available():
            try:
                return provider.complete_text(system=system, user=user).content
            except Exception as exc:
                logger.warning("LLM text call failed provider=%s error=%s", provider.config.name, exc)
        return ""


def heuristic_intent(message: str) -> dict[str, Any]:
    text = " ".join((message or "").lower().split())
    if not text:
        return {"action": "unknown", "response": DEFAULT_HELP}

    if _APPLY_ALL.search(text):
        return {"action": "apply_job", "applyAll": True, "jobId": None, "response": ""}

    apply_match = _APPLY_ONE.search(text)
    if apply_match:
        return {"action": "apply_job", "applyAll": False, "jobId": apply_match.group(1), "response": ""}

    if not _SEARCH_WORDS.search(text):
        return {"action": "unknown", "response": DEFAULT_HELP}

    remote: bool | None = True if "remote" in text else None
    title = None
    title_match = _TITLE.search(text)
    if title_match:
        candidate = re.sub(r"\bremote\b", "", title_match.group(1)).strip()
        title = candidate or None

    location_match = _LOCATION.search(text)
    company_match = _COMPANY.search(text)
    return {
        "action": "search_jobs",
        "filters": {
            "title": title,
            "location": location_match.group(1).strip().title() if location_match else None,
            "company": company_match.group(1).strip().title() if company_match else None,
            "remote": remote,
        },
        "applyAll": False,
        "jobId": None,
        "response": "",
    }


def heuristic_cv_score(cv_text: str) -> dict[str, Any]:
    text = cv_text.lower()
    skills = sum(1 for token in _SKILL_TOKENS if token in text)
    years = [int(value) for value in _YEARS.findall(text)]
    education = 30
    for keyword, score in _EDUCATION_LEVELS:
        if keyword in text:
            education = score
            break

    return {
        "skills": min(100, skills * 10),
        "experience": max(years) if years else 0,
        "education": education,
        "summary": "Heuristic scoring: no AI provider was available.",
    }
