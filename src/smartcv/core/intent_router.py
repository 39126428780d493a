from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from smartcv.core.ai import AIAssistant
from smartcv.core.payment_gate import PaymentGate
from smartcv.core.runtime import AppContext
from smartcv.core.session_store import AWAITING_COVER_LETTER, COVER_LETTER, CV_TEXT, EMAIL
from smartcv.llm.router import DEFAULT_HELP
from smartcv.types import AppliedJob, ApplyJob, JobRef, SearchCacheEntry, SearchFilters, SearchJobs, UnknownIntent

logger = logging.getLogger(__name__)

NO_JOBS_FOUND = "No jobs found. Try different filters."
NO_VALID_JOBS = "No valid jobs to apply to."
SEARCH_FIRST = "Please search for jobs first (e.g. \"find jobs in Lagos\"), then reply 'apply all' or 'apply <number>'."
UPLOAD_CV = "Please upload your CV (PDF or DOCX, max 5MB) in this chat."
CV_EXPIRED = "Your CV is no longer on file. Please upload your CV (PDF or DOCX, max 5MB) again."
COVER_LETTER_PROMPT = 'Please provide a cover letter for your application or reply "generate" to create one.'
COVER_LETTER_SAVED = "Cover letter saved! You can now search for jobs or apply."
GENERATE_KEYWORD = "generate"


def render_search_results(jobs: list[JobRef]) -> str:
    lines = [f"{index}. {job.title} at {job.company} ({job.location})" for index, job in enumerate(jobs, start=1)]
    return (
        f"Found {len(jobs)} jobs:\n"
        + "\n".join(lines)
        + "\nReply with 'apply all' or 'apply <number>' (e.g., 'apply 1')."
    )


def render_applications(applied: list[AppliedJob]) -> str:
    if not applied:
        return NO_VALID_JOBS

    fresh = [item for item in applied if not item.already_applied]
    repeats = [item for item in applied if item.already_applied]
    sections: list[str] = []
    if fresh:
        sections.append(
            f"Applied to {len(fresh)} job(s):\n"
            + "\n".join(f"- {item.title} (ID: {item.application_id})" for item in fresh)
        )
    if repeats:
        sections.append(
            "You had already applied to:\n"
            + "\n".join(f"- {item.title} (ID: {item.application_id})" for item in repeats)
        )
    return "\n\n".join(sections)


class IntentRouter:
    def __init__(self, context: AppContext, *, payments: PaymentGate, ai: AIAssistant):
        self.context = context
        self.store = context.store
        self.payments = payments
        self.ai = ai

    def route(self, identifier: str, intent: SearchJobs | ApplyJob | UnknownIntent) -> str:
        if isinstance(intent, SearchJobs):
            return self.search(identifier, intent.filters)
        if isinstance(intent, ApplyJob):
            return self.apply(identifier, intent)
        return intent.response or DEFAULT_HELP

    def search(self, identifier: str, filters: SearchFilters) -> str:
        signature = filters.signature()
        cached = self.store.get_search(signature)
        if cached is not None:
            logger.debug("Search cache hit identifier=%s signature=%s", identifier, signature)
            self.store.set_last_jobs(identifier, cached.jobs)
            return cached.response

        with self.context.repository() as repo:
            rows = repo.search_jobs(filters, limit=self.context.settings.search_result_limit)
            jobs = [JobRef(id=row.id, title=row.title, company=row.company, location=row.location) for row in rows]

        if not jobs:
            return NO_JOBS_FOUND

        response = render_search_results(jobs)
        self.store.set_last_jobs(identifier, jobs)
        self.store.set_search(signature, SearchCacheEntry(response=response, jobs=jobs))
        logger.info("Search identifier=%s results=%s signature=%s", identifier, len(jobs), signature)
        return response

    def resolve_job_ids(self, identifier: str, intent: ApplyJob) -> list[str]:
        last_jobs = self.store.get_last_jobs(identifier)
        if intent.apply_all:
            return [job.id for job in last_jobs]
        if not intent.job_id:
            return []

        # "apply 2" refers to the second entry of the last listing
        if intent.job_id.isdigit():
            position = int(intent.job_id)
            if 1 <= position <= len(last_jobs):
                return [last_jobs[position - 1].id]
        return [intent.job_id]

    def apply(self, identifier: str, intent: ApplyJob) -> str:
        job_ids = self.resolve_job_ids(identifier, intent)

        if not self.payments.is_paid(identifier):
            url = self.payments.initiate(identifier)
            if job_ids:
                self.store.set_pending_jobs(identifier, job_ids)
            return self.payments.payment_prompt(url, "to proceed with CV upload and application")

        if not job_ids:
            return SEARCH_FIRST

        if not self.store.get(identifier, CV_TEXT):
            self.store.set_pending_jobs(identifier, job_ids)
            return UPLOAD_CV

        if not self.store.get(identifier, COVER_LETTER):
            self.store.set_pending_jobs(identifier, job_ids)
            self.store.set_state(identifier, AWAITING_COVER_LETTER)
            return COVER_LETTER_PROMPT

        return self.apply_to_jobs(identifier, job_ids)

    def handle_cover_letter(self, identifier: str, text: str) -> str:
        if not text.strip():
            return COVER_LETTER_PROMPT

        if text.strip().lower() == GENERATE_KEYWORD:
            cv_text = self.store.get(identifier, CV_TEXT)
            if not cv_text:
                return CV_EXPIRED
            cover_letter = self.ai.write_cover_letter(cv_text, identifier=identifier)
        else:
            cover_letter = text

        self.store.set(identifier, COVER_LETTER, cover_letter)
        self.store.clear_state(identifier)

        pending = self.store.pop_pending_jobs(identifier)
        if pending:
            return self.apply_to_jobs(identifier, pending)
        return COVER_LETTER_SAVED

    def apply_to_jobs(self, identifier: str, job_ids: list[str]) -> str:
        cv_text = self.store.get(identifier, CV_TEXT)
        if not cv_text:
            self.store.set_pending_jobs(identifier, job_ids)
            return CV_EXPIRED
        cover_letter = self.store.get(identifier, COVER_LETTER) or ""
        applicant_email = self.store.get(identifier, EMAIL) or self.payments.resolve_email(identifier)

        applied: list[AppliedJob] = []
        for job_id in dict.fromkeys(job_ids):
            with self.context.repository() as repo:
                job = repo.get_job(job_id)
                if job is None:
                    logger.info("Skipping missing job identifier=%s job_id=%s", identifier, job_id)
                    continue
                existing = repo.get_application(identifier, job_id)
                title, recruiter_email = job.title, job.email

            if existing is not None:
                applied.append(AppliedJob(application_id=existing.id, title=title, already_applied=True))
                continue

            score = self.ai.score_cv(cv_text, identifier=identifier)
            with self.context.repository() as repo:
                try:
                    application = repo.create_application(
                        identifier=identifier,
                        job_id=job_id,
                        cv_text=cv_text,
                        cv_score=score.model_dump(),
                        cover_letter=cover_letter,
                        applicant_email=applicant_email,
                    )
                except IntegrityError:
                    repo.session.rollback()
                    existing = repo.get_application(identifier, job_id)
                    if existing is None:
                        raise
                    applied.append(AppliedJob(application_id=existing.id, title=title, already_applied=True))
                    continue

            try:
                self.context.mailer.notify_recruiter(
                    recruiter_email=recruiter_email,
                    job_title=title,
                    cv_text=cv_text,
                    cover_letter=cover_letter,
                    applicant_email=applicant_email,
                )
            except Exception:
                logger.exception("Recruiter email failed identifier=%s job_id=%s", identifier, job_id)
            logger.info("Application created identifier=%s job_id=%s application_id=%s", identifier, job_id, application.id)
            applied.append(AppliedJob(application_id=application.id, title=title))

        return render_applications(applied)
