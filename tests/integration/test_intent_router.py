from __future__ import annotations

import pytest

from smartcv.core.intent_router import (
    COVER_LETTER_PROMPT,
    NO_JOBS_FOUND,
    NO_VALID_JOBS,
    SEARCH_FIRST,
    UPLOAD_CV,
)
from smartcv.core.session_store import AWAITING_COVER_LETTER, COVER_LETTER, CV_TEXT, EMAIL
from smartcv.db.repositories import Repository
from smartcv.types import ApplyJob, CVScore, SearchFilters, SearchJobs, UnknownIntent

USER = "+2348011111111"


@pytest.fixture
def router(orchestrator):
    return orchestrator.router


@pytest.fixture
def ready_user(context, mark_paid):
    mark_paid(USER)
    context.store.set(USER, CV_TEXT, "Jane Doe. BSc Accounting. 4 years Excel and SQL.")
    context.store.set(USER, COVER_LETTER, "Dear Hiring Manager, I would love to join.")
    context.store.set(USER, EMAIL, "jane@example.com")
    return USER


def _search(filters: dict | None = None) -> SearchJobs:
    return SearchJobs(action="search_jobs", filters=filters)


def test_null_filters_list_every_job_up_to_limit(router, add_job, context) -> None:
    for index in range(context.settings.search_result_limit + 2):
        add_job(title=f"Role {index}")

    reply = router.route(USER, _search(None))

    assert reply.startswith(f"Found {context.settings.search_result_limit} jobs:")
    assert len(context.store.get_last_jobs(USER)) == context.settings.search_result_limit


def test_search_filters_are_case_insensitive_substrings(router, add_job) -> None:
    add_job(title="Senior Accountant", location="Lagos Island")
    add_job(title="Accountant", location="Abuja")

    reply = router.route(USER, _search({"title": "accountant", "location": "lagos"}))

    assert reply.startswith("Found 1 jobs:")
    assert "Senior Accountant at Paystack (Lagos Island)" in reply


def test_empty_result_is_not_cached(router, context) -> None:
    filters = SearchFilters(location="Kano")
    assert router.search(USER, filters) == NO_JOBS_FOUND
    assert context.store.get_search(filters.signature()) is None


def test_cached_search_does_not_requery(router, add_job, monkeypatch, context) -> None:
    add_job(location="Lagos")
    first = router.search(USER, SearchFilters(location="Lagos"))

    calls = []
    original = Repository.search_jobs

    def counting(self, *args, **kwargs):
        calls.append(args)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Repository, "search_jobs", counting)
    second = router.search("+2349999999999", SearchFilters(location="LAGOS"))

    assert second == first
    assert calls == []
    assert [job.title for job in context.store.get_last_jobs("+2349999999999")] == ["Backend Engineer"]


def test_unknown_intent_replies_with_its_text(router) -> None:
    assert router.route(USER, UnknownIntent(action="unknown", response="Hi there")) == "Hi there"


def test_apply_unpaid_starts_payment_and_stashes_jobs(router, add_job, payments, context) -> None:
    add_job()
    router.search(USER, SearchFilters())

    reply = router.apply(USER, ApplyJob(action="apply_job", apply_all=True))

    assert "https://checkout.test/" in reply
    assert reply.endswith("to proceed with CV upload and application: " + f"https://checkout.test/{payments.last_reference(USER)}")
    assert len(context.store.get_pending_jobs(USER)) == 1


def test_apply_without_listing_asks_for_search(router, mark_paid) -> None:
    mark_paid(USER)
    assert router.apply(USER, ApplyJob(action="apply_job", apply_all=True)) == SEARCH_FIRST


def test_apply_without_cv_asks_for_upload(router, mark_paid, add_job, context) -> None:
    mark_paid(USER)
    job = add_job()
    assert router.apply(USER, ApplyJob(action="apply_job", job_id=job.id)) == UPLOAD_CV
    assert context.store.get_pending_jobs(USER) == [job.id]


def test_apply_without_cover_letter_enters_dialog(router, mark_paid, add_job, context) -> None:
    mark_paid(USER)
    job = add_job()
    context.store.set(USER, CV_TEXT, "cv text")

    assert router.apply(USER, ApplyJob(action="apply_job", job_id=job.id)) == COVER_LETTER_PROMPT
    assert context.store.get_state(USER) == AWAITING_COVER_LETTER


def test_apply_all_follows_listing_order(router, ready_user, add_job, mailer, context) -> None:
    add_job(title="Accountant", company="Acme", email="hr@acme.test")
    add_job(title="Auditor", company="Zenith", email="hr@zenith.test")
    router.search(ready_user, SearchFilters())
    listing = [job.title for job in context.store.get_last_jobs(ready_user)]

    reply = router.apply(ready_user, ApplyJob(action="apply_job", apply_all=True))

    assert reply.startswith("Applied to 2 job(s):")
    assert [item["job_title"] for item in mailer.sent] == listing
    assert reply.index(listing[0]) < reply.index(listing[1])
    with context.repository() as repo:
        applications = repo.list_applications(ready_user)
    assert len(applications) == 2
    assert all(app.applicant_email == "jane@example.com" for app in applications)
    assert all(set(app.cv_score) >= {"skills", "experience", "education"} for app in applications)


def test_apply_by_position(router, ready_user, add_job, context) -> None:
    add_job(title="Accountant")
    add_job(title="Auditor")
    router.search(ready_user, SearchFilters())
    second = context.store.get_last_jobs(ready_user)[1]

    reply = router.apply(ready_user, ApplyJob(action="apply_job", job_id="2"))

    assert reply.startswith("Applied to 1 job(s):")
    assert second.title in reply


def test_missing_job_is_skipped(router, ready_user, add_job) -> None:
    job = add_job(title="Accountant")

    reply = router.apply_to_jobs(ready_user, [job.id, "does-not-exist"])

    assert reply.startswith("Applied to 1 job(s):")
    assert "Accountant" in reply


def test_only_missing_jobs_reports_nothing_valid(router, ready_user) -> None:
    assert router.apply_to_jobs(ready_user, ["nope"]) == NO_VALID_JOBS


def test_unrecognised_job_id_is_used_verbatim(router, ready_user, add_job) -> None:
    job = add_job(title="Auditor")
    reply = router.apply(ready_user, ApplyJob(action="apply_job", job_id=job.id))
    assert reply.startswith("Applied to 1 job(s):\n- Auditor")


def test_reapplying_is_not_rescored_or_emailed(router, ready_user, add_job, mailer, monkeypatch) -> None:
    job = add_job(title="Accountant")
    router.apply_to_jobs(ready_user, [job.id])

    scored = []

    def counting_score(cv_text, *, identifier=None):
        scored.append(identifier)
        return CVScore(skills=1, experience=1, education=1)

    monkeypatch.setattr(router.ai, "score_cv", counting_score)
    reply = router.apply_to_jobs(ready_user, [job.id, job.id])

    assert reply.startswith("You had already applied to:")
    assert scored == []
    assert len(mailer.sent) == 1


def test_mailer_failure_does_not_lose_application(router, ready_user, add_job, context, monkeypatch) -> None:
    job = add_job()

    def broken(**kwargs):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(context.mailer, "notify_recruiter", broken)
    reply = router.apply_to_jobs(ready_user, [job.id])

    assert reply.startswith("Applied to 1 job(s):")
    with context.repository() as repo:
        assert repo.get_application(ready_user, job.id) is not None
