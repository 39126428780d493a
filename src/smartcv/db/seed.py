from __future__ import annotations

from sqlalchemy.orm import Session

from smartcv.db.repositories import Repository

SAMPLE_JOBS: list[dict[str, object]] = [
    {
        "title": "Backend Engineer",
        "company": "Paystack",
        "location": "Lagos",
        "is_remote": False,
        "email": "careers@paystack.example",
    },
    {
        "title": "Data Analyst",
        "company": "Flutterwave",
        "location": "Lagos",
        "is_remote": True,
        "email": "talent@flutterwave.example",
    },
    {
        "title": "Product Designer",
        "company": "Andela",
        "location": "Abuja",
        "is_remote": True,
        "email": "hiring@andela.example",
    },
    {
        "title": "Accountant",
        "company": "Dangote Group",
        "location": "Kano",
        "is_remote": False,
        "email": "recruitment@dangote.example",
    },
    {
        "title": "Customer Success Manager",
        "company": "Kuda",
        "location": "Port Harcourt",
        "is_remote": False,
        "email": "jobs@kuda.example",
    },
]


def seed_jobs(session: Session) -> int:
    repo = Repository(session)
    if repo.count_jobs():
        return 0

    for item in SAMPLE_JOBS:
        repo.create_job(
            title=str(item["title"]),
            company=str(item["company"]),
            location=str(item["location"]),
            is_remote=bool(item["is_remote"]),
            email=str(item["email"]),
        )
    return len(SAMPLE_JOBS)
