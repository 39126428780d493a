from __future__ import annotations

from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from smartcv.db.models import Application, Job, Payment
from smartcv.types import PaymentStatus, SearchFilters


def _contains(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_job(
        self,
        *,
        title: str,
        company: str,
        location: str,
        email: str,
        is_remote: bool = False,
        job_id: str | None = None,
    ) -> Job:
        job = Job(title=title, company=company, location=location, email=email, is_remote=is_remote)
        if job_id:
            job.id = job_id
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self.session.get(Job, job_id)

    def count_jobs(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Job)) or 0

    def list_jobs(self, limit: int = 100) -> list[Job]:
        stmt = select(Job).order_by(Job.created_at, Job.id).limit(limit)
        return list(self.session.scalars(stmt).all())

    def search_jobs(self, filters: SearchFilters, limit: int = 5) -> list[Job]:
        clauses = []
        if filters.title:
            clauses.append(Job.title.ilike(_contains(filters.title), escape="\\"))
        if filters.location:
            clauses.append(Job.location.ilike(_contains(filters.location), escape="\\"))
        if filters.company:
            clauses.append(Job.company.ilike(_contains(filters.company), escape="\\"))
        if filters.remote is not None:
            clauses.append(Job.is_remote.is_(filters.remote))

        stmt = select(Job)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        stmt = stmt.order_by(Job.created_at, Job.id).limit(limit)
        return list(self.session.scalars(stmt).all())

    def get_payment(self, identifier: str) -> Payment | None:
        return self.session.get(Payment, identifier)

    def get_payment_status(self, identifier: str) -> PaymentStatus:
        payment = self.get_payment(identifier)
        return payment.payment_status if payment else "pending"

    def upsert_pending_payment(self, identifier: str, reference: str) -> Payment:
        payment = self.get_payment(identifier)
        if payment is None:
            payment = Payment(user_identifier=identifier, payment_status="pending", payment_reference=reference)
            self.session.add(payment)
        else:
            payment.payment_reference = reference
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def mark_payment_completed(self, identifier: str, reference: str) -> bool:
        payment = self.session.scalar(
            select(Payment).where(
                Payment.user_identifier == identifier,
                Payment.payment_reference == reference,
            )
        )
        if payment is None:
            return False
        payment.payment_status = "completed"
        self.session.commit()
        return True

    def get_application(self, identifier: str, job_id: str) -> Application | None:
        return self.session.scalar(
            select(Application).where(
                Application.user_identifier == identifier,
                Application.job_id == job_id,
            )
        )

    def create_application(
        self,
        *,
        identifier: str,
        job_id: str,
        cv_text: str,
        cv_score: dict[str, Any],
        cover_letter: str,
        applicant_email: str,
    ) -> Application:
        application = Application(
            user_identifier=identifier,
            job_id=job_id,
            cv_text=cv_text,
            cv_score=cv_score,
            cover_letter=cover_letter,
            applicant_email=applicant_email,
        )
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def list_applications(self, identifier: str) -> list[Application]:
        stmt = (
            select(Application)
            .where(Application.user_identifier == identifier)
            .order_by(Application.created_at, Application.id)
        )
        return list(self.session.scalars(stmt).all())
