from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from smartcv.db.base import Base, TimestampMixin


def new_uuid() -> str:
    return str(uuid.uuid4())


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    is_remote: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)


class Payment(TimestampMixin, Base):
    __tablename__ = "payments"

    user_identifier: Mapped[str] = mapped_column(String(120), primary_key=True)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    payment_reference: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("user_identifier", "job_id", name="uq_application_user_job"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_identifier: Mapped[str] = mapped_column(String(120), index=True, nullable=False)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True, nullable=False)
    cv_text: Mapped[str] = mapped_column(Text, nullable=False)
    cv_score: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, default="", nullable=False)
    applicant_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
