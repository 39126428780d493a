from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

PaymentStatus = Literal["pending", "completed"]

_NULL_STRINGS = {"", "null", "none", "any"}


class SearchFilters(BaseModel):
    title: str | None = None
    location: str | None = None
    company: str | None = None
    remote: bool | None = None

    @field_validator("title", "location", "company", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        if text.lower() in _NULL_STRINGS:
            return None
        return text

    @field_validator("remote", mode="before")
    @classmethod
    def coerce_remote(cls, value: Any) -> Any:
        if isinstance(value, bool) or value is None:
            return value
        text = str(value).strip().lower()
        if text in {"true", "yes", "remote"}:
            return True
        if text in {"false", "no", "onsite", "on-site"}:
            return False
        return None

    def signature(self) -> str:
        """Canonical cache key for this filter set."""
        canonical = {
            "title": self.title.casefold() if self.title else None,
            "location": self.location.casefold() if self.location else None,
            "company": self.company.casefold() if self.company else None,
            "remote": self.remote,
        }
        return "jobs:" + json.dumps(canonical, sort_keys=True, separators=(",", ":"))


class _IntentBase(BaseModel):
    response: str = ""

    @field_validator("response", mode="before")
    @classmethod
    def null_response(cls, value: Any) -> Any:
        return "" if value is None else value


class SearchJobs(_IntentBase):
    action: Literal["search_jobs"]
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("filters", mode="before")
    @classmethod
    def null_filters(cls, value: Any) -> Any:
        return value if value is not None else {}


class ApplyJob(_IntentBase):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["apply_job"]
    apply_all: bool = Field(default=False, alias="applyAll")
    job_id: str | None = Field(default=None, alias="jobId")

    @field_validator("apply_all", mode="before")
    @classmethod
    def null_apply_all(cls, value: Any) -> Any:
        return bool(value) if value is not None else False

    @field_validator("job_id", mode="before")
    @classmethod
    def stringify_job_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        if text.lower() in _NULL_STRINGS:
            return None
        return text


class UnknownIntent(_IntentBase):
    action: Literal["unknown"]


Intent = Annotated[Union[SearchJobs, ApplyJob, UnknownIntent], Field(discriminator="action")]
IntentAdapter: TypeAdapter[SearchJobs | ApplyJob | UnknownIntent] = TypeAdapter(Intent)


class CVScore(BaseModel):
    skills: float
    experience: float
    education: float
    summary: str = ""


class JobRef(BaseModel):
    id: str
    title: str
    company: str
    location: str


class SearchCacheEntry(BaseModel):
    response: str
    jobs: list[JobRef] = Field(default_factory=list)


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)


@dataclass(slots=True)
class InboundFile:
    content: bytes
    filename: str = ""
    declared_email: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class AppliedJob:
    application_id: str
    title: str
    already_applied: bool = False
