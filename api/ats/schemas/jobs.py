from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

JobStatus = Literal["draft", "published", "closed", "archived"]
JobEvent = Literal["publish", "close", "reopen", "archive", "unarchive"]
EmploymentType = Literal["full_time", "part_time", "contract", "internship", "temporary"]
ExperienceLevel = Literal["entry", "mid", "senior", "executive"]


class JobOut(BaseModel):
    id: str
    organization_id: str
    hiring_manager_id: str | None = None
    job_template_id: str | None = None
    title: str = ""
    description: str = ""
    location: str | None = None
    employment_type: str | None = None
    experience_level: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    currency: str | None = None
    remote_work_allowed: bool = False
    status: JobStatus
    published_at: datetime | None = None
    view_count: int = 0
    allowed_events: list[JobEvent] = Field(default_factory=list)
    permissions: dict[str, bool] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class JobCreateRequest(BaseModel):
    title: str = Field(default="", max_length=100)
    description: str = ""
    location: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: float | None = Field(default=None, ge=0)
    salary_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    remote_work_allowed: bool = False


class JobPatchRequest(BaseModel):
    title: str | None = Field(default=None, max_length=100)
    description: str | None = None
    location: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: float | None = Field(default=None, ge=0)
    salary_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    remote_work_allowed: bool | None = None


class JobAnalyticsOut(BaseModel):
    job_id: str
    status: JobStatus
    view_count: int
    application_count: int
    conversion_rate: float
    published_at: datetime | None = None
    days_since_published: int | None = None
