from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ats.schemas.jobs import EmploymentType, ExperienceLevel

JobTemplateCategory = Literal[
    "engineering",
    "sales",
    "marketing",
    "design",
    "hr",
    "finance",
    "operations",
    "customer_success",
    "product",
    "legal",
    "executive",
    "other",
]


class JobTemplateOut(BaseModel):
    id: str
    organization_id: str
    created_by_id: str
    parent_template_id: str | None = None
    name: str
    description: str | None = None
    category: str = "other"
    title: str | None = None
    job_description: str | None = None
    location: str | None = None
    employment_type: str | None = None
    experience_level: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    currency: str | None = None
    remote_work_allowed: bool = False
    is_active: bool = True
    is_default: bool = False
    usage_count: int = 0
    last_used_at: datetime | None = None
    last_used_by_id: str | None = None
    permissions: dict[str, bool] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class JobTemplateCreateRequest(BaseModel):
    name: str = Field(min_length=3, max_length=200)
    description: str | None = None
    category: JobTemplateCategory = "other"
    title: str | None = Field(default=None, max_length=100)
    job_description: str | None = None
    location: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: float | None = Field(default=None, ge=0)
    salary_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    remote_work_allowed: bool = False
    is_active: bool = True


class JobTemplatePatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = None
    category: JobTemplateCategory | None = None
    title: str | None = Field(default=None, max_length=100)
    job_description: str | None = None
    location: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: float | None = Field(default=None, ge=0)
    salary_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    remote_work_allowed: bool | None = None


class JobTemplateUseRequest(BaseModel):
    """Job fields that override the template's values."""

    title: str | None = Field(default=None, max_length=100)
    description: str | None = None
    location: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    experience_level: ExperienceLevel | None = None
    salary_min: float | None = Field(default=None, ge=0)
    salary_max: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    remote_work_allowed: bool | None = None


class JobTemplateDuplicateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=200)
    is_active: bool | None = None
