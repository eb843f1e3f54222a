from fastapi import APIRouter

from ats.api.routes import health, job_templates, jobs, me

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(me.router, prefix="/me", tags=["identity"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(job_templates.router, prefix="/job-templates", tags=["job-templates"])
