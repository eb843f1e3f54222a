from pydantic import BaseModel, Field


class MeOut(BaseModel):
    id: str
    organization_id: str
    role: str
    capabilities: list[str] = Field(default_factory=list)
