from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    HIRING_MANAGER = "hiring_manager"
    RECRUITER = "recruiter"
    INTERVIEWER = "interviewer"
    COORDINATOR = "coordinator"


class Capability(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_JOBS = "manage_jobs"
    RECRUIT = "recruit"
    INTERVIEW = "interview"
    COORDINATE = "coordinate"


ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    Role.ADMIN.value: frozenset(
        {
            Capability.MANAGE_USERS,
            Capability.MANAGE_JOBS,
            Capability.RECRUIT,
            Capability.INTERVIEW,
            Capability.COORDINATE,
        }
    ),
    Role.HIRING_MANAGER.value: frozenset({Capability.MANAGE_JOBS, Capability.RECRUIT, Capability.INTERVIEW}),
    Role.RECRUITER.value: frozenset({Capability.RECRUIT}),
    Role.INTERVIEWER.value: frozenset({Capability.INTERVIEW}),
    Role.COORDINATOR.value: frozenset({Capability.COORDINATE}),
}


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated user acting inside exactly one organization."""

    id: str
    organization_id: str
    role: str

    @property
    def capabilities(self) -> frozenset[Capability]:
        # Unknown roles resolve to no capabilities.
        return ROLE_CAPABILITIES.get(self.role, frozenset())

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def has_role(self, *roles: Role) -> bool:
        return self.role in {role.value for role in roles}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def can_manage_jobs(self) -> bool:
        return self.has_capability(Capability.MANAGE_JOBS)

    @property
    def can_recruit(self) -> bool:
        return self.has_capability(Capability.RECRUIT)


def parse_role(value: str | None) -> str | None:
    if not value:
        return None
    normalized = value.strip().lower()
    return normalized or None
