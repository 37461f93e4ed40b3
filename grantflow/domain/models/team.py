"""Team members and the role authority table used by approval gates."""

from pydantic import BaseModel, ConfigDict, field_validator

from grantflow.domain.constants import UNASSIGNED_OWNER


class RoleSpec(BaseModel):
    """Authority of a role. Higher levels may clear more gates."""

    model_config = ConfigDict(extra="forbid")

    label: str
    level: int

    @field_validator("level")
    @classmethod
    def _level_ge_0(cls, v: int) -> int:
        if v < 0:
            raise ValueError("level must be >= 0")
        return v


DEFAULT_ROLES: dict[str, RoleSpec] = {
    "director": RoleSpec(label="Director", level=3),
    "board": RoleSpec(label="Board Member", level=3),
    "hop": RoleSpec(label="Head of Programmes", level=2),
    "pm": RoleSpec(label="Programme Manager", level=1),
    "coord": RoleSpec(label="Coordinator", level=1),
    "comms": RoleSpec(label="Communications", level=0),
    "none": RoleSpec(label="Unassigned", level=0),
}


class TeamMember(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    role: str = "none"
    persona: str | None = None

    @property
    def is_unassigned(self) -> bool:
        return self.id == UNASSIGNED_OWNER
