from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserRole(str, Enum):
    STUDENT = "student"
    COMMITTEE = "committee"
    STAFF = "staff"


class User(BaseModel):
    """One user record; the role tag decides which payload fields are used.

    Students and committee members carry registrations and enquiries,
    committee members also carry their facilitating camp, suggestions and
    points, staff carry the camps they created.
    """

    user_id: str = Field(..., min_length=1)
    password: str
    name: str
    faculty: str
    role: UserRole = UserRole.STUDENT
    registered_camps: List[str] = Field(default_factory=list)
    enquiries: Dict[str, List[int]] = Field(default_factory=dict)
    facilitating_camp: Optional[str] = None
    suggestions: List[int] = Field(default_factory=list)
    points: int = Field(0, ge=0)
    created_camps: List[str] = Field(default_factory=list)

    model_config = ConfigDict(validate_assignment=True)

    @model_validator(mode="after")
    def check_role_payload(self) -> "User":
        if self.role == UserRole.STAFF:
            if self.registered_camps or self.enquiries:
                raise ValueError("staff cannot register for camps or ask enquiries")
            self._require_no_committee_payload()
            return self
        if self.created_camps:
            raise ValueError("only staff create camps")
        if self.role == UserRole.COMMITTEE:
            if not self.facilitating_camp:
                raise ValueError("committee member needs a facilitating camp")
        else:
            self._require_no_committee_payload()
        return self

    def with_role(self, role: UserRole, **changes) -> "User":
        """Return a copy carrying another role, validated as a whole."""
        data = self.model_dump()
        data.update(changes)
        data["role"] = role
        return User.model_validate(data)

    def _require_no_committee_payload(self) -> None:
        if self.facilitating_camp or self.suggestions or self.points:
            raise ValueError(f"{self.role.value} cannot carry committee fields")

    @property
    def is_student(self) -> bool:
        """Students and committee members both attend camps."""
        return self.role in (UserRole.STUDENT, UserRole.COMMITTEE)

    @property
    def is_committee(self) -> bool:
        return self.role == UserRole.COMMITTEE

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF
