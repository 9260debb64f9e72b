from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .enquiry import Enquiry
from .suggestion import Suggestion


class Camp(BaseModel):
    """A camp keyed by its name.

    ``suggestions`` and ``enquiries`` map IDs to the stored objects. A freshly
    decoded camp only knows the IDs (values are None) until the resolver
    links them.
    """

    camp_id: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    closing_date: date
    location: str
    faculty: str
    staff_in_charge: str = Field(..., min_length=1)
    total_slots: int = Field(..., ge=0)
    committee_slots: int = Field(0, ge=0)
    description: str = ""
    attendees: List[str] = Field(default_factory=list)
    committee_members: List[str] = Field(default_factory=list)
    visible: bool = True
    suggestions: Dict[int, Optional[Suggestion]] = Field(default_factory=dict)
    enquiries: Dict[int, Optional[Enquiry]] = Field(default_factory=dict)

    @field_validator("attendees", "committee_members")
    @classmethod
    def drop_duplicates(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def check_dates(self) -> "Camp":
        if self.end_date < self.start_date:
            raise ValueError("camp ends before it starts")
        if self.closing_date > self.start_date:
            raise ValueError("registration closes after the camp starts")
        return self

    @property
    def remaining_slots(self) -> int:
        return max(self.total_slots - len(self.attendees), 0)

    @property
    def remaining_committee_slots(self) -> int:
        return max(self.committee_slots - len(self.committee_members), 0)

    def overlaps(self, other: "Camp") -> bool:
        return self.start_date <= other.end_date and other.start_date <= self.end_date
