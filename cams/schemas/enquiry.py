from typing import Optional

from pydantic import BaseModel, Field


class Enquiry(BaseModel):
    enquiry_id: int = Field(..., ge=1)
    camp_id: str = Field(..., min_length=1)
    enquirer: str = Field(..., min_length=1)
    text: str
    replier: Optional[str] = None
    reply: Optional[str] = None

    @property
    def is_replied(self) -> bool:
        return self.reply is not None
