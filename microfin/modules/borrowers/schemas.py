import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from microfin.modules.loans.schemas import LoanDetailResponse

PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


def validate_pan(value: Optional[str]) -> Optional[str]:
    if value is not None and not PAN_PATTERN.match(value):
        raise ValueError("PAN must be five letters, four digits and a letter (e.g. ABCDE1234F)")
    return value


class BorrowerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    father_name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=10, max_length=20)
    address: str = Field(..., min_length=1, max_length=500)
    pan_id: str

    @field_validator("pan_id")
    @classmethod
    def check_pan(cls, value):
        return validate_pan(value)


class BorrowerCreate(BorrowerBase):
    agent_id: Optional[int] = None


class BorrowerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    father_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    pan_id: Optional[str] = None
    agent_id: Optional[int] = None

    @field_validator("pan_id")
    @classmethod
    def check_pan(cls, value):
        return validate_pan(value)


class BorrowerAssignRequest(BaseModel):
    agent_id: int


class BorrowerResponse(BaseModel):
    id: int
    name: str
    father_name: str
    phone: str
    address: str
    pan_id: str
    agent_id: Optional[int] = None
    agent_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BorrowerDetailResponse(BorrowerResponse):
    loans: List[LoanDetailResponse] = []
