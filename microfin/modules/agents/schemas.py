from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from microfin.modules.borrowers.schemas import BorrowerResponse
from microfin.modules.loans.schemas import LoanResponse


class AgentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=10, max_length=20)
    address: str = Field(..., min_length=1, max_length=500)
    id_proof: Optional[str] = Field(None, max_length=100)


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    id_proof: Optional[str] = Field(None, max_length=100)


class AgentAssignRequest(BaseModel):
    """Bulk-assign existing borrowers to an agent"""
    borrower_ids: List[int] = Field(..., min_length=1)


class AgentResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    id_proof: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AgentSummaryResponse(AgentResponse):
    borrower_count: int = 0


class AgentBorrowerResponse(BorrowerResponse):
    active_loans: List[LoanResponse] = []


class AgentDetailResponse(AgentResponse):
    borrowers: List[AgentBorrowerResponse] = []


class AgentCollectionsResponse(BaseModel):
    agent_id: int
    name: str
    collected_today: float
    dues_today: int
    dues_today_amount: float


class CollectionTotals(BaseModel):
    target: float
    collected: float
    pending: float
    overdue: float


class AgentReportResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    total_borrowers: int
    total_loans: int
    active_loans: int
    total_amount: float
    collections: CollectionTotals
