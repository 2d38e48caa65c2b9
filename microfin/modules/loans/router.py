from fastapi import APIRouter, Depends

from microfin.core.dependencies import TokenClaims, get_current_claims
from microfin.modules.loans.schemas import LoanTerms, SchedulePreviewResponse
from microfin.modules.loans.services import LoanService

router = APIRouter(prefix="/api/loans", tags=["loans"])


@router.post("/preview", response_model=SchedulePreviewResponse)
async def preview_schedule(
    terms: LoanTerms,
    claims: TokenClaims = Depends(get_current_claims)
):
    """Compute the installment schedule for the given terms without saving it"""
    return LoanService.preview(terms)
