"""
Admin module sub-routers organized by domain.
"""
from fastapi import APIRouter, Depends

from microfin.core.dependencies import require_admin
from microfin.modules.admin.routers.agents import router as agents_router
from microfin.modules.admin.routers.borrowers import router as borrowers_router
from microfin.modules.admin.routers.loans import router as loans_router
from microfin.modules.admin.routers.installments import router as installments_router
from microfin.modules.admin.routers.transactions import router as transactions_router
from microfin.modules.admin.routers.stats import router as stats_router

# Main admin router
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# Include all sub-routers
router.include_router(agents_router)
router.include_router(borrowers_router)
router.include_router(loans_router)
router.include_router(installments_router)
router.include_router(transactions_router)
router.include_router(stats_router)
