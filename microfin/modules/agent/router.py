"""
Agent portal sub-routers.
"""
from fastapi import APIRouter, Depends

from microfin.core.dependencies import require_agent
from microfin.modules.agent.routers.borrowers import router as borrowers_router
from microfin.modules.agent.routers.collect import router as collect_router
from microfin.modules.agent.routers.stats import router as stats_router

router = APIRouter(prefix="/api/agent", tags=["agent"], dependencies=[Depends(require_agent)])

router.include_router(borrowers_router)
router.include_router(collect_router)
router.include_router(stats_router)
