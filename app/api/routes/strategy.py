"""Strategy analysis routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.dependencies import RequireStrategyRead, RequireStrategyRun
from app.schemas.v1.cases import AnalyzeRequest
from app.schemas.v1.strategy import StrategyAnalysisResponse
from app.services.strategy_service import StrategyService

router = APIRouter(tags=["strategy"])


@router.get("/cases/{case_id}/strategy", response_model=StrategyAnalysisResponse)
async def get_case_strategy(
    case_id: str,
    user: RequireStrategyRead,
    reference_date: date | None = Query(
        default=None, description="Pin the clock (YYYY-MM-DD) for reproducible output"
    ),
    session: AsyncSession = Depends(get_session),
):
    """Analyse the latest snapshot of a case in the caller's organisation."""
    service = StrategyService(session)
    analysis = await service.analyze_case(case_id, user.org_id, reference_date)
    return analysis.to_dict()


@router.post("/strategy/analyze", response_model=StrategyAnalysisResponse)
async def analyze_snapshot(
    request: AnalyzeRequest,
    user: RequireStrategyRun,
):
    """Analyse a posted case snapshot without reading persistence."""
    service = StrategyService()
    analysis = service.analyze_snapshot(request.snapshot, request.reference_date)
    return analysis.to_dict()
