import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restodesk.db import get_db
from restodesk.deps import require_owner
from restodesk.schemas.financial import DashboardData
from restodesk.services import analysis, fallbacks
from restodesk.services.reporting import AggregationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/owner", tags=["owner"])


@router.get("/dashboard-data", response_model=DashboardData)
def dashboard_data(db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    try:
        return analysis.compute_dashboard(db)
    except AggregationError:
        logger.exception("owner dashboard failed, serving fallback")
        return fallbacks.dashboard()
