from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.schemas.analytics import AnalyticsResponse
from storefront.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("", response_model=AnalyticsResponse, dependencies=[Depends(require_admin)])
def get_analytics(db: Session = Depends(get_db)):
    return AnalyticsService(db).get_dashboard()
