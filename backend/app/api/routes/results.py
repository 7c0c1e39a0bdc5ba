from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.stats import MatchResultRead, ResultsRead, ResultsSummaryRead
from app.services.stats_service import list_recent_results, summarize_results

router = APIRouter()


@router.get("", response_model=ResultsRead)
def get_recent_results(
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> ResultsRead:
    rows = list_recent_results(db, limit=limit)
    return ResultsRead(
        summary=ResultsSummaryRead.model_validate(summarize_results(rows)),
        results=[MatchResultRead.model_validate(row) for row in rows],
    )
