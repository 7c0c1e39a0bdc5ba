from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import MatchResultRecord


def list_recent_results(db: Session, limit: int = 50) -> list[MatchResultRecord]:
    stmt = select(MatchResultRecord).order_by(MatchResultRecord.created_at.desc()).limit(max(1, limit))
    return list(db.scalars(stmt).all())


def summarize_results(rows: list[MatchResultRecord]) -> dict:
    total_rounds = len(rows)
    seeker_wins = sum(1 for row in rows if row.seeker_won)
    seeker_win_rate = round((float(seeker_wins) / float(total_rounds)) * 100.0, 2) if total_rounds else 0.0
    return {
        "total_rounds": total_rounds,
        "seeker_wins": seeker_wins,
        "builder_wins": total_rounds - seeker_wins,
        "seeker_win_rate": seeker_win_rate,
    }
