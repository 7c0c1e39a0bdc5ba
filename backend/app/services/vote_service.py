from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.services.room_service import Room


@dataclass
class MatchResult:
    room_id: str
    seeker_id: str
    seeker_name: str
    seeker_won: bool
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def tally_votes(votes: dict[str, str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for target_id in votes.values():
        counts[target_id] = counts.get(target_id, 0) + 1
    return counts


def most_voted(votes: dict[str, str]) -> str | None:
    # Ties go to the target whose first vote was cast earliest.
    leader: str | None = None
    leader_count = 0
    for target_id, count in tally_votes(votes).items():
        if count > leader_count:
            leader = target_id
            leader_count = count
    return leader


def resolve_match(room: Room) -> MatchResult | None:
    seeker = room.seeker()
    if not seeker:
        return None
    return MatchResult(
        room_id=room.id,
        seeker_id=seeker.id,
        seeker_name=seeker.display_name,
        seeker_won=most_voted(room.votes) != seeker.id,
    )
