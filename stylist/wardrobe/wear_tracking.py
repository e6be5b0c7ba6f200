"""
Wear tracking

The only place garment snapshots change. Invoked by the caller after the user
confirms wearing an outfit; the generation pipeline never calls it.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from stylist.wardrobe.schemas import Garment

logger = logging.getLogger(__name__)

DEFAULT_RECENT_DAYS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def mark_worn(garment: Garment, worn_at: datetime | None = None) -> Garment:
    """Return a new snapshot with the wear count incremented and last-worn set.

    Args:
        garment: current snapshot
        worn_at: wear time, defaults to now (UTC)

    Returns:
        updated snapshot; the input is left untouched
    """
    worn_at = worn_at or _utcnow()
    updated = garment.model_copy(
        update={"times_worn": garment.times_worn + 1, "last_worn": worn_at}
    )
    logger.debug("Marked %s worn (times_worn=%d)", garment.id, updated.times_worn)
    return updated


def mark_outfit_worn(
    wardrobe: Iterable[Garment],
    garment_ids: Iterable[str],
    worn_at: datetime | None = None,
) -> list[Garment]:
    """Apply ``mark_worn`` to every garment of an outfit, keeping wardrobe order."""
    worn_at = worn_at or _utcnow()
    ids = set(garment_ids)
    return [mark_worn(g, worn_at) if g.id in ids else g for g in wardrobe]


def recently_worn_ids(
    wardrobe: Iterable[Garment],
    days: int = DEFAULT_RECENT_DAYS,
    now: datetime | None = None,
) -> set[str]:
    """Ids of garments worn within the last ``days`` days.

    Naive timestamps are treated as UTC.
    """
    cutoff = _as_aware(now or _utcnow()) - timedelta(days=days)
    return {
        g.id
        for g in wardrobe
        if g.last_worn is not None and _as_aware(g.last_worn) >= cutoff
    }
