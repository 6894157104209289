"""
Deadline Service

Turns a target date into a day count and an urgency tier.

All arithmetic happens on UTC calendar days, so the result depends only on
(target, now) and never on the server's local time zone or on the time of
day either value carries.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from dateutil import parser as date_parser

DateLike = Union[date, datetime, str]

URGENT_MAX_DAYS = 2
WARNING_MAX_DAYS = 7
THIS_WEEK_MAX_DAYS = 7
THIS_WEEK_LIMIT = 5


class UrgencyTier(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    URGENT = "urgent"
    EXPIRED = "expired"


@dataclass
class DeadlineUrgency:
    """Result of classifying one deadline."""
    days_remaining: int
    tier: UrgencyTier
    this_week: bool
    label: str  # "Today", "Tomorrow" or a weekday name

    @property
    def is_urgent(self) -> bool:
        return self.tier == UrgencyTier.URGENT


@dataclass
class ThisWeekItem:
    """Row of the dashboard "This Week" card."""
    title: str
    sublabel: str
    deadline: date
    days_remaining: int
    label: str
    urgent: bool
    progress: int  # Bar width percentage


def to_utc_date(value: DateLike) -> date:
    """
    Normalise a date, datetime or date string to a UTC calendar day.

    Naive datetimes are taken to be UTC already.
    """
    if isinstance(value, str):
        value = date_parser.parse(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected a date, datetime or string, got {type(value).__name__}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def days_until(target: DateLike, now: Optional[DateLike] = None) -> int:
    """Whole calendar days from now to target; negative once the day has passed."""
    now_day = to_utc_date(now if now is not None else utc_now())
    return (to_utc_date(target) - now_day).days


def tier_for_days(days_remaining: int) -> UrgencyTier:
    if days_remaining < 0:
        return UrgencyTier.EXPIRED
    if days_remaining <= URGENT_MAX_DAYS:
        return UrgencyTier.URGENT
    if days_remaining <= WARNING_MAX_DAYS:
        return UrgencyTier.WARNING
    return UrgencyTier.NORMAL


def is_this_week(days_remaining: int) -> bool:
    """Due today through seven days out."""
    return 0 <= days_remaining <= THIS_WEEK_MAX_DAYS


def day_label(target: DateLike, days_remaining: int) -> str:
    if days_remaining == 0:
        return "Today"
    if days_remaining == 1:
        return "Tomorrow"
    return to_utc_date(target).strftime("%A")


def classify(target: DateLike, now: Optional[DateLike] = None) -> DeadlineUrgency:
    """
    Classify a deadline.

    Callers handle "no deadline" themselves; None is not accepted here.
    """
    if target is None:
        raise ValueError("classify() needs a target date; absent deadlines are not classified")

    days = days_until(target, now)
    return DeadlineUrgency(
        days_remaining=days,
        tier=tier_for_days(days),
        this_week=is_this_week(days),
        label=day_label(target, days),
    )


def due_badge(days_remaining: Optional[int]) -> Optional[str]:
    """Badge text for the application page; only shown while days remain."""
    if days_remaining is None or days_remaining <= 0:
        return None
    return f"Due in {days_remaining} day{'s' if days_remaining != 1 else ''}"


def progress_width(days_remaining: int) -> int:
    return max(10, 100 - days_remaining * 10)


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _grant_of(item: Any) -> Any:
    # Dashboard rows are applications carrying their grant; bare grants work too
    grant = _get(item, "grant")
    return grant if grant is not None else item


def _deadline_of(item: Any) -> Optional[date]:
    value = _get(_grant_of(item), "deadline")
    return to_utc_date(value) if value else None


def count_this_week(items: Iterable[Any], now: Optional[DateLike] = None) -> int:
    """
    Count items (grants, or applications carrying a grant) due this week.

    Items without a deadline are skipped.
    """
    count = 0
    for item in items:
        deadline = _deadline_of(item)
        if deadline is not None and is_this_week(days_until(deadline, now)):
            count += 1
    return count


def this_week(items: Iterable[Any], now: Optional[DateLike] = None, limit: int = THIS_WEEK_LIMIT) -> List[ThisWeekItem]:
    """Build the "This Week" list: due within seven days, soonest first."""
    rows = []
    for item in items:
        deadline = _deadline_of(item)
        if deadline is None:
            continue
        urgency = classify(deadline, now)
        if not urgency.this_week:
            continue

        grant = _grant_of(item)
        rows.append(ThisWeekItem(
            title=_get(grant, "title") or "Application",
            sublabel=_get(_get(grant, "university"), "name") or "Application",
            deadline=deadline,
            days_remaining=urgency.days_remaining,
            label=urgency.label,
            urgent=urgency.is_urgent,
            progress=progress_width(urgency.days_remaining),
        ))

    rows.sort(key=lambda row: row.deadline)
    return rows[:limit]
