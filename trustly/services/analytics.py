from __future__ import annotations

import csv
import io
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from trustly.db.enums import ModerationStatusEnum
from trustly.db.models import Testimonial

NO_CAMPAIGN_LABEL = "No Campaign"
TREND_DAYS = 7


@dataclass(frozen=True)
class SubmissionFact:
    status: str
    rating: Optional[int]
    created_at: datetime
    campaign_name: Optional[str] = None


@dataclass
class AnalyticsSummary:
    total_testimonials: int = 0
    approved_testimonials: int = 0
    pending_testimonials: int = 0
    rejected_testimonials: int = 0
    average_rating: float = 0.0
    rating_distribution: list[dict] = field(default_factory=list)
    testimonials_over_time: list[dict] = field(default_factory=list)
    campaign_performance: list[dict] = field(default_factory=list)
    conversion_rate: float = 0.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def facts_from_testimonials(rows: Iterable[Testimonial]) -> list[SubmissionFact]:
    facts = []
    for row in rows:
        status = row.status.value if isinstance(row.status, ModerationStatusEnum) else str(row.status)
        facts.append(
            SubmissionFact(
                status=status,
                rating=row.rating,
                created_at=row.created_at,
                campaign_name=row.campaign.name if row.campaign else None,
            )
        )
    return facts


def compute_analytics(facts: Sequence[SubmissionFact], *, today: date) -> AnalyticsSummary:
    total = len(facts)
    approved = sum(1 for f in facts if f.status == ModerationStatusEnum.approved.value)
    pending = sum(1 for f in facts if f.status == ModerationStatusEnum.pending.value)
    rejected = sum(1 for f in facts if f.status == ModerationStatusEnum.rejected.value)
    average = sum((f.rating or 0) for f in facts) / total if total else 0.0

    distribution = [
        {"rating": rating, "count": sum(1 for f in facts if f.rating == rating)} for rating in range(1, 6)
    ]

    by_day: dict[date, int] = {}
    for f in facts:
        day = _as_utc(f.created_at).date()
        by_day[day] = by_day.get(day, 0) + 1
    over_time = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        over_time.append({"date": day_label(day), "count": by_day.get(day, 0)})

    campaigns: "OrderedDict[str, int]" = OrderedDict()
    for f in facts:
        label = f.campaign_name or NO_CAMPAIGN_LABEL
        campaigns[label] = campaigns.get(label, 0) + 1

    return AnalyticsSummary(
        total_testimonials=total,
        approved_testimonials=approved,
        pending_testimonials=pending,
        rejected_testimonials=rejected,
        average_rating=average,
        rating_distribution=distribution,
        testimonials_over_time=over_time,
        campaign_performance=[{"name": name, "count": count} for name, count in campaigns.items()],
        conversion_rate=(approved / total) * 100 if total else 0.0,
    )


def export_filename(today: date) -> str:
    return f"analytics-{today.isoformat()}.csv"


def export_summary_csv(summary: AnalyticsSummary) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Total Testimonials", summary.total_testimonials])
    writer.writerow(["Approved", summary.approved_testimonials])
    writer.writerow(["Pending", summary.pending_testimonials])
    writer.writerow(["Average Rating", f"{summary.average_rating:.2f}"])
    writer.writerow(["Conversion Rate", f"{summary.conversion_rate:.2f}%"])
    return buffer.getvalue()
