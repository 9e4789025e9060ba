from __future__ import annotations

from dataclasses import asdict
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.config import settings
from trustly.db.deps import get_session
from trustly.db.models import utcnow
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.services.analytics import (
    AnalyticsSummary,
    compute_analytics,
    export_filename,
    export_summary_csv,
    facts_from_testimonials,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _summary(session: Session, business_id: str, days: Optional[int]) -> AnalyticsSummary:
    now = utcnow()
    window = days or settings.ANALYTICS_DEFAULT_RANGE_DAYS
    testimonials = TestimonialsRepository(session).list(
        business_id, created_since=now - timedelta(days=window)
    )
    return compute_analytics(facts_from_testimonials(testimonials), today=now.date())


@router.get("")
def get_analytics(
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return asdict(_summary(session, auth.business_id, days))


@router.get("/export")
def export_analytics(
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    summary = _summary(session, auth.business_id, days)
    filename = export_filename(utcnow().date())
    return Response(
        content=export_summary_csv(summary),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
