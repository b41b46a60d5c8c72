# aqro/schemas/activity.py
from datetime import datetime
from typing import Optional

from aqro.schemas.base import CamelModel


class ActivityOut(CamelModel):
    id: int
    user_id: int
    container_id: int
    container_type_id: Optional[int]
    restaurant_id: Optional[int]
    type: str
    amount: float
    status: str
    location: Optional[str]
    notes: Optional[str]
    created_at: datetime


class ActivityPage(CamelModel):
    activities: list[ActivityOut]
    page: int
    total_pages: int
    total_activities: int


class ActivityReportSummary(CamelModel):
    total_activities: int
    registrations: int
    returns: int
    rebates: int
    status_changes: int
    total_rebate_amount: float


class ActivityReport(CamelModel):
    activities: list[ActivityOut]
    summary: ActivityReportSummary


class AnalyticsDataset(CamelModel):
    data: list[float]


class ActivityAnalytics(CamelModel):
    """Chart-ready series: one label per point."""
    labels: list[str]
    datasets: list[AnalyticsDataset]
    legend: list[str]
