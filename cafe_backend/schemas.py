"""
Pydantic schemas for the cafe backend API.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """A toast shown by the client after an action."""

    title: str
    description: str
    variant: Literal["default", "destructive", "warning"] = "default"


class RegistrationOut(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    experience: str
    experience_label: str
    payment_screenshot_url: Optional[str] = None
    payment_status: Literal["Paid", "Pending"]
    created_at: str
    updated_at: Optional[str] = None


class RegistrationResponse(BaseModel):
    registration: RegistrationOut
    notifications: list[Notification]
    reset_form: bool = True


class ValidateRequest(BaseModel):
    field: Optional[str] = None
    value: Any = None
    data: Optional[dict] = None


class ValidateResponse(BaseModel):
    valid: bool
    errors: dict[str, list[str]]


class VisitPayload(BaseModel):
    page_visited: str = Field(..., min_length=1, max_length=512)
    session_id: Optional[str] = Field(default=None, max_length=128)
    user_agent: Optional[str] = Field(default=None, max_length=1024)
    referrer: Optional[str] = Field(default=None, max_length=1024)


class StatusResponse(BaseModel):
    status: Literal["ok"]


class EventDetails(BaseModel):
    id: Optional[str] = None
    title: str
    description: str
    event_date: str
    start_time: str
    end_time: str
    min_participants: int
    max_participants: int
    price_per_person: float
    down_payment_percentage: int
    featured_coffees: Optional[str] = None
    additional_info: Optional[str] = None
    price_label: str
    capacity_label: str
    time_label: str
    down_payment_amount: float
    down_payment_label: str
    payment_instruction: str
    is_default: bool = False


class EventConfigOut(BaseModel):
    config: Optional[dict] = None
    defaults: dict
    notification: Optional[Notification] = None


class SaveResponse(BaseModel):
    record: dict
    notification: Notification


class TermsOut(BaseModel):
    terms: Optional[dict] = None
    notification: Optional[Notification] = None


class TermsHistoryResponse(BaseModel):
    versions: list[dict]
    notification: Optional[Notification] = None


class LoginRequest(BaseModel):
    password: str


class SessionResponse(BaseModel):
    logged_in: bool
    notification: Optional[Notification] = None


class ParticipantsResponse(BaseModel):
    participants: list[RegistrationOut]
    notification: Optional[Notification] = None


class FeedbackOut(BaseModel):
    id: str
    name: str
    email: str
    message: str
    rating: Optional[int] = None
    rating_label: str
    created_at: str


class FeedbackResponse(BaseModel):
    feedback: list[FeedbackOut]
    notification: Optional[Notification] = None


class VisitOut(BaseModel):
    id: str
    page_visited: str
    session_id: Optional[str] = None
    user_agent: Optional[str] = None
    browser: str
    referrer: Optional[str] = None
    ip_address: Optional[str] = None
    visit_timestamp: str


class PageStat(BaseModel):
    page: str
    visits: int
    percentage: int


class VisitorsResponse(BaseModel):
    visitors: list[VisitOut]
    page_stats: list[PageStat]
    notification: Optional[Notification] = None


class DashboardStats(BaseModel):
    total_visitors: int = 0
    today_visitors: int = 0
    total_participants: int = 0
    total_feedback: int = 0


class DeleteResponse(BaseModel):
    deleted_id: str
    notification: Notification
