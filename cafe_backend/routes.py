"""
HTTP routes for the cafe backend API.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Body,
    Depends,
    File,
    Form,
    Query,
    Request,
    Response,
    UploadFile,
)
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from cafe_backend import listings
from cafe_backend.config import Settings, get_settings
from cafe_backend.db import DbClient, VisitRecord
from cafe_backend.dependencies import get_db_client, get_storage_client
from cafe_backend.errors import GatewayError, UnauthorizedError, ValidationError
from cafe_backend.event_config import (
    DEFAULT_EVENT_CONFIG,
    load_public_event_details,
    save_event_config,
)
from cafe_backend.registration import submit_registration, validate_submission
from cafe_backend.schemas import (
    DashboardStats,
    DeleteResponse,
    EventConfigOut,
    EventDetails,
    FeedbackResponse,
    LoginRequest,
    Notification,
    ParticipantsResponse,
    RegistrationResponse,
    SaveResponse,
    SessionResponse,
    StatusResponse,
    TermsHistoryResponse,
    TermsOut,
    ValidateRequest,
    ValidateResponse,
    VisitorsResponse,
    VisitPayload,
)
from cafe_backend.session import (
    COOKIE_NAME,
    check_password,
    create_session_token,
    is_logged_in,
    require_admin,
)
from cafe_backend.storage import StorageClient
from cafe_backend.terms import get_active_terms, list_terms_history, save_terms
from cafe_backend.validation import (
    EXPERIENCE_LEVELS,
    EventConfigForm,
    RegistrationForm,
    ScreenshotUpload,
    TermsForm,
    validate_field,
    validate_form,
)

import logging

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])
pages_router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

REGISTRATION_PAGE = "/coffee-tasting"
VISITOR_COOKIE = "visitor_session"


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _csv_response(body: str, dataset: str) -> StreamingResponse:
    filename = listings.csv_filename(dataset)
    return StreamingResponse(
        iter([body]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@pages_router.get(REGISTRATION_PAGE, response_class=HTMLResponse)
def registration_page(
    request: Request,
    background_tasks: BackgroundTasks,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    event = load_public_event_details(db, settings.event_config_read_mode)
    try:
        terms = get_active_terms(db)
    except GatewayError:
        logger.warning("Terms unavailable for registration page", exc_info=True)
        terms = None

    session_id = request.cookies.get(VISITOR_COOKIE) or uuid.uuid4().hex
    background_tasks.add_task(
        listings.record_visit,
        db,
        VisitRecord(
            page_visited=REGISTRATION_PAGE,
            session_id=session_id,
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
            ip_address=_client_ip(request),
        ),
    )
    response = templates.TemplateResponse(
        request,
        "coffee_tasting.html",
        {
            "event": event,
            "terms": terms,
            "api_prefix": settings.api_prefix,
            "experience_levels": [
                (value, listings.experience_label(value))
                for value in EXPERIENCE_LEVELS
            ],
        },
    )
    response.set_cookie(VISITOR_COOKIE, session_id, httponly=True, samesite="lax")
    return response


@router.get("/event-config", response_model=EventDetails)
def public_event_config(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    return load_public_event_details(db, settings.event_config_read_mode)


@router.get("/terms", response_model=TermsOut)
def public_terms(db: DbClient = Depends(get_db_client)):
    try:
        terms = get_active_terms(db)
    except GatewayError:
        logger.exception("Failed to load terms")
        return TermsOut(
            notification=Notification(
                title="Error",
                description="Failed to load terms and agreements",
                variant="destructive",
            )
        )
    return TermsOut(terms=terms.as_dict() if terms else None)


@router.post("/registrations", response_model=RegistrationResponse, status_code=201)
async def create_registration(
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    experience: str = Form(""),
    agree_to_terms: bool = Form(False),
    payment_screenshot: Optional[UploadFile] = File(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    screenshot = None
    if payment_screenshot is not None and payment_screenshot.filename:
        screenshot = ScreenshotUpload(
            filename=payment_screenshot.filename,
            content_type=payment_screenshot.content_type or "",
            data=await payment_screenshot.read(),
        )
    form = validate_submission(
        {
            "name": name,
            "email": email,
            "phone": phone,
            "experience": experience,
            "agree_to_terms": agree_to_terms,
        },
        screenshot,
    )
    result = submit_registration(form, db, storage, screenshot)
    return RegistrationResponse(
        registration=listings.participant_out(result.registration),
        notifications=result.notifications,
        reset_form=result.reset_form,
    )


@router.post("/registrations/validate", response_model=ValidateResponse)
def validate_registration(payload: ValidateRequest):
    if payload.field:
        errors = {}
        messages = validate_field(RegistrationForm, payload.field, payload.value)
        if messages:
            errors[payload.field] = messages
        return ValidateResponse(valid=not errors, errors=errors)
    try:
        validate_form(RegistrationForm, payload.data or {})
    except ValidationError as exc:
        return ValidateResponse(valid=False, errors=exc.errors)
    return ValidateResponse(valid=True, errors={})


@router.post("/visits", response_model=StatusResponse, status_code=202)
def track_visit(
    payload: VisitPayload,
    request: Request,
    background_tasks: BackgroundTasks,
    db: DbClient = Depends(get_db_client),
):
    background_tasks.add_task(
        listings.record_visit,
        db,
        VisitRecord(**payload.model_dump(), ip_address=_client_ip(request)),
    )
    return StatusResponse(status="ok")


@router.post("/admin/login", response_model=SessionResponse)
def admin_login(
    payload: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
):
    if not check_password(payload.password, settings):
        raise UnauthorizedError("Invalid admin password.", title="Login Failed")
    response.set_cookie(
        COOKIE_NAME,
        create_session_token(settings),
        max_age=settings.session_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(
        logged_in=True,
        notification=Notification(
            title="Logged In", description="Welcome to the admin dashboard"
        ),
    )


@router.post("/admin/logout", response_model=SessionResponse)
def admin_logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return SessionResponse(
        logged_in=False,
        notification=Notification(
            title="Logged Out", description="You have been logged out successfully"
        ),
    )


@router.get("/admin/session", response_model=SessionResponse)
def admin_session(request: Request, settings: Settings = Depends(get_settings)):
    return SessionResponse(
        logged_in=is_logged_in(request.cookies.get(COOKIE_NAME), settings)
    )


@admin_router.get("/stats", response_model=DashboardStats)
def admin_stats(db: DbClient = Depends(get_db_client)):
    return listings.dashboard_stats(db)


@admin_router.get("/participants", response_model=ParticipantsResponse)
def list_participants(db: DbClient = Depends(get_db_client)):
    records, notification = listings.fetch_or_empty(
        db.list_registrations, "participants"
    )
    return ParticipantsResponse(
        participants=[listings.participant_out(r) for r in records],
        notification=notification,
    )


@admin_router.get("/participants.csv")
def export_participants(db: DbClient = Depends(get_db_client)):
    body = listings.participants_csv(db.list_registrations())
    return _csv_response(body, listings.PARTICIPANTS_DATASET)


@admin_router.delete("/participants/{participant_id}", response_model=DeleteResponse)
def delete_participant(
    participant_id: str,
    confirm: bool = Query(False),
    db: DbClient = Depends(get_db_client),
):
    if not confirm:
        raise ValidationError(
            {"confirm": ["Deleting a registration cannot be undone; pass confirm=true"]},
            detail="Deletion was not confirmed.",
        )
    removed = listings.delete_participant(db, participant_id)
    return DeleteResponse(
        deleted_id=removed.id,
        notification=Notification(
            title="Participant Deleted",
            description=f"{removed.name}'s registration has been removed successfully.",
        ),
    )


@admin_router.get("/feedback", response_model=FeedbackResponse)
def list_feedback(db: DbClient = Depends(get_db_client)):
    records, notification = listings.fetch_or_empty(db.list_feedback, "feedback")
    return FeedbackResponse(
        feedback=[listings.feedback_out(r) for r in records],
        notification=notification,
    )


@admin_router.get("/feedback.csv")
def export_feedback(db: DbClient = Depends(get_db_client)):
    body = listings.feedback_csv(db.list_feedback())
    return _csv_response(body, listings.FEEDBACK_DATASET)


@admin_router.get("/visitors", response_model=VisitorsResponse)
def list_visitors(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    try:
        visits = db.list_visits(limit=settings.visitor_log_limit)
        pages = db.list_visited_pages()
    except GatewayError:
        logger.exception("Failed to load visitor data")
        return VisitorsResponse(
            visitors=[],
            page_stats=[],
            notification=Notification(
                title="Error",
                description="Failed to load visitor data",
                variant="destructive",
            ),
        )
    return VisitorsResponse(
        visitors=[listings.visit_out(v) for v in visits],
        page_stats=listings.page_stats(pages),
    )


@admin_router.get("/visitors.csv")
def export_visitors(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    body = listings.visitors_csv(db.list_visits(limit=settings.visitor_log_limit))
    return _csv_response(body, listings.VISITORS_DATASET)


@admin_router.get("/event-config", response_model=EventConfigOut)
def load_event_config(db: DbClient = Depends(get_db_client)):
    try:
        config = db.get_active_event_config()
    except GatewayError:
        logger.exception("Error fetching config")
        return EventConfigOut(
            defaults=DEFAULT_EVENT_CONFIG,
            notification=Notification(
                title="Error",
                description="Failed to load current configuration",
                variant="destructive",
            ),
        )
    return EventConfigOut(
        config=config.as_dict() if config else None, defaults=DEFAULT_EVENT_CONFIG
    )


@admin_router.put("/event-config", response_model=SaveResponse)
def update_event_config(
    payload: dict = Body(...), db: DbClient = Depends(get_db_client)
):
    form = validate_form(EventConfigForm, payload)
    saved = save_event_config(db, form)
    return SaveResponse(
        record=saved.as_dict(),
        notification=Notification(
            title="Configuration Saved",
            description=(
                "Coffee tasting event configuration has been updated successfully"
            ),
        ),
    )


@admin_router.get("/terms", response_model=TermsOut)
def load_terms(db: DbClient = Depends(get_db_client)):
    return public_terms(db)


@admin_router.put("/terms", response_model=SaveResponse)
def update_terms(payload: dict = Body(...), db: DbClient = Depends(get_db_client)):
    form = validate_form(TermsForm, payload)
    saved = save_terms(db, form)
    return SaveResponse(
        record=saved.as_dict(),
        notification=Notification(
            title="Terms Updated",
            description="Terms and agreements have been updated successfully",
        ),
    )


@admin_router.get("/terms/history", response_model=TermsHistoryResponse)
def terms_history(db: DbClient = Depends(get_db_client)):
    versions, notification = listings.fetch_or_empty(
        lambda: list_terms_history(db), "terms"
    )
    return TermsHistoryResponse(
        versions=[t.as_dict() for t in versions], notification=notification
    )
