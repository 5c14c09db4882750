"""
Admin newsletter API endpoints.

Endpoints:
- GET  /api/admin/newsletters/statuses - Status labels and colors
- GET  /api/admin/newsletters/recent - Most recent newsletters
- GET  /api/admin/newsletters/distribution - Suggested slot counts
- POST /api/admin/newsletters/recommendations - Recommended candidates
- POST /api/admin/newsletters/compose - Compose (or preview) a newsletter
- POST /api/admin/newsletters/dispatch-due - Send due scheduled newsletters
- GET  /api/admin/newsletters/{number} - Newsletter details
- POST /api/admin/newsletters/{number}/send - Send or schedule
- POST /api/admin/newsletters/{number}/cancel - Cancel
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AwareDatetime, BaseModel, Field

from bulletin.adapters.jinja_renderer import JinjaNewsletterRenderer
from bulletin.adapters.sqlite_db import SQLiteContentRepo, SQLiteNewsletterRepo
from bulletin.api.deps import (
    get_clock,
    get_content_repo,
    get_delivery_service,
    get_newsletter_repo,
    get_renderer,
    get_rules,
)
from bulletin.components.composition import ComposeInput, run_compose
from bulletin.components.delivery import (
    CancelRequest,
    DeliveryResult,
    DeliveryService,
    SendDueRequest,
    SendFilters,
    SendRequest,
    run_cancel,
    run_send,
    run_send_due,
)
from bulletin.components.slots import (
    RecommendCriteria,
    RecommendInput,
    build_limits,
    optimal_distribution,
    run_recommend,
)
from bulletin.core.ports.time import TimePort
from bulletin.domain.display import STATUS_DISPLAY
from bulletin.domain.entities import ContentItem, Newsletter
from bulletin.rules.models import Rules

router = APIRouter()

ERROR_STATUS = {
    "newsletter_not_found": status.HTTP_404_NOT_FOUND,
    "not_sendable": status.HTTP_409_CONFLICT,
    "already_sending": status.HTTP_409_CONFLICT,
    "illegal_transition": status.HTTP_409_CONFLICT,
    "invalid_schedule_time": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "no_recipients": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "composition_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


# --- Request/Response Models ---


class StatusResponse(BaseModel):
    value: int
    name: str
    label: str
    color: str


class ContentItemResponse(BaseModel):
    id: int
    title: str
    display_affinity: str
    topical_line: str | None
    featured_image_url: str | None


class NewsletterResponse(BaseModel):
    """Newsletter details."""

    number: int
    title: str
    header_text: str
    status: str
    status_label: str
    status_color: str
    news_ids: list[int]
    categorized: dict[str, list[int]]
    has_html: bool
    scheduled_at: str | None
    sent_at: str | None
    statistics: dict[str, Any]


class RecommendRequest(BaseModel):
    max_items: int = Field(21, ge=1, le=100)
    require_image: bool = False
    prioritize_recent: bool = True
    balance_topical_lines: bool = True


class ComposeRequest(BaseModel):
    """Compose request. ``number`` omitted allocates the next number."""

    number: int | None = Field(None, ge=1)
    header_text: str
    news_ids: list[int] = Field(..., min_length=1)
    save: bool = True


class ComposeResponse(BaseModel):
    newsletter: NewsletterResponse
    html: str
    statistics: dict[str, Any]


class SendBody(BaseModel):
    """Send request. ``scheduled_at`` set schedules instead of sending."""

    html: str | None = None
    dependencies: list[int] | None = None
    limit: int | None = Field(None, ge=1)
    scheduled_at: AwareDatetime | None = None


class DeliveryResponse(BaseModel):
    success: bool
    recipient_count: int
    sent_count: int
    failed_count: int
    failure_rate: float
    is_partial: bool
    errors: list[str]
    statistics: dict[str, Any]
    error_code: str | None = None


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Helper Functions ---


def _newsletter_to_response(newsletter: Newsletter) -> NewsletterResponse:
    display = STATUS_DISPLAY[newsletter.status]
    return NewsletterResponse(
        number=newsletter.number,
        title=newsletter.title,
        header_text=newsletter.header_text,
        status=newsletter.status.name.lower(),
        status_label=display.label,
        status_color=display.color,
        news_ids=newsletter.news_ids,
        categorized=newsletter.categorized_ids(),
        has_html=bool(newsletter.html_content),
        scheduled_at=newsletter.scheduled_at.isoformat() if newsletter.scheduled_at else None,
        sent_at=newsletter.sent_at.isoformat() if newsletter.sent_at else None,
        statistics=newsletter.statistics.model_dump(mode="json"),
    )


def _item_to_response(item: ContentItem) -> ContentItemResponse:
    return ContentItemResponse(
        id=item.id,
        title=item.title,
        display_affinity=item.display_affinity,
        topical_line=item.topical_line,
        featured_image_url=item.featured_image_url,
    )


def _delivery_response(result: DeliveryResult) -> DeliveryResponse:
    """Map a delivery result to a response, raising for failures."""
    if not result.success:
        code = ERROR_STATUS.get(result.error_code or "", status.HTTP_502_BAD_GATEWAY)
        raise HTTPException(status_code=code, detail="; ".join(result.errors))
    return DeliveryResponse(**result.to_dict())


# --- Endpoints ---


@router.get("/statuses", response_model=list[StatusResponse], summary="List statuses")
def list_statuses() -> list[StatusResponse]:
    return [
        StatusResponse(value=s.value, name=s.name.lower(), label=d.label, color=d.color)
        for s, d in STATUS_DISPLAY.items()
    ]


@router.get("/recent", response_model=list[NewsletterResponse], summary="Recent newsletters")
def list_recent(
    limit: int = Query(20, ge=1, le=100),
    repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
) -> list[NewsletterResponse]:
    return [_newsletter_to_response(n) for n in repo.list_recent(limit)]


@router.get("/distribution", summary="Suggested slot counts for a selection size")
def get_distribution(
    total: int = Query(..., ge=0),
    rules: Rules = Depends(get_rules),
) -> dict[str, int]:
    return optimal_distribution(total, build_limits(rules))


@router.post(
    "/recommendations",
    response_model=list[ContentItemResponse],
    summary="Recommend candidate items",
)
def recommend_items(
    body: RecommendRequest,
    content_repo: SQLiteContentRepo = Depends(get_content_repo),
    rules: Rules = Depends(get_rules),
) -> list[ContentItemResponse]:
    criteria = RecommendCriteria(
        max_items=body.max_items,
        require_image=body.require_image,
        prioritize_recent=body.prioritize_recent,
        balance_topical_lines=body.balance_topical_lines,
    )
    out = run_recommend(
        RecommendInput(candidates=tuple(content_repo.find_available()), criteria=criteria),
        rules=rules,
    )
    return [_item_to_response(item) for item in out.items]


@router.post(
    "/compose",
    response_model=ComposeResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Compose a newsletter",
)
def compose_newsletter(
    body: ComposeRequest,
    newsletter_repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
    content_repo: SQLiteContentRepo = Depends(get_content_repo),
    renderer: JinjaNewsletterRenderer = Depends(get_renderer),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ComposeResponse:
    out = run_compose(
        ComposeInput(
            header_text=body.header_text,
            news_ids=tuple(body.news_ids),
            number=body.number,
            save=body.save,
        ),
        newsletter_repo,
        content_repo,
        renderer,
        clock,
        rules,
    )
    if not out.success or out.newsletter is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="; ".join(out.errors),
        )

    return ComposeResponse(
        newsletter=_newsletter_to_response(out.newsletter),
        html=out.html or "",
        statistics=out.statistics.to_dict() if out.statistics else {},
    )


@router.post(
    "/dispatch-due",
    response_model=dict[int, DeliveryResponse],
    summary="Send every due scheduled newsletter",
)
def dispatch_due(
    service: DeliveryService = Depends(get_delivery_service),
) -> dict[int, DeliveryResponse]:
    out = run_send_due(SendDueRequest(), service)
    return {number: DeliveryResponse(**r.to_dict()) for number, r in out.results.items()}


@router.get(
    "/{number}",
    response_model=NewsletterResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get newsletter",
)
def get_newsletter(
    number: int,
    repo: SQLiteNewsletterRepo = Depends(get_newsletter_repo),
) -> NewsletterResponse:
    newsletter = repo.find_by_number(number)
    if newsletter is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Newsletter #{number} not found",
        )
    return _newsletter_to_response(newsletter)


@router.post(
    "/{number}/send",
    response_model=DeliveryResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Send or schedule a newsletter",
)
def send_newsletter(
    number: int,
    body: SendBody,
    service: DeliveryService = Depends(get_delivery_service),
) -> DeliveryResponse:
    request = SendRequest(
        newsletter_number=number,
        html=body.html,
        filters=SendFilters(
            dependencies=tuple(body.dependencies) if body.dependencies else None,
            limit=body.limit,
        ),
        scheduled_at=body.scheduled_at,
    )
    return _delivery_response(run_send(request, service))


@router.post(
    "/{number}/cancel",
    response_model=DeliveryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Cancel a newsletter",
)
def cancel_newsletter(
    number: int,
    service: DeliveryService = Depends(get_delivery_service),
) -> DeliveryResponse:
    return _delivery_response(run_cancel(CancelRequest(number), service))
