"""
Delivery component.

Entry points around DeliveryService: send, cancel, dispatch due
scheduled newsletters, and compose-then-send.
"""

from __future__ import annotations

from bulletin.components.composition.component import run_compose
from bulletin.rules.models import Rules

from ._impl import DeliveryService
from .models import (
    CancelRequest,
    ComposeAndSendRequest,
    DeliveryResult,
    SendDueOutput,
    SendDueRequest,
    SendRequest,
)
from .ports import ContentRepoPort, RendererPort


def run_send(inp: SendRequest, service: DeliveryService) -> DeliveryResult:
    return service.send(inp)


def run_cancel(inp: CancelRequest, service: DeliveryService) -> DeliveryResult:
    return service.cancel(inp.newsletter_number)


def run_send_due(inp: SendDueRequest, service: DeliveryService) -> SendDueOutput:
    return SendDueOutput(results=service.send_due(inp.now))


def run_compose_and_send(
    inp: ComposeAndSendRequest,
    service: DeliveryService,
    content_repo: ContentRepoPort,
    renderer: RendererPort,
    rules: Rules | None = None,
) -> DeliveryResult:
    """
    Compose the newsletter, then hand it to delivery.

    A composition failure is returned as a failed result; nothing is sent.
    Delivery reads the stored newsletter, so a preview compose
    (``save=False``) is refused.
    """
    if not inp.compose.save:
        return DeliveryResult.failed(
            ["Compose-and-send needs the newsletter saved (save=False given)"],
            error_code="composition_failed",
        )

    composed = run_compose(
        inp.compose,
        service.newsletter_repo,
        content_repo,
        renderer,
        service.time,
        rules,
    )
    if not composed.success or composed.newsletter is None:
        return DeliveryResult.failed(composed.errors, error_code="composition_failed")

    return service.send(
        SendRequest(
            newsletter_number=composed.newsletter.number,
            html=composed.html,
            filters=inp.filters,
            scheduled_at=inp.scheduled_at,
        )
    )


def run(
    inp: SendRequest | CancelRequest | SendDueRequest | ComposeAndSendRequest,
    *,
    service: DeliveryService,
    content_repo: ContentRepoPort | None = None,
    renderer: RendererPort | None = None,
    rules: Rules | None = None,
) -> DeliveryResult | SendDueOutput:
    """
    Main entry point for the delivery component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, SendRequest):
        return run_send(inp, service)

    elif isinstance(inp, CancelRequest):
        return run_cancel(inp, service)

    elif isinstance(inp, SendDueRequest):
        return run_send_due(inp, service)

    elif isinstance(inp, ComposeAndSendRequest):
        assert content_repo and renderer
        return run_compose_and_send(inp, service, content_repo, renderer, rules)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
