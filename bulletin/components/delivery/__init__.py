"""
Delivery component - send orchestration with batch splitting.
"""

from bulletin.components.delivery._impl import (
    DeliveryService,
    split_batches,
    unique_groups,
)
from bulletin.components.delivery.component import (
    run,
    run_cancel,
    run_compose_and_send,
    run_send,
    run_send_due,
)
from bulletin.components.delivery.models import (
    CancelRequest,
    ComposeAndSendRequest,
    DeliveryBatch,
    DeliveryConfig,
    DeliveryResult,
    SendDueOutput,
    SendDueRequest,
    SendFilters,
    SendRequest,
)

__all__ = [
    # Entry points
    "run",
    "run_cancel",
    "run_compose_and_send",
    "run_send",
    "run_send_due",
    # Service
    "DeliveryService",
    "split_batches",
    "unique_groups",
    # Models
    "CancelRequest",
    "ComposeAndSendRequest",
    "DeliveryBatch",
    "DeliveryConfig",
    "DeliveryResult",
    "SendDueOutput",
    "SendDueRequest",
    "SendFilters",
    "SendRequest",
]
