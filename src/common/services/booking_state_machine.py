"""Booking lifecycle transitions.

``apply_transition`` never mutates the booking it is given. It returns a new
``Booking`` with the next status and side effects applied, or raises
``Unauthorized`` / ``InvalidTransition`` leaving the caller's copy untouched.
Persisting the result is the repository's job.
"""
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional

from common.models.bookings import (
    Booking,
    BookingStatus,
    Cancellation,
    CancelledBy,
    PaymentStatus,
    RefundStatus,
)
from common.models.users import ActorRole
from common.utils.custom_exceptions import InvalidTransition, Unauthorized


class BookingEvent(str, Enum):
    SETTLE_PAYMENT = "settle_payment"
    SETTLEMENT_CONFLICT = "settlement_conflict"
    EXPIRE = "expire"
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"


USER_EVENTS = frozenset({BookingEvent.ACCEPT, BookingEvent.REJECT, BookingEvent.CANCEL})


@dataclass(frozen=True)
class TransitionContext:
    now: datetime
    today: date
    role: ActorRole
    reason: Optional[str] = None
    transaction_ref: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[BookingStatus]
    target: BookingStatus
    actors: FrozenSet[ActorRole]
    guard: Optional[Callable[[Booking, TransitionContext], Optional[str]]] = None


def _payment_received(booking: Booking, ctx: TransitionContext) -> Optional[str]:
    if booking.payment.status != PaymentStatus.PAID:
        return "payment not received"
    return None


def _stay_elapsed(booking: Booking, ctx: TransitionContext) -> Optional[str]:
    if booking.check_out > ctx.today:
        return f"stay ends on {booking.check_out.isoformat()}"
    return None


TRANSITIONS: Dict[BookingEvent, Transition] = {
    BookingEvent.SETTLE_PAYMENT: Transition(
        frozenset({BookingStatus.PENDING_PAYMENT}),
        BookingStatus.PAID,
        frozenset({ActorRole.PAYMENT_PROVIDER}),
    ),
    BookingEvent.SETTLEMENT_CONFLICT: Transition(
        frozenset({BookingStatus.PENDING_PAYMENT}),
        BookingStatus.CANCELLED,
        frozenset({ActorRole.PAYMENT_PROVIDER}),
    ),
    BookingEvent.EXPIRE: Transition(
        frozenset({BookingStatus.PENDING_PAYMENT}),
        BookingStatus.CANCELLED,
        frozenset({ActorRole.SCHEDULER}),
    ),
    BookingEvent.ACCEPT: Transition(
        frozenset({BookingStatus.PAID}),
        BookingStatus.CONFIRMED,
        frozenset({ActorRole.HOST}),
        guard=_payment_received,
    ),
    BookingEvent.REJECT: Transition(
        frozenset({BookingStatus.PAID}),
        BookingStatus.REJECTED,
        frozenset({ActorRole.HOST}),
    ),
    BookingEvent.CANCEL: Transition(
        frozenset({BookingStatus.PAID, BookingStatus.CONFIRMED}),
        BookingStatus.CANCELLED,
        frozenset({ActorRole.GUEST, ActorRole.HOST}),
    ),
    BookingEvent.COMPLETE: Transition(
        frozenset({BookingStatus.CONFIRMED}),
        BookingStatus.COMPLETED,
        frozenset({ActorRole.SCHEDULER}),
        guard=_stay_elapsed,
    ),
}


def resolve_actor_role(booking: Booking, actor_id: str) -> Optional[ActorRole]:
    # a host booking their own unit acts as host
    if actor_id == booking.host_id:
        return ActorRole.HOST
    if actor_id == booking.guest_id:
        return ActorRole.GUEST
    return None


def can_transition(booking: Booking, event: BookingEvent) -> bool:
    return booking.status in TRANSITIONS[event].sources


def _cancellation(
    booking: Booking, cancelled_by: CancelledBy, ctx: TransitionContext, reason: str
) -> Cancellation:
    refundable = booking.payment.status == PaymentStatus.PAID
    return Cancellation(
        cancelled_by=cancelled_by,
        cancelled_at=ctx.now,
        reason=ctx.reason or reason,
        refund_status=RefundStatus.PENDING if refundable else RefundStatus.NONE,
        refund_amount=booking.pricing.total if refundable else Decimal("0"),
    )


def _settled_payment(booking: Booking, ctx: TransitionContext):
    return replace(
        booking.payment,
        status=PaymentStatus.PAID,
        paid_at=ctx.now,
        transaction_ref=ctx.transaction_ref or booking.payment.provider_order_id,
    )


def apply_transition(
    booking: Booking, event: BookingEvent, ctx: TransitionContext
) -> Booking:
    transition = TRANSITIONS[event]

    if ctx.role not in transition.actors:
        raise Unauthorized(f"{ctx.role.value} may not {event.value} a booking")

    if booking.status not in transition.sources:
        raise InvalidTransition(
            f"cannot {event.value} a booking in status {booking.status.value}"
        )

    if transition.guard:
        problem = transition.guard(booking, ctx)
        if problem:
            raise InvalidTransition(f"cannot {event.value} booking: {problem}")

    changes = {"status": transition.target, "updated_at": ctx.now}

    if event == BookingEvent.SETTLE_PAYMENT:
        changes["payment"] = _settled_payment(booking, ctx)

    elif event == BookingEvent.SETTLEMENT_CONFLICT:
        settled = replace(booking, payment=_settled_payment(booking, ctx))
        changes["payment"] = settled.payment
        changes["cancellation"] = _cancellation(
            settled, CancelledBy.SYSTEM, ctx, "Dates were booked by another guest"
        )

    elif event == BookingEvent.EXPIRE:
        changes["cancellation"] = _cancellation(
            booking, CancelledBy.SYSTEM, ctx, "Payment window expired"
        )

    elif event == BookingEvent.REJECT:
        changes["host_response"] = ctx.reason
        changes["cancellation"] = _cancellation(
            booking, CancelledBy.HOST, ctx, "Host declined the booking"
        )

    elif event == BookingEvent.CANCEL:
        cancelled_by = (
            CancelledBy.HOST if ctx.role == ActorRole.HOST else CancelledBy.GUEST
        )
        changes["cancellation"] = _cancellation(
            booking, cancelled_by, ctx, f"Cancelled by {cancelled_by.value}"
        )

    return replace(booking, **changes)
