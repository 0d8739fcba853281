"""Unit tests for the order status lifecycle and tracking timeline."""

from datetime import UTC, datetime, timedelta

import pytest

from src.mp_common.enums import OrderStatus
from src.mp_common.errors import InvalidStatusTransitionError
from src.mp_order.domain.models import Order
from src.mp_order.domain.timeline import build_timeline, ensure_transition

CREATED = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


def _order(status: str, **overrides: object) -> Order:
    fields: dict = {
        "id": "o1",
        "order_number": "ORD-1",
        "buyer_id": "u1",
        "status": status,
        "payment_status": "pending",
        "total_amount": 1000,
        "tax_amount": 0,
        "shipping_cost": 0,
        "shipping_address": {},
        "estimated_delivery": None,
        "delivered_at": None,
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    fields.update(overrides)
    return Order(**fields)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("PENDING", "CONFIRMED"),
            ("PENDING", "CANCELLED"),
            ("CONFIRMED", "PROCESSING"),
            ("PROCESSING", "SHIPPED"),
            ("SHIPPED", "DELIVERED"),
            ("DELIVERED", "RETURNED"),
        ],
    )
    def test_allowed(self, current: str, target: str) -> None:
        assert ensure_transition(current, target) is OrderStatus(target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("PENDING", "SHIPPED"),
            ("SHIPPED", "CANCELLED"),
            ("DELIVERED", "PENDING"),
            ("CANCELLED", "CONFIRMED"),
            ("RETURNED", "DELIVERED"),
            ("PENDING", "PENDING"),
        ],
    )
    def test_forbidden(self, current: str, target: str) -> None:
        with pytest.raises(InvalidStatusTransitionError):
            ensure_transition(current, target)

    def test_case_insensitive(self) -> None:
        assert ensure_transition("pending", "confirmed") is OrderStatus.CONFIRMED

    def test_unknown_status(self) -> None:
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            ensure_transition("PENDING", "LOST")
        assert exc_info.value.http_status == 409


class TestTimeline:
    def test_pending_order(self) -> None:
        steps = build_timeline(_order("PENDING"))
        assert [s.key for s in steps] == [
            "ordered", "confirmed", "processing", "shipped", "delivered",
        ]
        assert [s.is_completed for s in steps] == [True, False, False, False, False]
        assert steps[0].at == CREATED
        assert steps[1].at == CREATED + timedelta(minutes=5)
        assert steps[3].at == CREATED + timedelta(hours=24)
        assert steps[4].at == CREATED + timedelta(days=3)

    def test_shipped_completes_through_shipped(self) -> None:
        steps = build_timeline(_order("SHIPPED"))
        assert [s.is_completed for s in steps] == [True, True, True, True, False]

    def test_lowercase_status_matches(self) -> None:
        steps = build_timeline(_order("processing"))
        assert [s.is_completed for s in steps] == [True, True, True, False, False]

    def test_delivered_prefers_actual_then_estimate(self) -> None:
        estimate = CREATED + timedelta(days=5)
        actual = CREATED + timedelta(days=4)
        steps = build_timeline(_order("DELIVERED", estimated_delivery=estimate))
        assert steps[-1].at == estimate
        steps = build_timeline(
            _order("DELIVERED", estimated_delivery=estimate, delivered_at=actual)
        )
        assert steps[-1].at == actual
        assert all(s.is_completed for s in steps)

    def test_cancelled_order(self) -> None:
        cancelled_at = CREATED + timedelta(hours=2)
        steps = build_timeline(_order("CANCELLED", updated_at=cancelled_at))
        assert [s.key for s in steps] == ["ordered", "cancelled"]
        assert steps[1].at == cancelled_at
        assert steps[1].label == "Cancelled"
        assert all(s.is_completed for s in steps)

    def test_returned_order_ends_after_delivery(self) -> None:
        delivered = CREATED + timedelta(days=2)
        # Stale updated_at must not sort the return before delivery.
        steps = build_timeline(
            _order("RETURNED", delivered_at=delivered, updated_at=CREATED + timedelta(days=1))
        )
        assert [s.key for s in steps][-1] == "returned"
        assert steps[-1].at == delivered
        assert len(steps) == 6
        assert all(s.is_completed for s in steps)
