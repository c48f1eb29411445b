import pytest

from daily_dose_pos.core.order_state import (
    DrinkTicketEnum,
    OrderStatusEnum,
    PaymentStatusEnum,
    check_payment,
    check_transition,
    drink_ticket_on_create,
    drink_ticket_on_status,
    initial_payment_status,
)
from daily_dose_pos.errors import InvalidTransitionError, OrderValidationError, PaymentRequiredError

S = OrderStatusEnum


@pytest.mark.parametrize("current, target", [
    (S.new, S.preparing),
    (S.preparing, S.ready),
    (S.ready, S.completed),
    (S.new, S.cancelled),
    (S.preparing, S.voided),
    (S.ready, S.cancelled),
])
def test_allowed_transitions(current, target):
    assert check_transition(current, target, PaymentStatusEnum.paid, "Cash") is True


@pytest.mark.parametrize("current, target", [
    (S.new, S.ready),
    (S.new, S.completed),
    (S.ready, S.preparing),
    (S.completed, S.new),
    (S.cancelled, S.preparing),
    (S.voided, S.new),
    (S.closed, S.new),
])
def test_illegal_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        check_transition(current, target, PaymentStatusEnum.paid, "Cash")


def test_same_status_is_noop():
    assert check_transition(S.preparing, S.preparing) is False
    assert check_transition(S.completed, "completed") is False


def test_closed_only_via_close_day():
    with pytest.raises(InvalidTransitionError):
        check_transition(S.completed, S.closed)


def test_completion_requires_payment():
    with pytest.raises(PaymentRequiredError):
        check_transition(S.ready, S.completed, PaymentStatusEnum.pending, "Pay Later")


@pytest.mark.parametrize("method", ["GCash", "Bank Transfer"])
def test_presettled_methods_complete_without_payment(method):
    assert check_transition(S.ready, S.completed, PaymentStatusEnum.pending, method) is True


def test_initial_payment_status():
    assert initial_payment_status("Pay Later") == PaymentStatusEnum.pending
    assert initial_payment_status("Cash") == PaymentStatusEnum.paid
    assert initial_payment_status("GCash") == PaymentStatusEnum.paid


def test_payment_only_from_pending():
    check_payment(PaymentStatusEnum.pending, "Card")
    with pytest.raises(InvalidTransitionError):
        check_payment(PaymentStatusEnum.paid, "Card")


@pytest.mark.parametrize("method", ["Pay Later", "Bitcoin"])
def test_payment_rejects_invalid_methods(method):
    with pytest.raises(OrderValidationError):
        check_payment(PaymentStatusEnum.pending, method)


def test_drink_ticket_raised_for_drink_orders():
    assert drink_ticket_on_create(["food", "drink"]) == DrinkTicketEnum.pending
    assert drink_ticket_on_create(["food"]) is None


def test_drink_ticket_on_ready():
    assert drink_ticket_on_status(None, S.ready, ["drink"]) == DrinkTicketEnum.pending
    # уже закрытый тикет не открывается заново
    assert drink_ticket_on_status(DrinkTicketEnum.done, S.ready, ["drink"]) == DrinkTicketEnum.done
    assert drink_ticket_on_status(None, S.ready, ["food"]) is None
    assert drink_ticket_on_status(None, S.preparing, ["drink"]) is None
