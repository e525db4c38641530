from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.ledger import (
    CREDIT,
    DEBIT,
    NONE,
    SIGN_RULES,
    LedgerEvent,
    apply_ledger_effect,
    apply_transfer_effect,
)


def _entity(balance="0", **extra):
    return SimpleNamespace(id=1, balance=Decimal(balance), **extra)


@pytest.mark.parametrize("event", sorted(SIGN_RULES))
def test_every_event_moves_balances_by_its_sign_rule(event):
    rule = SIGN_RULES[event]
    parent = _entity("1000")
    sink = _entity("50")

    effect = apply_ledger_effect(event, "100", parent=parent, sink=sink)

    assert parent.balance == Decimal("1000") + 100 * rule.parent
    assert effect.parent_delta == 100 * rule.parent
    if rule.sink == NONE:
        assert sink.balance == Decimal("50")
    else:
        assert sink.balance == Decimal("50") + 100 * rule.sink


@pytest.mark.parametrize("event", sorted(SIGN_RULES))
def test_reverse_restores_both_balances(event):
    parent = _entity("1000")
    sink = _entity("50")

    apply_ledger_effect(event, "123.45", parent=parent, sink=sink)
    apply_ledger_effect(event, "123.45", parent=parent, sink=sink, reverse=True)

    assert parent.balance == Decimal("1000")
    assert sink.balance == Decimal("50")


def test_negative_amount_is_a_loss_for_trip():
    parent = _entity("0")
    truck = _entity("0")
    apply_ledger_effect(LedgerEvent.TRUCK_TRIP, "-200", parent=parent, sink=truck)
    assert parent.balance == Decimal("-200")
    assert truck.balance == Decimal("-200")


def test_selected_directions():
    assert SIGN_RULES[LedgerEvent.EXPENSE] == (NONE, DEBIT)
    assert SIGN_RULES[LedgerEvent.WORKER_ADVANCE] == (CREDIT, DEBIT)
    assert SIGN_RULES[LedgerEvent.WORKER_DEDUCTION] == (DEBIT, CREDIT)
    assert SIGN_RULES[LedgerEvent.FACTORY_FUND_ADD] == (CREDIT, DEBIT)


def test_sink_required_and_unknown_event():
    with pytest.raises(ValueError):
        apply_ledger_effect(LedgerEvent.TRUCK_INCOME, "1", parent=_entity())
    with pytest.raises(ValueError):
        apply_ledger_effect("gift", "1", parent=_entity(), sink=_entity())


def test_transfer_moves_balance_and_debt_together():
    sender = SimpleNamespace(id=2, balance=Decimal("1000"), debt_to_parent=Decimal("0"))
    receiver = SimpleNamespace(id=3, balance=Decimal("10"), debt_to_parent=Decimal("5"))

    apply_transfer_effect(sender, receiver, "250")

    assert (sender.balance, sender.debt_to_parent) == (Decimal("750"), Decimal("-250"))
    assert (receiver.balance, receiver.debt_to_parent) == (Decimal("260"), Decimal("255"))
