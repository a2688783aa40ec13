# sessiontab/settlement.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from sessiontab.errors import AssignmentError, MissingMemberError, MissingOrderError

logger = logging.getLogger(__name__)

# Anything within a cent of zero counts as settled
EPSILON = 0.01


@dataclass(frozen=True)
class Member:
    id: str
    name: str


@dataclass(frozen=True)
class Order:
    id: str
    total_amount: float
    name: str = ""


@dataclass(frozen=True)
class PaymentRecord:
    order_id: str
    member_id: str
    amount_paid: float


@dataclass(frozen=True)
class ConsumptionRecord:
    order_id: str
    member_id: str
    split_ratio: float


@dataclass(frozen=True)
class Transfer:
    to_member_id: str
    to_member_name: str
    amount: float


@dataclass(frozen=True)
class NetPosition:
    member: Member
    total_paid: float
    total_share: float

    @property
    def net(self) -> float:
        return self.total_paid - self.total_share


@dataclass(frozen=True)
class MemberBalance:
    member_id: str
    member_name: str
    total_paid: float
    total_share: float
    net_balance: float
    total_owed: float
    total_owed_to_them: float
    transfers: Tuple[Transfer, ...] = field(default_factory=tuple)

    @property
    def standing(self) -> str:
        if self.net_balance > EPSILON:
            return "owed"
        if self.net_balance < -EPSILON:
            return "owes"
        return "settled"


@dataclass(frozen=True)
class OrderAssignment:
    order_id: str
    order_name: str
    total_amount: float
    total_paid: float
    total_assigned: float

    @property
    def is_balanced(self) -> bool:
        return (
            abs(self.total_paid - self.total_amount) <= EPSILON
            and abs(self.total_assigned - self.total_amount) <= EPSILON
        )


@dataclass(frozen=True)
class SessionSummary:
    member_count: int
    order_count: int
    total_amount: float
    unbalanced_orders: Tuple[OrderAssignment, ...] = field(default_factory=tuple)


def _check_references(members, orders, payers, consumers):
    member_ids = {m.id for m in members}
    order_ids = {o.id for o in orders}

    for kind, records in (("payment", payers), ("consumption", consumers)):
        for record in records:
            if record.member_id not in member_ids:
                raise MissingMemberError(record.member_id, kind)
            if record.order_id not in order_ids:
                raise MissingOrderError(record.order_id, kind)


def compute_net_positions(
    members: Sequence[Member],
    orders: Sequence[Order],
    payers: Sequence[PaymentRecord],
    consumers: Sequence[ConsumptionRecord],
) -> List[NetPosition]:
    """Phase 1: what each member paid, what they consumed, in member order."""
    _check_references(members, orders, payers, consumers)

    paid: Dict[str, float] = {m.id: 0.0 for m in members}
    for payment in payers:
        paid[payment.member_id] += payment.amount_paid

    # Ratio total per order, and each member's own ratio (first record wins)
    ratio_totals: Dict[str, float] = {}
    ratios: Dict[Tuple[str, str], float] = {}
    for consumer in consumers:
        ratio_totals[consumer.order_id] = ratio_totals.get(consumer.order_id, 0.0) + consumer.split_ratio
        ratios.setdefault((consumer.order_id, consumer.member_id), consumer.split_ratio)

    share: Dict[str, float] = {m.id: 0.0 for m in members}
    for order in orders:
        ratio_total = ratio_totals.get(order.id, 0.0)
        if ratio_total <= 0:
            # No consumers, or every ratio is zero: nobody owes a share of it
            continue
        for member in members:
            ratio = ratios.get((order.id, member.id))
            if ratio is None:
                continue
            share[member.id] += order.total_amount * ratio / ratio_total

    return [NetPosition(m, paid[m.id], share[m.id]) for m in members]


def settle(positions: Sequence[NetPosition]) -> Dict[str, List[Transfer]]:
    """
    Phase 2: greedy settlement.

    Debtors are visited in member order. Before each debtor the creditors are
    re-sorted by remaining credit, largest first, and the debtor pays them off
    in that order. Credit used up by one debtor is gone for the next.
    """
    credit = {p.member.id: p.net for p in positions if p.net > EPSILON}
    names = {p.member.id: p.member.name for p in positions}
    transfers: Dict[str, List[Transfer]] = {p.member.id: [] for p in positions}

    for position in positions:
        if position.net >= -EPSILON:
            continue
        remaining = abs(position.net)

        creditors = sorted(
            (member_id for member_id, amount in credit.items() if amount > EPSILON),
            key=lambda member_id: credit[member_id],
            reverse=True,
        )
        for creditor_id in creditors:
            if remaining <= EPSILON:
                break
            pay = min(remaining, credit[creditor_id])
            if pay > EPSILON:
                transfers[position.member.id].append(Transfer(creditor_id, names[creditor_id], pay))
                credit[creditor_id] -= pay
                remaining -= pay

    return transfers


def calculate_balances(
    members: Sequence[Member],
    orders: Sequence[Order],
    payers: Sequence[PaymentRecord],
    consumers: Sequence[ConsumptionRecord],
) -> List[MemberBalance]:
    """
    Net balances and suggested transfers for every member of a session.

    Raises MissingMemberError / MissingOrderError when a payment or consumption
    record does not belong to the supplied snapshot.
    """
    positions = compute_net_positions(members, orders, payers, consumers)
    transfers = settle(positions)

    balances = []
    for position in positions:
        member_transfers = tuple(transfers[position.member.id])
        balances.append(
            MemberBalance(
                member_id=position.member.id,
                member_name=position.member.name,
                total_paid=position.total_paid,
                total_share=position.total_share,
                net_balance=position.net,
                total_owed=sum(t.amount for t in member_transfers),
                total_owed_to_them=max(0.0, position.net),
                transfers=member_transfers,
            )
        )

    logger.debug(
        "Settled %d members over %d orders with %d transfers",
        len(members),
        len(orders),
        sum(len(b.transfers) for b in balances),
    )
    return balances


def check_order_assignment(
    orders: Sequence[Order],
    payers: Sequence[PaymentRecord],
    consumers: Sequence[ConsumptionRecord],
) -> List[OrderAssignment]:
    """
    Orders whose payments or consumers do not cover the order total.

    An order counts as assigned once its consumers carry a positive ratio
    total, since shares are normalised over that total. Balances only add up
    to zero across the session when this list is empty.
    """
    paid: Dict[str, float] = {}
    for payment in payers:
        paid[payment.order_id] = paid.get(payment.order_id, 0.0) + payment.amount_paid

    ratio_totals: Dict[str, float] = {}
    for consumer in consumers:
        ratio_totals[consumer.order_id] = ratio_totals.get(consumer.order_id, 0.0) + consumer.split_ratio

    unbalanced = []
    for order in orders:
        assignment = OrderAssignment(
            order_id=order.id,
            order_name=order.name,
            total_amount=order.total_amount,
            total_paid=paid.get(order.id, 0.0),
            total_assigned=order.total_amount if ratio_totals.get(order.id, 0.0) > 0 else 0.0,
        )
        if not assignment.is_balanced:
            unbalanced.append(assignment)
    return unbalanced


def summarize_session(
    members: Sequence[Member],
    orders: Sequence[Order],
    payers: Sequence[PaymentRecord] = (),
    consumers: Sequence[ConsumptionRecord] = (),
) -> SessionSummary:
    return SessionSummary(
        member_count=len(members),
        order_count=len(orders),
        total_amount=sum(o.total_amount for o in orders),
        unbalanced_orders=tuple(check_order_assignment(orders, payers, consumers)),
    )


def ratios_from_amounts(total_amount: float, amounts: Mapping[str, float]) -> Dict[str, float]:
    # If the order is 100 and someone owes 25, their ratio is 0.25
    return {
        member_id: amount / total_amount if total_amount > 0 else 0.0
        for member_id, amount in amounts.items()
    }


def equal_split(total_amount: float, member_ids: Sequence[str]) -> Dict[str, float]:
    """Per-person amounts rounded to the cent, as the split form fills them in."""
    if not member_ids:
        return {}
    amount = round(total_amount / len(member_ids), 2)
    return {member_id: amount for member_id in member_ids}


def assign_order(
    order_id: str,
    total_amount: float,
    paid: Mapping[str, float],
    split: Mapping[str, float],
) -> Tuple[List[PaymentRecord], List[ConsumptionRecord]]:
    """
    Payment and consumption records for one order from entered amounts.

    Raises AssignmentError when the payments or the split amounts miss the
    order total by more than a cent, when nobody is selected to share the
    cost, or when a selected member has no amount.
    """
    total_paid = sum(paid.values())
    # Compared at cent precision, so three 33.33 shares still cover 100
    if round(abs(total_paid - total_amount), 2) > EPSILON:
        raise AssignmentError(
            f"Total paid ({total_paid:.2f}) must equal order total ({total_amount:.2f})"
        )

    if not split:
        raise AssignmentError("Select at least one person to split the cost")

    missing = [member_id for member_id, amount in split.items() if amount <= 0]
    if missing:
        raise AssignmentError(f"Enter split amounts for all selected members: {', '.join(missing)}")

    total_split = sum(split.values())
    if round(abs(total_split - total_amount), 2) > EPSILON:
        raise AssignmentError(
            f"Total split amount ({total_split:.2f}) must equal order total ({total_amount:.2f})"
        )

    payers = [
        PaymentRecord(order_id, member_id, amount)
        for member_id, amount in paid.items()
        if amount > 0
    ]
    consumers = [
        ConsumptionRecord(order_id, member_id, ratio)
        for member_id, ratio in ratios_from_amounts(total_amount, split).items()
    ]
    return payers, consumers


def describe_transfers(balances: Sequence[MemberBalance], currency: str = "$") -> List[str]:
    # Convert the transfers into the display strings
    results = []
    for balance in balances:
        for transfer in balance.transfers:
            results.append(f"{balance.member_name} owes {transfer.to_member_name} {currency}{transfer.amount:.2f}")

    return results if len(results) > 0 else ["No debts found!"]
