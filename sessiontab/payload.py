# sessiontab/payload.py
"""
Turns the JSON snapshot a client fetched for one session into engine inputs,
and engine results back into JSON-ready dicts.

Snapshot shape (table names of the session store):

    {
        "members": [{"id": ..., "name": ...}],
        "orders": [{"id": ..., "total_amount": ..., "name": ...}],
        "order_payers": [{"order_id": ..., "member_id": ..., "amount_paid": ...}],
        "order_consumers": [{"order_id": ..., "member_id": ..., "split_ratio": ...}]
    }
"""
from dataclasses import dataclass
from typing import Annotated, Dict, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from sessiontab.errors import PayloadError
from sessiontab.settlement import (
    ConsumptionRecord,
    Member,
    MemberBalance,
    Order,
    OrderAssignment,
    PaymentRecord,
    SessionSummary,
)

# Body keys accepted for each list, canonical name first
_KEY_CHOICES = (
    ("order_payers", "payers"),
    ("order_consumers", "consumers"),
)


def _check_identifier(value):
    # bool is an int subclass but never a valid id
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError("must be a string or integer")
    if isinstance(value, str) and not value.strip():
        raise ValueError("must not be empty")
    return value


def _check_number(value):
    if isinstance(value, bool):
        raise ValueError("must be a number")
    return value


Identifier = Annotated[Union[str, int], BeforeValidator(_check_identifier)]
Amount = Annotated[float, BeforeValidator(_check_number), Field(ge=0, allow_inf_nan=False)]


class MemberIn(BaseModel):
    id: Identifier
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v


class OrderIn(BaseModel):
    id: Identifier
    total_amount: Amount
    name: Optional[str] = None


class PaymentIn(BaseModel):
    order_id: Identifier
    member_id: Identifier
    amount_paid: Amount


class ConsumerIn(BaseModel):
    order_id: Identifier
    member_id: Identifier
    # The store defaults split_ratio to an equal share
    split_ratio: Amount = 1.0


class SnapshotIn(BaseModel):
    members: List[MemberIn] = Field(min_length=1)
    orders: List[OrderIn] = Field(default_factory=list)
    payers: List[PaymentIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("order_payers", "payers"),
    )
    consumers: List[ConsumerIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("order_consumers", "consumers"),
    )

    @model_validator(mode="before")
    @classmethod
    def one_key_per_list(cls, data):
        if isinstance(data, dict):
            for keys in _KEY_CHOICES:
                if all(key in data for key in keys):
                    raise ValueError(f"send either '{keys[0]}' or '{keys[1]}', not both")
        return data

    @model_validator(mode="after")
    def unique_member_ids(self):
        # Ids are compared as the route sees them, so 1 and "1" collide
        seen = set()
        for member in self.members:
            key = str(member.id)
            if key in seen:
                raise ValueError(f"duplicate member id {member.id!r}")
            seen.add(key)
        return self


class AssignmentIn(BaseModel):
    """One order's payers and per-person split amounts, as entered by a user."""

    total_amount: Amount
    paid: Dict[str, Amount] = Field(default_factory=dict)
    split: Dict[str, Amount] = Field(default_factory=dict)
    # Members to share the order equally; used when no split amounts are given
    equal_split: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class Snapshot:
    members: List[Member]
    orders: List[Order]
    payers: List[PaymentRecord]
    consumers: List[ConsumptionRecord]


def _sent_key(key, data):
    for keys in _KEY_CHOICES:
        if key in keys:
            return next((k for k in keys if k in data), keys[0])
    return key


def _describe(error, data):
    """One readable line for the first pydantic error."""
    loc = list(error["loc"])
    kind = error["type"]
    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    if not loc:
        return message
    loc[0] = _sent_key(loc[0], data)
    key = loc[0]

    if len(loc) == 1:
        if key == "members" and kind in ("missing", "too_short"):
            return "'members' must contain at least one member"
        if kind == "list_type":
            return f"'{key}' must be a list"
        if kind == "missing":
            return f"missing '{key}'"
        return f"'{key}': {message}"

    where = f"{key}[{loc[1]}]"
    if len(loc) == 2:
        if kind in ("model_type", "dict_type"):
            return f"{where} must be an object"
        return f"{where}: {message}"
    field = loc[2]
    if kind == "missing":
        return f"{where}: missing '{field}'"
    return f"{where}: '{field}' {message}"


def _validate(model, data):
    if not isinstance(data, dict):
        raise PayloadError("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise PayloadError(_describe(e.errors()[0], data)) from None


def load_snapshot(data) -> Snapshot:
    parsed = _validate(SnapshotIn, data)
    return Snapshot(
        members=[Member(m.id, m.name) for m in parsed.members],
        orders=[Order(o.id, o.total_amount, o.name or "") for o in parsed.orders],
        payers=[PaymentRecord(p.order_id, p.member_id, p.amount_paid) for p in parsed.payers],
        consumers=[ConsumptionRecord(c.order_id, c.member_id, c.split_ratio) for c in parsed.consumers],
    )


def load_assignment(data) -> AssignmentIn:
    return _validate(AssignmentIn, data)


def _money(value):
    # round() can hand back -0.0
    return round(value, 2) + 0.0


def dump_balance(balance: MemberBalance) -> dict:
    return {
        "member_id": balance.member_id,
        "member_name": balance.member_name,
        "total_paid": _money(balance.total_paid),
        "total_share": _money(balance.total_share),
        "net_balance": _money(balance.net_balance),
        "total_owed": _money(balance.total_owed),
        "total_owed_to_them": _money(balance.total_owed_to_them),
        "standing": balance.standing,
        "transfers": [
            {
                "to_member_id": t.to_member_id,
                "to_member_name": t.to_member_name,
                "amount": _money(t.amount),
            }
            for t in balance.transfers
        ],
    }


def dump_assignment(assignment: OrderAssignment) -> dict:
    return {
        "order_id": assignment.order_id,
        "order_name": assignment.order_name,
        "total_amount": _money(assignment.total_amount),
        "total_paid": _money(assignment.total_paid),
        "total_assigned": _money(assignment.total_assigned),
    }


def dump_summary(summary: SessionSummary) -> dict:
    return {
        "member_count": summary.member_count,
        "order_count": summary.order_count,
        "total_amount": _money(summary.total_amount),
        "unbalanced_orders": [dump_assignment(a) for a in summary.unbalanced_orders],
    }
