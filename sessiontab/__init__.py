from sessiontab.settlement import (
    EPSILON,
    ConsumptionRecord,
    Member,
    MemberBalance,
    Order,
    PaymentRecord,
    Transfer,
    calculate_balances,
)

__all__ = [
    "EPSILON",
    "ConsumptionRecord",
    "Member",
    "MemberBalance",
    "Order",
    "PaymentRecord",
    "Transfer",
    "calculate_balances",
]
