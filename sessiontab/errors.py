class SessionTabError(Exception):
    """Base class for every error raised by sessiontab."""


class PayloadError(SessionTabError):
    """The request body does not describe a valid session snapshot."""


class SnapshotIntegrityError(SessionTabError):
    """A payment or consumption record points at something outside the snapshot."""


class MissingMemberError(SnapshotIntegrityError):
    def __init__(self, member_id, record_kind):
        self.member_id = member_id
        self.record_kind = record_kind
        super().__init__(f"{record_kind} record references unknown member {member_id!r}")


class MissingOrderError(SnapshotIntegrityError):
    def __init__(self, order_id, record_kind):
        self.order_id = order_id
        self.record_kind = record_kind
        super().__init__(f"{record_kind} record references unknown order {order_id!r}")


class MemberNotFoundError(SessionTabError):
    def __init__(self, member_id):
        self.member_id = member_id
        super().__init__(f"Member {member_id!r} is not part of this session")


class AssignmentError(SessionTabError):
    """Payers or split amounts for an order do not add up to its total."""
