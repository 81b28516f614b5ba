"""Role and ownership rules for marketplace operations.

``can_perform`` is a pure predicate: it looks only at the principal, the
operation and (optionally) who owns the resource. Services call
``authorize`` twice, once before loading anything (role gate) and once
with the loaded resource (ownership gate).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from app.core.auth import Principal
from app.core.errors import Forbidden
from app.db.models import UserRole


class Operation(str, enum.Enum):
    POST_JOB = "post_job"
    EDIT_JOB = "edit_job"
    CANCEL_JOB = "cancel_job"
    PLACE_BID = "place_bid"
    LIST_JOB_BIDS = "list_job_bids"
    LIST_MY_BIDS = "list_my_bids"
    ACCEPT_BID = "accept_bid"
    REJECT_BID = "reject_bid"
    WITHDRAW_BID = "withdraw_bid"
    VIEW_BID = "view_bid"


@dataclass(frozen=True)
class Ownership:
    """Who a job or bid belongs to."""

    customer_id: str
    worker_id: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


_REQUIRED_ROLE: Dict[Operation, UserRole] = {
    Operation.POST_JOB: UserRole.CUSTOMER,
    Operation.PLACE_BID: UserRole.WORKER,
    Operation.LIST_MY_BIDS: UserRole.WORKER,
    Operation.ACCEPT_BID: UserRole.CUSTOMER,
    Operation.REJECT_BID: UserRole.CUSTOMER,
    Operation.WITHDRAW_BID: UserRole.WORKER,
}

_OWNER_DENIALS: Dict[Operation, str] = {
    Operation.EDIT_JOB: "You can only edit your own jobs",
    Operation.CANCEL_JOB: "You can only cancel your own jobs",
    Operation.LIST_JOB_BIDS: "You can only view bids on your own jobs",
    Operation.ACCEPT_BID: "You can only accept bids on your own jobs",
    Operation.REJECT_BID: "You can only reject bids on your own jobs",
    Operation.WITHDRAW_BID: "You can only withdraw your own bids",
    Operation.VIEW_BID: "You do not have permission to view this bid",
}


def can_perform(principal: Principal, operation: Operation, resource: Ownership | None = None) -> Decision:
    required = _REQUIRED_ROLE.get(operation)
    if required is not None and principal.role != required:
        return Decision.deny(f"Access denied. Required role: {required.value}")

    if resource is None:
        return Decision.allow()

    if operation == Operation.WITHDRAW_BID:
        owns = principal.id == resource.worker_id
    elif operation == Operation.VIEW_BID:
        owns = principal.id in (resource.customer_id, resource.worker_id)
    elif operation in (Operation.POST_JOB, Operation.PLACE_BID, Operation.LIST_MY_BIDS):
        # role-only operations
        owns = True
    else:
        owns = principal.id == resource.customer_id

    if not owns:
        return Decision.deny(_OWNER_DENIALS[operation])
    return Decision.allow()


def authorize(principal: Principal, operation: Operation, resource: Ownership | None = None) -> None:
    decision = can_perform(principal, operation, resource)
    if not decision.allowed:
        raise Forbidden(decision.reason or "Access denied.")
