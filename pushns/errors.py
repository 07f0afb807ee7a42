"""
pushns.errors — typed failures raised by the naming contracts.

Every contract operation communicates failure through a *typed exception*.
The executor reverts the whole transaction (state and buffered events) before
the exception reaches the caller, so a raised error always means "nothing
happened".

Hierarchy
---------
NamingError (base)
 ├─ Unauthorized               : caller lacks ownership/controller/authority rights
 ├─ NotFound                   : lookup of an expired or never-registered name
 ├─ NameUnavailable            : label is registered and unexpired
 ├─ InvalidName                : empty label, or a label containing '.'
 ├─ InvalidDuration            : duration non-positive or below the minimum
 ├─ InsufficientPayment        : payment below the rent price
 ├─ InsufficientBalance        : ledger cannot cover a transfer
 ├─ ResolverRequired           : records supplied without a resolver
 ├─ UnknownCommitment          : no stored timestamp for the recomputed hash
 ├─ CommitmentTooNew           : revealed before the minimum age
 ├─ CommitmentTooOld           : revealed after the maximum age
 └─ UnexpiredCommitmentExists  : re-commit of a still-fresh commitment

Configuration problems (bad price tables, inverted commitment windows) are
plain ``ValueError`` raised at construction time, never at query time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class NamingError(Exception):
    """
    Base naming-protocol error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'UNAUTHORIZED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "naming error"
    code: str = "NAMING_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts/logs/CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is None:
            continue
        d.setdefault(k, v.hex() if isinstance(v, (bytes, bytearray)) else v)
    return d or None


class Unauthorized(NamingError):
    """
    Caller is not allowed to perform the operation.

    Typical triggers:
      - non-owner writes a node or its resolver records
      - non-controller calls BaseRegistrar.register/renew
      - non-authority calls an administrative entry point
    """
    def __init__(
        self,
        message: str = "unauthorized",
        *,
        caller: Optional[bytes] = None,
        node: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="UNAUTHORIZED", data=_details(data, caller=caller, node=node))


class NotFound(NamingError):
    def __init__(
        self,
        message: str = "not found",
        *,
        label_hash: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="NOT_FOUND", data=_details(data, label_hash=label_hash))


class NameUnavailable(NamingError):
    def __init__(
        self,
        message: str = "name unavailable",
        *,
        name: Optional[str] = None,
        label_hash: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="NAME_UNAVAILABLE",
            data=_details(data, name=name, label_hash=label_hash),
        )


class InvalidName(NamingError):
    def __init__(self, message: str = "invalid name", *, name: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_NAME", data=_details(data, name=name))


class InvalidDuration(NamingError):
    def __init__(
        self,
        message: str = "invalid duration",
        *,
        duration: Optional[int] = None,
        minimum: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_DURATION",
            data=_details(data, duration=duration, minimum=minimum),
        )


class InsufficientPayment(NamingError):
    def __init__(
        self,
        message: str = "insufficient payment",
        *,
        required: Optional[int] = None,
        paid: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_PAYMENT",
            data=_details(data, required=required, paid=paid),
        )


class InsufficientBalance(NamingError):
    def __init__(
        self,
        message: str = "insufficient balance",
        *,
        account: Optional[bytes] = None,
        balance: Optional[int] = None,
        amount: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_BALANCE",
            data=_details(data, account=account, balance=balance, amount=amount),
        )


class ResolverRequired(NamingError):
    def __init__(self, message: str = "records supplied without a resolver", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="RESOLVER_REQUIRED", data=data)


class UnknownCommitment(NamingError):
    def __init__(
        self,
        message: str = "unknown commitment",
        *,
        commitment: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="UNKNOWN_COMMITMENT", data=_details(data, commitment=commitment))


class CommitmentTooNew(NamingError):
    def __init__(
        self,
        message: str = "commitment too new",
        *,
        commitment: Optional[bytes] = None,
        age: Optional[int] = None,
        min_age: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="COMMITMENT_TOO_NEW",
            data=_details(data, commitment=commitment, age=age, min_age=min_age),
        )


class CommitmentTooOld(NamingError):
    def __init__(
        self,
        message: str = "commitment too old",
        *,
        commitment: Optional[bytes] = None,
        age: Optional[int] = None,
        max_age: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="COMMITMENT_TOO_OLD",
            data=_details(data, commitment=commitment, age=age, max_age=max_age),
        )


class UnexpiredCommitmentExists(NamingError):
    def __init__(
        self,
        message: str = "unexpired commitment exists",
        *,
        commitment: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="UNEXPIRED_COMMITMENT_EXISTS",
            data=_details(data, commitment=commitment),
        )


# -------- helper utilities ---------------------------------------------------


def error_to_receipt_fields(err: NamingError) -> Dict[str, Any]:
    """
    Map a NamingError to canonical receipt-like fields.

    Returns:
        {"status": "REVERT", "error": {code, message, data?}}
    """
    return {"status": "REVERT", "error": err.to_dict()}


__all__ = [
    "NamingError",
    "Unauthorized",
    "NotFound",
    "NameUnavailable",
    "InvalidName",
    "InvalidDuration",
    "InsufficientPayment",
    "InsufficientBalance",
    "ResolverRequired",
    "UnknownCommitment",
    "CommitmentTooNew",
    "CommitmentTooOld",
    "UnexpiredCommitmentExists",
    "error_to_receipt_fields",
]
