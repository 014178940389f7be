"""Platform event payloads and the charge record variants.

The identity/database platform delivers three kinds of events: account
created, account deleted, and a write under `users/{uid}/charges/{id}`.
The written value is untyped JSON; `parse_charge_record` turns it into one
of the explicit variants before the charge workflow does anything else.
"""

import re
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from chargefn.common.errors import ClassifiedError


CHARGE_PATH_RE = re.compile(r"^/?users/(?P<user_id>[^/]+)/charges/(?P<charge_id>[^/]+)/?$")


class EventPathError(ValueError):
    """Raised when a record-written event does not target a charge record."""


class InvalidChargeRecord(ClassifiedError):
    """A pending charge record that cannot be submitted to the gateway."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_type="invalid_request_error", code="invalid_charge_record")


def parse_charge_path(path: str) -> tuple[str, str]:
    """Split `users/{uid}/charges/{id}` into `(uid, id)`."""

    match = CHARGE_PATH_RE.match(path)
    if match is None:
        raise EventPathError(f"not a charge record path: {path!r}")
    return match.group("user_id"), match.group("charge_id")


class PlatformEvent(BaseModel):
    """Fields common to every delivered event."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))


class UserCreatedEvent(PlatformEvent):
    """Account-created trigger payload."""

    uid: str = Field(min_length=1)
    email: str = Field(min_length=3)


class UserDeletedEvent(PlatformEvent):
    """Account-deleted trigger payload."""

    uid: str = Field(min_length=1)


class ChargeWrittenEvent(PlatformEvent):
    """Record-written trigger payload for `users/{uid}/charges/{id}`.

    `data` is the value after the write; `None` means the record was deleted.
    """

    path: str
    data: Any = None

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        parse_charge_path(value)
        return value.strip("/")

    @property
    def user_id(self) -> str:
        return parse_charge_path(self.path)[0]

    @property
    def charge_id(self) -> str:
        return parse_charge_path(self.path)[1]


@dataclass(frozen=True)
class PendingCharge:
    """Charge request with only its input set."""

    amount: int


@dataclass(frozen=True)
class SettledCharge:
    """Charge request already carrying the gateway response."""

    charge_id: str
    response: dict = field(default_factory=dict)


@dataclass(frozen=True)
class FailedCharge:
    """Charge request already carrying a user-facing error."""

    error: str


ChargeRecord = PendingCharge | SettledCharge | FailedCharge


def parse_charge_record(value: Any) -> ChargeRecord | None:
    """Classify a written charge value.

    Returns `None` for a deleted record. Raises `InvalidChargeRecord` for a
    pending record whose amount is unusable.
    """

    if value is None:
        return None
    if not isinstance(value, dict):
        raise InvalidChargeRecord("Charge request must be an object with an amount")
    if value.get("id"):
        return SettledCharge(charge_id=str(value["id"]), response=value)
    if value.get("error"):
        return FailedCharge(error=str(value["error"]))

    amount = value.get("amount")
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    # bool is an int subclass.
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidChargeRecord("Charge amount must be a positive whole number of minor currency units")
    return PendingCharge(amount=amount)
