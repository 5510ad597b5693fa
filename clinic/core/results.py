"""
Result variants returned by the scheduling and authorization core.

Every core operation returns either ``Ok(value)`` or ``Reject(reason)`` so
each failure mode is part of the function's contract. The API layer turns a
``Reject`` into an HTTP error based on the reason's ``kind``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class TokenFailure(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.UNAUTHORIZED


class AuthFailure(str, Enum):
    INVALID_TOKEN = "invalid_token"
    ROLE_MISMATCH = "role_mismatch"
    INVALID_CREDENTIALS = "invalid_credentials"

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.UNAUTHORIZED


class Rejection(str, Enum):
    DOCTOR_NOT_FOUND = "doctor_not_found"
    PATIENT_NOT_FOUND = "patient_not_found"
    APPOINTMENT_NOT_FOUND = "appointment_not_found"
    PRESCRIPTION_NOT_FOUND = "prescription_not_found"
    PAST_OR_INVALID_TIME = "past_or_invalid_time"
    INVALID_CONDITION = "invalid_condition"
    SLOT_UNAVAILABLE = "slot_unavailable"
    OVERLAP = "overlap"
    NOT_SCHEDULED = "not_scheduled"
    DUPLICATE = "duplicate"
    NOT_OWNER = "not_owner"

    @property
    def kind(self) -> ErrorKind:
        return _REJECTION_KINDS[self]

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self]


_REJECTION_KINDS = {
    Rejection.DOCTOR_NOT_FOUND: ErrorKind.NOT_FOUND,
    Rejection.PATIENT_NOT_FOUND: ErrorKind.NOT_FOUND,
    Rejection.APPOINTMENT_NOT_FOUND: ErrorKind.NOT_FOUND,
    Rejection.PRESCRIPTION_NOT_FOUND: ErrorKind.NOT_FOUND,
    Rejection.PAST_OR_INVALID_TIME: ErrorKind.INVALID_INPUT,
    Rejection.INVALID_CONDITION: ErrorKind.INVALID_INPUT,
    Rejection.SLOT_UNAVAILABLE: ErrorKind.CONFLICT,
    Rejection.OVERLAP: ErrorKind.CONFLICT,
    Rejection.NOT_SCHEDULED: ErrorKind.CONFLICT,
    Rejection.DUPLICATE: ErrorKind.CONFLICT,
    Rejection.NOT_OWNER: ErrorKind.FORBIDDEN,
}

_REJECTION_MESSAGES = {
    Rejection.DOCTOR_NOT_FOUND: "Doctor not found",
    Rejection.PATIENT_NOT_FOUND: "Patient not found",
    Rejection.APPOINTMENT_NOT_FOUND: "Appointment not found",
    Rejection.PRESCRIPTION_NOT_FOUND: "No prescription found for this appointment",
    Rejection.PAST_OR_INVALID_TIME: "Appointment time must be in the future",
    Rejection.INVALID_CONDITION: "Invalid condition. Use 'past' or 'future'.",
    Rejection.SLOT_UNAVAILABLE: "Requested time slot is not available",
    Rejection.OVERLAP: "Appointment overlaps an existing booking",
    Rejection.NOT_SCHEDULED: "Appointment is no longer scheduled",
    Rejection.DUPLICATE: "Record already exists",
    Rejection.NOT_OWNER: "Appointment belongs to another patient",
}


@dataclass(frozen=True)
class Ok:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Reject:
    reason: Any
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.reason.kind


Result = Union[Ok, Reject]
