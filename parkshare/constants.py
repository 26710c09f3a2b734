from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELED = "canceled"

    @property
    def is_terminal(self):
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.REJECTED, BookingStatus.CANCELED})
NON_TERMINAL_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.ACTIVE})
CONFIRMED_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.ACTIVE, BookingStatus.COMPLETED})


class ApprovalMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class PricingMode(str, Enum):
    PROPORTIONAL = "proportional"
    LEGACY = "legacy"

    @classmethod
    def from_config(cls, raw):
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.PROPORTIONAL


class EventType:
    STATUS_CHANGE = "status_change"
    EXTEND = "extend"
    FINISH_NOW = "finish_now"


class PayoutStatus:
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
