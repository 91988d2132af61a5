"""SQLAlchemy models."""

from cafebook.models.user import Profile
from cafebook.models.cafe import (
    Cafe,
    ConsolePricing,
    ConsoleType,
    CONSOLE_COUNT_COLUMNS,
    CONSOLE_LABELS,
    CONSOLE_MAX_QUANTITY,
)
from cafebook.models.booking import (
    Booking,
    BookingItem,
    BookingSource,
    BookingStatus,
    PaymentMode,
)
from cafebook.models.coupon import Coupon, CouponUsage, DiscountType
from cafebook.models.membership import MembershipPlan, Subscription, PlanType, PlayerCount
from cafebook.models.cash_drawer import CashDrawerRecord
from cafebook.models.operations import AuditLogEntry, PaymentLog
from cafebook.models.inventory import BookingOrder, InventoryCategory, InventoryItem
from cafebook.models.tournament import (
    RegistrationStatus,
    Tournament,
    TournamentRegistration,
    TournamentStatus,
)

__all__ = [
    "Profile",
    "Cafe",
    "ConsolePricing",
    "ConsoleType",
    "CONSOLE_COUNT_COLUMNS",
    "CONSOLE_LABELS",
    "CONSOLE_MAX_QUANTITY",
    "Booking",
    "BookingItem",
    "BookingSource",
    "BookingStatus",
    "PaymentMode",
    "Coupon",
    "CouponUsage",
    "DiscountType",
    "MembershipPlan",
    "Subscription",
    "PlanType",
    "PlayerCount",
    "CashDrawerRecord",
    "AuditLogEntry",
    "PaymentLog",
    "BookingOrder",
    "InventoryCategory",
    "InventoryItem",
    "RegistrationStatus",
    "Tournament",
    "TournamentRegistration",
    "TournamentStatus",
]
