from boothhub.models.user import User, UserRole
from boothhub.models.event import Event, EventStatus
from boothhub.models.booth import Booth, BoothSize, BoothStatus
from boothhub.models.reservation import Reservation, ReservationStatus, ACTIVE_RESERVATION_STATUSES
from boothhub.models.transaction import Transaction, TransactionStatus
from boothhub.models.invoice import Invoice, InvoiceStatus
from boothhub.models.floor_plan import FloorPlan

__all__ = [
    "User", "UserRole",
    "Event", "EventStatus",
    "Booth", "BoothSize", "BoothStatus",
    "Reservation", "ReservationStatus", "ACTIVE_RESERVATION_STATUSES",
    "Transaction", "TransactionStatus",
    "Invoice", "InvoiceStatus",
    "FloorPlan",
]
