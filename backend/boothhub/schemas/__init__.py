from boothhub.schemas.common import ApiResponse, CamelModel, ok
from boothhub.schemas.user import UserCreate, UserResponse, UserLogin, Token
from boothhub.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from boothhub.schemas.booth import BoothResponse, ReservationResponse, ReserveRequest
from boothhub.schemas.payment import (
    PaymentIntentResponse, TransactionResponse, InvoiceResponse, ConfirmPaymentResponse,
)

__all__ = [
    "ApiResponse", "CamelModel", "ok",
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "BoothResponse", "ReservationResponse", "ReserveRequest",
    "PaymentIntentResponse", "TransactionResponse", "InvoiceResponse", "ConfirmPaymentResponse",
]
