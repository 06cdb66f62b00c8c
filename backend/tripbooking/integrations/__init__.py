"""External service clients."""

from .payment_gateway import (
    CardDetails,
    ChargeRequest,
    FakePaymentGateway,
    GatewayIndeterminate,
    GatewayResult,
    PaymentGateway,
    StripePaymentGateway,
)

__all__ = [
    "CardDetails",
    "ChargeRequest",
    "FakePaymentGateway",
    "GatewayIndeterminate",
    "GatewayResult",
    "PaymentGateway",
    "StripePaymentGateway",
]
