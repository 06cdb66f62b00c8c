"""Payment gateway clients: Stripe for real charges and an in-memory fake."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Deque, Dict, List, Optional, Protocol, Union
from uuid import uuid4

from pydantic import SecretStr
import stripe

logger = logging.getLogger(__name__)

# Stripe test card that is always declined
_FAKE_DECLINE_LAST4 = "0002"


class GatewayIndeterminate(RuntimeError):
    """The gateway did not give a definitive answer (timeout, dropped connection, 5xx)."""


@dataclass(frozen=True)
class CardDetails:
    """Card descriptor supplied by the client. ``token`` is the gateway payment-method reference."""

    card_type: str
    last4: str
    expiry_month: int
    expiry_year: int
    token: Optional[str] = None


@dataclass(frozen=True)
class ChargeRequest:
    booking_id: str
    amount: Decimal
    currency: str
    method: str
    idempotency_key: str
    card: Optional[CardDetails] = None


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, transaction_id: str) -> "GatewayResult":
        return cls(success=True, transaction_id=transaction_id)

    @classmethod
    def failed(cls, error: str) -> "GatewayResult":
        return cls(success=False, error=error)


class PaymentGateway(Protocol):
    def charge(self, request: ChargeRequest) -> GatewayResult:
        """Charge once per idempotency key. Raises GatewayIndeterminate when the outcome is unknown."""
        ...

    def lookup(self, idempotency_key: str) -> Optional[GatewayResult]:
        """Outcome of an earlier charge, or None when the gateway cannot say."""
        ...


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentGateway:
    """Charges through Stripe PaymentIntents with per-attempt idempotency keys."""

    def __init__(self, *, api_key: Union[str, SecretStr], timeout: float = 8.0) -> None:
        secret_value = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not secret_value:
            raise ValueError("Stripe API key must be provided")
        stripe.api_key = secret_value
        # Bounded timeout; one network retry for transient failures
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = 1
        self.logger = logging.getLogger(self.__class__.__name__)

    def charge(self, request: ChargeRequest) -> GatewayResult:
        if request.card is None or not request.card.token:
            return GatewayResult.failed("payment_method_required")

        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(request.amount),
                currency=request.currency,
                payment_method=request.card.token,
                confirm=True,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata={
                    "booking_id": request.booking_id,
                    "idempotency_key": request.idempotency_key,
                    "method": request.method,
                },
                idempotency_key=request.idempotency_key,
            )
        except stripe.CardError as e:
            self.logger.info("Card declined for booking %s: %s", request.booking_id, e.code)
            return GatewayResult.failed(e.code or e.user_message or "card_declined")
        except (stripe.APIConnectionError, stripe.APIError) as e:
            self.logger.warning("Stripe outcome unknown for booking %s: %s", request.booking_id, e)
            raise GatewayIndeterminate(str(e)) from e
        except stripe.StripeError as e:
            self.logger.error("Stripe rejected charge for booking %s: %s", request.booking_id, e)
            return GatewayResult.failed(str(e.user_message or e))

        return self._result_from_intent(intent)

    def lookup(self, idempotency_key: str) -> Optional[GatewayResult]:
        try:
            found = stripe.PaymentIntent.search(
                query=f"metadata['idempotency_key']:'{idempotency_key}'", limit=1
            )
        except stripe.StripeError as e:
            self.logger.warning("Stripe lookup failed for %s: %s", idempotency_key, e)
            return None
        intents = list(found.data)
        if not intents:
            return None
        try:
            return self._result_from_intent(intents[0])
        except GatewayIndeterminate:
            return None

    @staticmethod
    def _result_from_intent(intent: "stripe.PaymentIntent") -> GatewayResult:
        status = getattr(intent, "status", "")
        if status == "succeeded":
            return GatewayResult.succeeded(intent.id)
        if status == "processing":
            raise GatewayIndeterminate(f"PaymentIntent {intent.id} is still processing")
        return GatewayResult.failed(status or "payment_failed")


class _Timeout:
    """Scripted timeout; ``settled`` is what the gateway actually did behind it."""

    def __init__(self, settled: Optional[GatewayResult]) -> None:
        self.settled = settled


class FakePaymentGateway:
    """
    In-memory gateway for development and tests.

    Replays the stored outcome for a repeated idempotency key, like Stripe.
    Unscripted charges succeed unless the card's last-4 is the decline test card.
    """

    def __init__(self) -> None:
        self._script: Deque[Union[GatewayResult, _Timeout]] = deque()
        self._outcomes: Dict[str, GatewayResult] = {}
        self.requests: List[ChargeRequest] = []
        self.lookups: List[str] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    def succeed_next(self, transaction_id: Optional[str] = None) -> None:
        self._script.append(GatewayResult.succeeded(transaction_id or f"fake_tx_{uuid4().hex}"))

    def decline_next(self, error: str = "card_declined") -> None:
        self._script.append(GatewayResult.failed(error))

    def timeout_next(self, settled: Optional[GatewayResult] = None) -> None:
        self._script.append(_Timeout(settled))

    @property
    def charge_count(self) -> int:
        """Distinct successful charges."""
        return sum(1 for outcome in self._outcomes.values() if outcome.success)

    def charge(self, request: ChargeRequest) -> GatewayResult:
        self.requests.append(request)
        if request.idempotency_key in self._outcomes:
            return self._outcomes[request.idempotency_key]

        outcome = self._script.popleft() if self._script else self._default_outcome(request)
        if isinstance(outcome, _Timeout):
            if outcome.settled is not None:
                self._outcomes[request.idempotency_key] = outcome.settled
            raise GatewayIndeterminate("Simulated gateway timeout")

        self._outcomes[request.idempotency_key] = outcome
        self._logger.debug(
            "Fake charge", extra={"booking_id": request.booking_id, "success": outcome.success}
        )
        return outcome

    def lookup(self, idempotency_key: str) -> Optional[GatewayResult]:
        self.lookups.append(idempotency_key)
        return self._outcomes.get(idempotency_key)

    @staticmethod
    def _default_outcome(request: ChargeRequest) -> GatewayResult:
        if request.card is not None and request.card.last4 == _FAKE_DECLINE_LAST4:
            return GatewayResult.failed("card_declined")
        return GatewayResult.succeeded(f"fake_tx_{uuid4().hex}")
