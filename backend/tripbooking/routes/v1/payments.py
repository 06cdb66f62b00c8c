# backend/tripbooking/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST / - Charge a booking and confirm it (tourist)
    GET /booking/{booking_id} - Payment for a booking
    GET /methods - Saved payment methods (tourist)
    DELETE /methods/{method_id} - Remove a saved method (tourist)
    PUT /methods/{method_id}/default - Make a saved method the default (tourist)
    GET /reconciliations - Reconciliation queue (admin)
    POST /reconciliations/{case_id}/resolve - Apply a recorded charge (admin)
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ...api.dependencies import (
    get_current_actor,
    get_payment_service,
    get_reconciliation_service,
    get_saved_payment_method_service,
    require_role,
)
from ...core.enums import ReconciliationStatus, RoleName
from ...principal import Actor
from ...schemas.common import SuccessResponse
from ...schemas.payment import (
    PaymentResponse,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    ReconciliationCaseResponse,
    SavedPaymentMethodResponse,
)
from ...services.payment_service import PaymentService
from ...services.reconciliation_service import ReconciliationService
from ...services.saved_payment_method_service import SavedPaymentMethodService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])

require_tourist = require_role(RoleName.TOURIST)
require_admin = require_role(RoleName.ADMIN)


@router.post("", response_model=ProcessPaymentResponse)
async def process_payment(
    payload: ProcessPaymentRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    payment_service: PaymentService = Depends(get_payment_service),
) -> ProcessPaymentResponse:
    card = payload.card_details.to_card() if payload.card_details else None
    outcome = await asyncio.to_thread(
        payment_service.process_payment,
        actor,
        payload.booking_id,
        payload.method,
        card,
        payload.save_payment_method,
    )
    return ProcessPaymentResponse(
        payment_id=outcome.payment_id,
        transaction_id=outcome.transaction_id,
        status=outcome.status.value,
    )


@router.get("/booking/{booking_id}", response_model=PaymentResponse)
async def get_booking_payment(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    payment = await asyncio.to_thread(payment_service.get_payment_for_booking, actor, booking_id)
    return PaymentResponse.model_validate(payment)


@router.get("/methods", response_model=List[SavedPaymentMethodResponse])
async def list_payment_methods(
    actor: Actor = Depends(require_tourist),
    methods_service: SavedPaymentMethodService = Depends(get_saved_payment_method_service),
) -> List[SavedPaymentMethodResponse]:
    methods = await asyncio.to_thread(methods_service.list_methods, actor)
    return [SavedPaymentMethodResponse.model_validate(m) for m in methods]


@router.delete("/methods/{method_id}", response_model=SuccessResponse)
async def delete_payment_method(
    method_id: str,
    actor: Actor = Depends(require_tourist),
    methods_service: SavedPaymentMethodService = Depends(get_saved_payment_method_service),
) -> SuccessResponse:
    await asyncio.to_thread(methods_service.delete_method, actor, method_id)
    return SuccessResponse(message="Payment method deleted")


@router.put("/methods/{method_id}/default", response_model=SavedPaymentMethodResponse)
async def set_default_payment_method(
    method_id: str,
    actor: Actor = Depends(require_tourist),
    methods_service: SavedPaymentMethodService = Depends(get_saved_payment_method_service),
) -> SavedPaymentMethodResponse:
    method = await asyncio.to_thread(methods_service.set_default, actor, method_id)
    return SavedPaymentMethodResponse.model_validate(method)


@router.get("/reconciliations", response_model=List[ReconciliationCaseResponse])
async def list_reconciliation_cases(
    status_filter: Optional[ReconciliationStatus] = Query(ReconciliationStatus.OPEN, alias="status"),
    actor: Actor = Depends(require_admin),
    reconciliation_service: ReconciliationService = Depends(get_reconciliation_service),
) -> List[ReconciliationCaseResponse]:
    cases = await asyncio.to_thread(reconciliation_service.list_cases, actor, status_filter)
    return [ReconciliationCaseResponse.model_validate(c) for c in cases]


@router.post("/reconciliations/{case_id}/resolve", response_model=ReconciliationCaseResponse)
async def resolve_reconciliation_case(
    case_id: str,
    actor: Actor = Depends(require_admin),
    reconciliation_service: ReconciliationService = Depends(get_reconciliation_service),
) -> ReconciliationCaseResponse:
    case = await asyncio.to_thread(reconciliation_service.resolve, actor, case_id)
    logger.info("Reconciliation case %s resolved by %s", case_id, actor.user_id)
    return ReconciliationCaseResponse.model_validate(case)
