# storefront/api/routers/payments.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_payment_gateway, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import PaymentConfirmIn, PaymentIntentIn, PaymentIntentOut, PaymentOut
from storefront.services.payment_client import PaymentGatewayClient
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(db: Session, gateway: PaymentGatewayClient):
    return PaymentService(db, gateway=gateway)


@router.post("/intents", response_model=PaymentIntentOut, status_code=201)
def create_intent(
    payload: PaymentIntentIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    return get_service(db, gateway).create_intent(payload.order_id, user)


@router.post("/confirm", response_model=PaymentOut, dependencies=[Depends(require_admin)])
def confirm_payment(
    payload: PaymentConfirmIn,
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    """Gateway result callback, relayed by the internal webhook consumer."""
    return get_service(db, gateway).confirm(payload.intent_id, payload.succeeded)


@router.get("/order/{order_id}", response_model=List[PaymentOut])
def list_order_payments(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    return get_service(db, gateway).list_for_order(order_id, user)


@router.get("/", response_model=List[PaymentOut])
def list_my_payments(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    return get_service(db, gateway).list_for_user(user)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
):
    return get_service(db, gateway).get_payment(payment_id, user)
