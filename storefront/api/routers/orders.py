# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.order_status import OrderStatus
from storefront.domain.schemas import OrderCreate, OrderOut, OrderPage, OrderUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).create_order(
        user.id,
        payload.shipping_address.model_dump(),
        items=[i.model_dump() for i in payload.items],
    )


@router.get("/admin/all", response_model=OrderPage)
def list_all_orders(
    status: OrderStatus | None = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_service(db).list_orders(admin, status=status, page=page, limit=limit, all_users=True)


@router.get("/", response_model=OrderPage)
def list_orders(
    status: OrderStatus | None = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).list_orders(user, status=status, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).get_order(order_id, user)


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    payload: OrderUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).update_order(
        order_id,
        user,
        status=payload.status,
        shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
    )


@router.delete("/{order_id}", response_model=OrderOut)
def delete_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).delete_order(order_id, user)
