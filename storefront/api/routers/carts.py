# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import (
    CartItemUpdate,
    CartOut,
    CheckoutIn,
    ItemIn,
    MergeCartIn,
    OrderOut,
)
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService

# the cart is always the caller's own, there is no cart id in the path
router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("/", response_model=CartOut)
def get_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).get_or_create(user.id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).add_item(user.id, payload.product_id, payload.quantity)


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).update_item(user.id, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).remove_item(user.id, item_id)


@router.delete("/", response_model=CartOut)
def clear_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).clear(user.id)


@router.post("/merge", response_model=CartOut)
def merge_cart(
    payload: MergeCartIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).merge(user.id, [(i.product_id, i.quantity) for i in payload.items])


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Places an order from the persisted cart and empties it."""
    return OrderService(db).create_order(user.id, payload.shipping_address.model_dump())
