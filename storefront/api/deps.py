# storefront/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import Forbidden
from storefront.repos.user_repo import UserRepo
from storefront.services.payment_client import PaymentGatewayClient


def get_current_user(
    x_user_id: int | None = Header(default=None),
    db: Session = Depends(get_db),
) -> UserModel:
    """
    The caller's identity. Tokens are verified upstream, which forwards the
    authenticated user id in X-User-Id.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = UserRepo(db).get_user(x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if not user.is_admin:
        raise Forbidden("Administrator role required")
    return user


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient()
