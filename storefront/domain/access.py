# storefront/domain/access.py
"""
Ownership / role predicate for orders.

Evaluated once per operation. A regular user asking for someone else's order
gets NOT_FOUND_FOR_CALLER, so the existence of other users' orders never leaks.
"""
import enum

from storefront.domain.errors import Forbidden, NotFound


class Access(enum.Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"
    NOT_FOUND_FOR_CALLER = "not_found_for_caller"


def order_access(order, user, admin_only: bool = False) -> Access:
    if user.is_admin:
        return Access.ALLOWED
    if order.user_id != user.id:
        return Access.NOT_FOUND_FOR_CALLER
    if admin_only:
        return Access.FORBIDDEN
    return Access.ALLOWED


def ensure_access(access: Access, ident: int, what: str = "Order") -> None:
    if access is Access.NOT_FOUND_FOR_CALLER:
        raise NotFound(f"{what} {ident} not found")
    if access is Access.FORBIDDEN:
        raise Forbidden("Administrator role required for this operation")
