# storefront/api/__init__.py
from storefront.api.routers import health, users, products, carts, orders, payments

ROUTERS = (
    health.router,
    users.router,
    products.router,
    carts.router,
    orders.router,
    payments.router,
)
