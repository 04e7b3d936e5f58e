# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal, init_db
from storefront.data.models import ProductModel, UserModel

PRODUCTS = [
    ("KB-001", "Keyboard", Decimal("199.99"), 25),
    ("MS-001", "Mouse", Decimal("49.50"), 40),
    ("MN-001", "Monitor", Decimal("899.00"), 5),
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            return
        db.add(UserModel(id=1, name="admin", role="ADMIN"))
        db.add(UserModel(id=2, name="customer", role="USER"))
        for sku, name, price, stock in PRODUCTS:
            db.add(ProductModel(sku=sku, name=name, price=price, stock=stock, is_active=True))
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
