# storefront/api/routers/products.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import ProductCreate, ProductOut, StockAdjustIn
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.post("/", response_model=ProductOut, status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return CatalogService(db).create_product(payload)


@router.get("/{product_id}", response_model=ProductOut, dependencies=[Depends(get_current_user)])
def get_product(product_id: int, db: Session = Depends(get_db)):
    return CatalogService(db).get_product(product_id)


@router.post("/{product_id}/stock", response_model=ProductOut, dependencies=[Depends(require_admin)])
def adjust_stock(product_id: int, payload: StockAdjustIn, db: Session = Depends(get_db)):
    return CatalogService(db).adjust_stock(product_id, payload.delta)
