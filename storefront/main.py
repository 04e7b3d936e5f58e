# storefront/main.py
from contextlib import asynccontextmanager

import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.api import ROUTERS
from storefront.data.database import engine, init_db
from storefront.domain.errors import ShopError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield
    engine.dispose()


async def shop_error_handler(request: Request, exc: ShopError):
    logger.info(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def gateway_error_handler(request: Request, exc: requests.RequestException):
    logger.error(f"Payment gateway call failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "payment_gateway_unavailable", "detail": "Payment gateway request failed"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Orders",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(requests.RequestException, gateway_error_handler)

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
