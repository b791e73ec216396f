from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from theatre_pos.config import settings
from theatre_pos.db import Base, engine
from theatre_pos.errors import PosError
from theatre_pos.middleware import RequestIdMiddleware
from theatre_pos.routers import admin, auth, orders, payments, printers, products
from theatre_pos.routers import settings as settings_router
from theatre_pos.util.log import get_logger, setup_logging

setup_logging(settings.LOG_LEVEL, settings.DEBUG)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("starting theatre pos", env=settings.APP_ENV)
    # no migrations; tables are created from the models
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("theatre pos stopped")


app = FastAPI(title="Theatre POS API", version="0.1.0", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError):
    if exc.status_code >= 500:
        logger.error("request failed", path=request.url.path, error=type(exc).__name__, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(products.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(printers.router)
app.include_router(settings_router.router)


@app.get("/healthz")
def healthz():
    return {"ok": True}
