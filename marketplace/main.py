import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from marketplace.config import Settings
from marketplace.database import close_db, init_indexes
from marketplace.routers import (
    address, admin_accounts, auth, bank_accounts, categories,
    chat, discounts, orders, products, profiles, reviews,
)
from marketplace.telemetry import setup_tracing

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("marketplace")

setup_tracing("marketplace")

app = FastAPI(title="Marketplace", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
Instrumentator().instrument(app).expose(app)  # /metrics

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(reviews.router)
app.include_router(categories.router)
app.include_router(orders.router)
app.include_router(bank_accounts.router)
app.include_router(discounts.router)
app.include_router(chat.router)
app.include_router(profiles.router)
app.include_router(address.router)
app.include_router(admin_accounts.router)


@app.on_event("startup")
async def startup_event():
    await init_indexes()


@app.on_event("shutdown")
async def shutdown_event():
    close_db()


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "ok"}
