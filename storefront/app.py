# storefront/app.py

import os
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv()

from storefront.db import engine, Base
from storefront.errors import register_exception_handlers
from storefront.logger import logger
from storefront import activity, auth, notifications, orders, products, tickets, users


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("[APP] tables ready")
    yield
    await engine.dispose()

app = FastAPI(
    title="Codebook Storefront Backend",
    lifespan=lifespan,
)

# the storefront is served from arbitrary origins and sends bearer tokens,
# never cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def allow_any_origin(request: Request, call_next):
    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response

register_exception_handlers(app)

# Routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(orders.router)
app.include_router(tickets.router)
app.include_router(notifications.router)
app.include_router(activity.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(
        "storefront.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=True,
    )
