import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from app.core.database import engine, Base
from app.api.v1.router import api_v1_router
from app.core.middleware import request_id_middleware, request_logging_middleware
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.core.tv_assignments import TV_EMAIL_DOMAIN

load_dotenv()


# --- Lifespan events (startup / shutdown) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create missing tables on startup and print the runtime settings
    operators usually need to confirm (TV domain, AI provider keys).
    """
    print("\n" + "=" * 50)
    print("      NEXUS ADMIN API      ")
    print("=" * 50)
    print(f"[STARTUP] TV account domain: {TV_EMAIL_DOMAIN}")
    if not (os.getenv("GOOGLE_API_KEY") or os.getenv("OPENAI_API_KEY")):
        print("[STARTUP] [WARNING] No AI provider key set, /assistant/chat will answer 503")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("[STARTUP] Database schema ready")

    yield

    await engine.dispose()
    print("[SHUTDOWN] Database connections closed\n")


# --- FastAPI application instance ---
app = FastAPI(
    title="Nexus Admin API",
    version="1.0.0",
    lifespan=lifespan,
    description="""
    Back office for a service reseller: clients and their services, phone
    lines, contract templates and e-signature, the shared TV account pool,
    cloud accesses, sales statistics and an operator assistant.

    ## Authentication

    Every /api/v1 route expects the Supabase session token:
    `Authorization: Bearer <token>`. Writes on the catalog, TV pool and
    user administration require `role: admin` in the user metadata.

    ## Rate limits

    | Scope | Limit |
    |---|---|
    | Default (per IP and token) | 60/minute |
    | Template deletion (password check) | 5/15 minutes |
    | /admin/users | 30/minute |
    | CNPJ lookup | 10/minute |
    """
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# --- CORS configuration ---
# Comma-separated list, e.g. "http://localhost:3000,https://admin.example.com"
origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

# The last middleware registered runs first, so the request id is set before logging
app.middleware("http")(request_logging_middleware)
app.middleware("http")(request_id_middleware)


# --- Root and health endpoints ---
@app.get("/")
@limiter.limit("10/minute")
async def root(request: Request, response: Response):
    return {
        "message": "Nexus Admin API",
        "docs": "/docs",
        "api": "/api/v1",
    }


@app.get("/health")
async def health():
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except DBAPIError as e:
        print(f"[HEALTH] [ERROR] Database check failed: {e.__class__.__name__}")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}


app.include_router(api_v1_router, prefix="/api/v1")
