"""
MyMemoryCard — FastAPI Application Entry Point.

Social game-cataloguing API:
  - Accounts with JWT authentication and XP-based levels
  - Game catalog mirrored from RAWG, covers enriched from IGDB
  - Personal collections, memories and reviews
  - Likes, comments and follows
  - Admin moderation with cascading account deletion
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import create_indexes, create_tables, engine
from limiter import limiter
from routes import admin, auth, collections, comments, follows, games, likes, memories, reviews, users

# ── Logging ──────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
)
logger = logging.getLogger(__name__)


# ── App Lifecycle ────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(application: FastAPI):
    """Startup / shutdown lifecycle handler."""
    # Startup
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✓ Database connected successfully")
    except Exception as e:
        logger.error("✗ Database connection failed: %s", e)

    create_tables()
    create_indexes()

    yield  # ← app is running

    # Shutdown
    engine.dispose()
    logger.info("Database connections closed")


# ── New Relic (Monitoring) ───────────────────────────────────────
try:
    import newrelic.agent
    newrelic.agent.initialize(settings.new_relic_config_file)
    logger.info("✓ New Relic agent initialized")
except Exception:
    logger.warning("⚠ New Relic agent skipped (ensure %s exists and dependency installed)",
                   settings.new_relic_config_file)

# ── FastAPI App ──────────────────────────────────────────────────

app = FastAPI(
    title="MyMemoryCard API",
    description="Catalog your games, share memories and reviews, follow other players",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: allow the configured frontend origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ── Error Rendering ──────────────────────────────────────────────

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Données invalides.", "details": details})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Erreur serveur interne."})


# ── Routes ───────────────────────────────────────────────────────

for module in (auth, users, games, collections, memories, reviews, likes, comments, follows, admin):
    app.include_router(module.router)


@app.get("/", tags=["Health"])
def root():
    """API banner with a summary of the mounted resources."""
    return {
        "message": "Bienvenue sur l'API MyMemoryCard",
        "version": app.version,
        "endpoints": {
            "auth": "/auth",
            "users": "/users",
            "games": "/games",
            "collections": "/collections",
            "memories": "/memories",
            "reviews": "/reviews",
            "likes": "/likes",
            "comments": "/comments",
            "follows": "/follows",
            "admin": "/admin",
        },
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Simple liveness probe."""
    return {"status": "ok", "service": "mymemorycard-api"}


if __name__ == "__main__":
    import uvicorn
    # Run the app with auto-reload enabled
    uvicorn.run("app:app", host="127.0.0.1", port=8000, reload=True)
