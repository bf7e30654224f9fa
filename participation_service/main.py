# participation_service/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from participation_service.api.v1.api import api_router
from participation_service.core.config import settings
from participation_service.core.limiter import limiter
from participation_service.graphql.router import graphql_router
from participation_service.middleware import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Participation service starting up (env={settings.ENV})")
    yield
    logger.info("Participation service shutting down")


app = FastAPI(
    title="Participation & Capacity Service",
    version="1.0.0",
    description="""
        Tracks who is attending each session and how many slots remain.

        ## Features

        * **Members**: Authenticated join/leave with idempotent retries
        * **Public RSVPs**: Anonymous attendees via a shareable link
        * **Shared capacity**: Both kinds count against one limit, never overbooked
        * **Live updates**: Capacity snapshots over Redis and a GraphQL subscription

        ## Authentication

        Member endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        Endpoints under `/public/` need no account and are rate limited.
        Endpoints under `/internal/` require the `X-Internal-Api-Key` header.
        """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Allow specific origins
    allow_credentials=True,  # Allow cookies and authorization headers
    allow_methods=["*"],  # Allow all methods (GET, POST, etc.)
    allow_headers=["*"],  # Allow all headers
)

app.include_router(api_router, prefix="/api/v1")
app.include_router(graphql_router, prefix="/graphql")


@app.get("/health")
def health():
    """Liveness check endpoint"""
    return {"status": "healthy", "service": "participation-service"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
