"""
PreMeet API.

Run locally:
    uvicorn main:app --reload

The scheduled briefings run in the Celery worker (see ``workers.tasks``) or
through ``POST /api/v1/cron/briefings``; this process only serves requests.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from loguru import logger

from core.config import settings
from core.errors import AppError
from core.logging import configure_logging
from api import router as api_router

configure_logging("api")

app = FastAPI(
    title="PreMeet API",
    version="0.1.0",
    openapi_url="/openapi.json",
    docs_url="/docs" if settings.ENV != "production" else None,
)

# dashboard origin(s); "*" only outside production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(TimeoutError)
async def _timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("{} {} timed out: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=504, content={"detail": "Upstream request timed out"})


@app.on_event("startup")
async def _startup() -> None:
    from core.database import init_db

    await init_db()
    logger.info("PreMeet API started (env={})", settings.ENV)


@app.on_event("shutdown")
async def _shutdown() -> None:
    from core.database import engine

    await engine.dispose()


@app.get("/health", tags=["Health"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
