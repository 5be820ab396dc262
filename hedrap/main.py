# hedrap/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .db import init_db
from .errors import HedRapError, NotConfigured
from .routes.battles import router as battles_router
from .routes.governance import router as governance_router
from .routes.rappers import router as rappers_router
from .routes.tickets import router as tickets_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("hedrap")


@asynccontextmanager
async def lifespan(app):
    try:
        config.validate_chain_config()
    except NotConfigured as e:
        logger.error("Startup aborted: %s", e.message)
        raise SystemExit(1) from e

    config.log_config()
    init_db()
    logger.info("HedRap API ready (network=%s)", config.HEDERA_NETWORK)
    yield
    logger.info("HedRap API shutting down")


app = FastAPI(title="HedRap Arena API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


# ────────────────────────────────────────────────────────────
# Every error renders as {"error": message}
# ────────────────────────────────────────────────────────────


@app.exception_handler(HedRapError)
async def hedrap_error_handler(request: Request, exc: HedRapError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


@app.get("/healthz")
def healthz():
    return {"ok": "true"}


@app.get("/api/health")
def health():
    return {"status": "ok", "message": "HedRap API is running"}


app.include_router(battles_router)
app.include_router(governance_router)
app.include_router(rappers_router)
app.include_router(tickets_router)
