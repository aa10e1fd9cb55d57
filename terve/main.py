from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import time
import structlog

from terve.db import init_db
from terve.errors import register_error_handlers
from terve.routers import auth as auth_router
from terve.routers import drills as drills_router
from terve.routers import exams as exams_router
from terve.routers import flashcards as flashcards_router
from terve.routers import reading as reading_router
from terve.routers import stats as stats_router
from terve.services.logging import bind_request_context, configure_logging, log_api_request
from terve.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from terve.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="Terve",
    description="Finnish vocabulary, grammar, reading and exam practice",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
register_error_handlers(app)


def route_template(request: Request) -> str:
    """Matched route template, or the raw path when no route matched"""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


# Request logging, tracing id and metrics
@app.middleware("http")
async def observe_request(request: Request, call_next):
    start_time = time.perf_counter()
    request_id = bind_request_context(request)
    log_api_request(request)

    response = await call_next(request)

    process_time = time.perf_counter() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id

    endpoint = route_template(request)
    REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(process_time)

    response.response_time = process_time
    log_api_request(request, response)
    return response


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


# ----------------- Startup -----------------
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("application_started")


# ----------------- Routers -----------------
app.include_router(auth_router.router)
app.include_router(flashcards_router.router)
app.include_router(exams_router.router)
app.include_router(stats_router.router)
app.include_router(reading_router.router)
app.include_router(drills_router.nouns_router)
app.include_router(drills_router.verbs_router)
