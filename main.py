from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings
from database.db import init_db
from dependencies.security import require_api_token

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# quiet HTTP client debug logs
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import attendance, events, grades, registrations

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency (X-Latency-Ms response header)
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (uniform JSON error envelope)
add_error_handlers(app)

# ✅ /v1 routers, all behind the gateway token when API_TOKEN is set
api_dependencies = [Depends(require_api_token)]
app.include_router(events.router,        prefix="/v1", dependencies=api_dependencies)
app.include_router(registrations.router, prefix="/v1", dependencies=api_dependencies)
app.include_router(attendance.router,    prefix="/v1", dependencies=api_dependencies)
app.include_router(grades.router,        prefix="/v1", dependencies=api_dependencies)


# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


@app.on_event("startup")
def _create_tables():
    init_db()
    logger.info(f"{settings.APP_TITLE} {settings.APP_VERSION} started (env={settings.ENV})")


# ✅ root
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - {settings.APP_DESCRIPTION}"}
