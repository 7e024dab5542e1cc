import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agritrack.config import CORS_ORIGINS
from agritrack.database import create_db_and_tables
from agritrack.errors import InvalidArgument, register_error_handlers
from agritrack.routers.ai import router as ai_router
from agritrack.routers.associations import router as associations_router
from agritrack.routers.auth import router as auth_router
from agritrack.routers.farmers import router as farmers_router
from agritrack.routers.farms import router as farms_router
from agritrack.routers.notifications import router as notifications_router
from agritrack.routers.products import router as products_router
from agritrack.routers.reports import router as reports_router
from agritrack.routers.sectors import router as sectors_router
from agritrack.routers.users import router as users_router
from agritrack.routers.yields import router as yields_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up and creating database tables...")
    create_db_and_tables()
    yield
    logger.info("Shutting down...")


app = FastAPI(title="AgriTrack API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request"
    error = InvalidArgument(message, details="; ".join(e.get("msg", "") for e in errors))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


# Include all the routers under the API prefix
for router in (
    auth_router,
    users_router,
    yields_router,
    farmers_router,
    farms_router,
    products_router,
    sectors_router,
    associations_router,
    notifications_router,
    reports_router,
    ai_router,
):
    app.include_router(router, prefix="/api")


@app.get("/")
def read_root():
    return {"message": "Welcome to the AgriTrack API"}


@app.get("/api")
def api_health():
    return {"success": True, "message": "AgriTrack API is running"}
