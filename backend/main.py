from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from api.v1 import auth, users, admin
from core.config import settings
from db.base import initialize_database
from db.session import engine, SessionLocal
from services.token_service import TokenService
from services.token_store import TokenStore
from sqlalchemy import text
from utils.logging_config import configure_logging, RequestContextMiddleware

# Configure logging with date-based files and TTL retention
logger = configure_logging("employee_voice")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG
)

# Global exception handler to ensure 500s for unexpected errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error at {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# Add logging context middleware to capture user_id and API path
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, tags=["Authentication"])
app.include_router(users.router, tags=["Users"])
app.include_router(admin.router, tags=["Admin"])

@app.on_event("startup")
async def startup_db_client():
    """Create tables (when enabled) and decide the token store mode once."""
    if settings.AUTO_CREATE_TABLES:
        try:
            await initialize_database()
            logger.info("SQL database initialized")
        except Exception as e:
            logger.warning(f"SQL init skipped or failed: {e}")

    token_service = TokenService(TokenStore(SessionLocal))
    mode = await token_service.initialize()
    app.state.token_service = token_service
    logger.info(f"Application startup complete (token store mode: {mode})")

@app.on_event("shutdown")
async def shutdown_db_client():
    await engine.dispose()
    logger.info("Disposed SQL engine")

@app.get("/")
async def root():
    return {"message": settings.APP_NAME, "version": settings.VERSION}

@app.get("/health")
async def health_check(request: Request):
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        db_status = "sql_connected"
    except Exception as e:
        logger.warning(f"Health SQL check failed: {e}")
        db_status = "sql_unavailable"

    token_service = getattr(request.app.state, "token_service", None)
    token_mode = token_service.mode if token_service is not None else "uninitialized"
    status = "healthy" if db_status == "sql_connected" and token_mode == "normal" else "degraded"
    return {"status": status, "database": db_status, "token_store": token_mode}
