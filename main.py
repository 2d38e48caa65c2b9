import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from microfin.core.database import Base, async_engine, close_redis
from microfin.core.config import settings
from microfin.core.exceptions import register_exception_handlers
from microfin.core.logging import setup_logging
from microfin.modules.users.router import router as auth_router
from microfin.modules.loans.router import router as loans_router
from microfin.modules.admin.router import router as admin_router
from microfin.modules.agent.router import router as agent_router

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger("microfin")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    async with async_engine.begin() as conn:
        # Create all tables (for development - use Alembic in production)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENVIRONMENT})")

    yield

    # Shutdown
    await close_redis()
    await async_engine.dispose()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Microfinance loan tracking: agents, borrowers, loans, installments and cash book",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(loans_router)
app.include_router(admin_router)
app.include_router(agent_router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "currency": settings.CURRENCY,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
