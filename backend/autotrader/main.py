import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autotrader.config import settings
from autotrader.cycle_scheduler import CycleScheduler
from autotrader.database import init_db
from autotrader.dependencies import close_exchange, get_controller
from autotrader.exceptions import AppError
from autotrader.routers import (
    account_router,
    auto_trading_router,
    cron_router,
    market_data_router,
    trading_router,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Signal Auto-Trader")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(market_data_router.router)
app.include_router(trading_router.router)
app.include_router(auto_trading_router.router)
app.include_router(account_router.router)
app.include_router(cron_router.router)

# Periodic evaluation cycles; created on startup once the controller exists
scheduler: CycleScheduler = None


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.on_event("startup")
async def startup_event():
    global scheduler

    logger.info("🚀 Initializing database...")
    await init_db()
    logger.info("🚀 Database initialized successfully")

    if settings.scheduler_enabled:
        scheduler = CycleScheduler(get_controller(), interval_seconds=settings.cycle_interval_seconds)
        scheduler.start()
        logger.info(f"🚀 Cycle scheduler started - evaluating every {settings.cycle_interval_seconds}s")
    else:
        logger.info("🚀 In-process scheduler disabled; cycles run via /api/cron/trade")

    logger.info("🚀 Startup complete!")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Stopping cycle scheduler...")
    if scheduler:
        await scheduler.stop()
    await close_exchange()
    logger.info("🛑 Shutdown complete")


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "paper_trading": settings.paper_trading}
