import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base, SessionLocal
from shortlink_app.api import links
from shortlink_app.dependencies import build_link_service, get_clock, get_notifier, get_queue
from shortlink_app.exceptions import ShortLinkError
from shortlink_app.logging_config import setup_logging
from shortlink_app.notifications.mail_worker import MailWorker
from shortlink_app.notifications.mailers import create_mailer
from shortlink_app.scheduler import SweepScheduler
from shortlink_app.storage.factory import LinkStoreFactory, LinkStoreBackend

# Import models to ensure they're registered with Base
from shortlink_app.models import User, Link  # noqa: F401


setup_logging(settings.log_level)
logger = logging.getLogger("shortlink_app.main")

# Create database tables
Base.metadata.create_all(bind=engine)


async def sweep_expired_links() -> int:
    """One sweep run with its own database session"""
    db = SessionLocal()
    try:
        store = LinkStoreFactory.create(LinkStoreBackend(settings.store_backend), db=db)
        service = build_link_service(store, get_notifier(get_queue()), get_clock())
        return await service.deactivate_expired_links()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the background sweep and mail worker"""
    background = {}
    
    if settings.sweep_enabled:
        scheduler = SweepScheduler(
            sweep_expired_links,
            clock=get_clock(),
            hour=settings.sweep_hour,
            minute=settings.sweep_minute,
        )
        background["sweep"] = (scheduler, asyncio.create_task(scheduler.start()))
    
    if settings.mail_worker_embedded:
        worker = MailWorker(queue=get_queue(), mailer=create_mailer())
        background["mail"] = (worker, asyncio.create_task(worker.start()))
    
    app.state.background_tasks = background
    
    yield
    
    for name, (runner, task) in background.items():
        runner.stop()
        if not task.done():
            task.cancel()
            try:
                await asyncio.wait_for(task, timeout=5.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                logger.info("Background task %s stopped", name)


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A short link service with click limits and lifetimes, built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    """Render domain errors as {"detail": message} with their status code"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router)
