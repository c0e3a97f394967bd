# dealfeed/main.py
from fastapi import FastAPI

from .config import settings
from .database import Base, engine
from .logging_config import init_logging
from .routers import feed_router, poller_router, status_router, webhook_router

init_logging(level=settings.log_level)

# Create all database tables on startup
if engine is not None:
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Telegram Deal Feed",
    version="1.0.0"
)

app.include_router(poller_router.router, tags=["Poller"])
app.include_router(webhook_router.router, prefix="/telegram", tags=["Webhook"])
app.include_router(feed_router.router, prefix="/telegram", tags=["Feed"])
app.include_router(status_router.router, prefix="/telegram", tags=["Status"])


@app.get("/")
def read_root():
    return {
        "message": "Deal feed poller is running. Use the /poll endpoint.",
        "dev_mode": settings.dev_mode,
    }
