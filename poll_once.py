# poll_once.py
"""
Run a single poll cycle from the command line.
Meant for cron-style schedulers; exits non-zero when the run fails.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone

from dealfeed.config import settings
from dealfeed.controllers.poller_controller import run_scheduled_poll
from dealfeed.database import Base, SessionLocal, engine
from dealfeed.logging_config import init_logging


async def poll_once() -> int:
    db = None
    if engine is not None:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()

    try:
        result = await run_scheduled_poll(db, settings)
    except Exception as e:
        print(json.dumps({
            "error": str(e),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dev_mode": settings.dev_mode,
        }))
        return 1
    finally:
        if db is not None:
            db.close()

    print(json.dumps({
        "processed": result.processed,
        "total": result.total,
        "source": result.source,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dev_mode": settings.dev_mode,
    }))
    return 0


if __name__ == "__main__":
    init_logging(level=settings.log_level)
    sys.exit(asyncio.run(poll_once()))
