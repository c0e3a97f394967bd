# dealfeed/controllers/status_controller.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Tuple, Union

from dealfeed.schemas import BotRunSummary, MessageStats, PublicStatus, RunRecord, StatusError, StatusSummary
from dealfeed.services.deal_store import DealStore

logger = logging.getLogger(__name__)

RECENT_RUNS = 10


def calculate_health(runs: List[RunRecord]) -> Tuple[bool, int]:
    score = 100
    healthy = True

    if not runs:
        return False, 60

    avg_success_rate = sum(run.success_rate or 0 for run in runs) / len(runs)
    if avg_success_rate < 0.5:
        score -= 40
        healthy = False
    elif avg_success_rate < 0.8:
        score -= 20
        healthy = avg_success_rate >= 0.7

    recent_errors = sum(1 for run in runs if run.error)
    if recent_errors > 3:
        score -= 30
        healthy = False
    elif recent_errors > 0:
        score -= 10 * recent_errors
        healthy = healthy and recent_errors < 3

    return healthy, max(0, min(100, score))


def summarize_runs(runs: List[RunRecord]) -> BotRunSummary:
    if not runs:
        return BotRunSummary()

    found = sum(run.messages_found for run in runs)
    processed = sum(run.messages_processed for run in runs)
    return BotRunSummary(
        count=len(runs),
        total_messages_found=found,
        total_messages_processed=processed,
        success_rate=processed / found if found > 0 else 1.0,
        error_count=sum(1 for run in runs if run.error),
        latest_run=runs[0],
        all=runs,
    )


def message_stats(store: DealStore) -> MessageStats:
    since = datetime.now(timezone.utc) - timedelta(hours=24)
    return MessageStats(
        last_24h=store.count_messages(since=since),
        total=store.count_messages(),
        last_message_at=store.latest_message_at(),
    )


def _status_error(e: Exception) -> StatusError:
    return StatusError(error=str(e), last_updated=datetime.now(timezone.utc).isoformat())


def get_health_summary(store: DealStore) -> Union[StatusSummary, StatusError]:
    try:
        runs = store.recent_runs(limit=RECENT_RUNS)
        healthy, score = calculate_health(runs)
        return StatusSummary(
            status="healthy" if healthy else "issues_detected",
            health_score=score,
            bot_runs=summarize_runs(runs),
            message_stats=message_stats(store),
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
    except Exception as e:
        logger.error("Error getting health summary", exc_info=True)
        return _status_error(e)


def get_public_status(store: DealStore) -> Union[PublicStatus, StatusError]:
    summary = get_health_summary(store)
    if isinstance(summary, StatusError):
        return summary
    return PublicStatus(
        status=summary.status,
        health_score=summary.health_score,
        message_count=summary.message_stats.last_24h,
        last_updated=summary.last_updated,
    )
