from datetime import datetime, timezone

from dealfeed.controllers.feed_controller import affiliate_tag, list_feed_messages, to_feed_message
from dealfeed.controllers.status_controller import calculate_health, get_health_summary, summarize_runs
from dealfeed.schemas import DealRecord, RunRecord
from dealfeed.services.deal_store import FeedQuery, InMemoryDealStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _run(found=5, processed=5, error=None):
    return RunRecord(
        run_timestamp=NOW,
        messages_found=found,
        messages_processed=processed,
        success_rate=processed / found if found else 1.0,
        error=error,
    )


class BrokenStore(InMemoryDealStore):
    def list_messages(self, query):
        raise RuntimeError("connection refused")


def test_to_feed_message_defaults():
    record = DealRecord(telegram_message_id=3, date=NOW, created_at=NOW)

    message = to_feed_message(record)

    assert message.title == "Product Deal"
    assert message.price == "Check price"
    assert message.image_url == "/images/deals/deal-placeholder.png"
    assert message.store == "Unknown"
    assert message.date == int(NOW.timestamp() * 1000)


def test_affiliate_tag_from_url():
    assert affiliate_tag("https://www.amazon.com/dp/B0/?tag=abc-20&x=1") == "abc-20"
    assert affiliate_tag("https://target.com/p") == ""


def test_feed_from_store():
    store = InMemoryDealStore(initial_watermark=0)
    store.insert_message(DealRecord(telegram_message_id=9, title="TV", links=["https://x.com"], date=NOW,
                                    created_at=NOW))

    response = list_feed_messages(store, FeedQuery())

    assert response.metadata.source == "database"
    assert [m.id for m in response.messages] == [9]
    assert response.pagination.has_more is False


def test_feed_falls_back_when_store_is_empty():
    response = list_feed_messages(InMemoryDealStore(), FeedQuery(limit=2))

    assert response.metadata.source == "mock_fallback"
    assert len(response.messages) == 2
    assert response.pagination.total == 5
    assert response.pagination.has_more is True


def test_feed_falls_back_on_store_error():
    response = list_feed_messages(BrokenStore(), FeedQuery())

    assert response.metadata.source == "mock_db_error"
    assert response.metadata.error == "connection refused"
    assert response.messages


def test_dev_mode_feed_applies_filters_to_placeholders():
    response = list_feed_messages(InMemoryDealStore(), FeedQuery(store="Home Depot"), dev_mode=True)

    assert response.metadata.source == "mock"
    assert [m.store for m in response.messages] == ["Home Depot"]


def test_health_without_runs_is_unhealthy():
    assert calculate_health([]) == (False, 60)


def test_health_of_clean_runs():
    assert calculate_health([_run() for _ in range(10)]) == (True, 100)


def test_health_penalizes_errors_and_low_success():
    runs = [_run(processed=0, error="boom") for _ in range(4)] + [_run() for _ in range(6)]

    healthy, score = calculate_health(runs)

    # average success 0.6 -> -20, four erroring runs -> -30
    assert healthy is False
    assert score == 50


def test_summarize_runs_totals():
    summary = summarize_runs([_run(found=4, processed=2, error="x"), _run(found=0, processed=0)])

    assert summary.count == 2
    assert summary.total_messages_found == 4
    assert summary.success_rate == 0.5
    assert summary.error_count == 1


def test_health_summary_reads_store():
    store = InMemoryDealStore(initial_watermark=0)
    store.log_run(_run())
    store.insert_message(DealRecord(telegram_message_id=1, date=NOW, created_at=datetime.now(timezone.utc)))

    summary = get_health_summary(store)

    assert summary.status == "healthy"
    assert summary.message_stats.total == 1
    assert summary.message_stats.last_24h == 1
