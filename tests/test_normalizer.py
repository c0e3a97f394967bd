from datetime import datetime, timezone

import pytest

from dealfeed.schemas import ChannelMessage, MessageEntity
from dealfeed.services.normalizer import (
    extract_category,
    extract_links,
    extract_price,
    extract_store,
    extract_title,
    filter_new,
    normalize_message,
    parse_price,
)
from tests.helpers import CHANNEL_ID, make_post


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Now only $189.99 (was $249)", "$189.99"),
        ("Grab it for $20 today", "$20"),
        ("No price here", None),
        ("", None),
    ],
)
def test_extract_price(text, expected):
    assert extract_price(text) == expected


def test_parse_price_handles_missing_and_formatted_values():
    assert parse_price("$129.99") == 129.99
    assert parse_price(None) is None
    assert parse_price("$") is None


def test_extract_store_is_case_insensitive_and_ordered():
    assert extract_store("deal at BEST BUY and target") == "Target"
    assert extract_store("walmart rollback") == "Walmart"
    assert extract_store("local shop") is None


def test_extract_title_strips_urls_and_truncates():
    text = "Great deal https://amzn.to/abc here\nsecond line"
    assert extract_title(text) == "Great deal  here"

    long_line = "x" * 150
    title = extract_title(long_line)
    assert title == "x" * 100 + "..."


def test_extract_category_defaults_to_other():
    assert extract_category("New laptop sale") == "Electronics"
    assert extract_category("Blender blowout") == "Kitchen"
    assert extract_category("xyz") == "Other"
    assert extract_category("") is None


def test_extract_links_without_entities_scans_text():
    assert extract_links("see https://a.com/x and http://b.org") == ["https://a.com/x", "http://b.org"]


def test_extract_links_uses_entities_and_tags_amazon_links():
    text = "🔥 Deal: https://www.amazon.com/dp/B0ABCDEFGH?tag=other-20 more"
    start = len("🔥 Deal: ".encode("utf-16-le")) // 2
    url = "https://www.amazon.com/dp/B0ABCDEFGH?tag=other-20"
    entities = [
        MessageEntity(type="url", offset=start, length=len(url)),
        MessageEntity(type="text_link", offset=0, length=2, url="https://target.com/p/1"),
        MessageEntity(type="bold", offset=0, length=2),
    ]

    links = extract_links(text, entities, partner_tag="ours-20")

    assert links == [
        "https://www.amazon.com/dp/B0ABCDEFGH/?tag=ours-20",
        "https://target.com/p/1",
    ]


def test_normalize_message_maps_fields():
    post = make_post(
        42,
        text="⚡ Ninja blender only $59.99 at Target https://target.com/x",
        photo=True,
        date=1_700_000_000,
    )
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    record = normalize_message(post, now=now)

    assert record.telegram_message_id == 42
    assert record.channel_id == str(CHANNEL_ID)
    assert record.price == "$59.99"
    assert record.price_numeric == 59.99
    assert record.store == "Target"
    assert record.category == "Kitchen"
    assert record.links == ["https://target.com/x"]
    assert record.has_photo is True
    assert record.photo_file_id == "large-42"
    assert record.photo_url is None
    assert record.date == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert record.created_at == now


def test_normalize_message_uses_caption_when_text_missing():
    post = ChannelMessage(message_id=7, caption="Costco deal $5", date=None)
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    record = normalize_message(post, now=now)

    assert record.text == "Costco deal $5"
    assert record.store == "Costco"
    assert record.channel_id is None
    assert record.has_photo is False
    assert record.date == now


def test_normalize_message_rejects_missing_id():
    with pytest.raises(ValueError):
        normalize_message(ChannelMessage(message_id=0, text="x"))


def test_filter_new_drops_watermarked_and_sorts_ascending():
    posts = [make_post(12), make_post(9), make_post(10), make_post(11), make_post(12)]

    fresh = filter_new(posts, watermark=10)

    assert [p.message_id for p in fresh] == [11, 12]
    assert all(p.message_id > 10 for p in fresh)
