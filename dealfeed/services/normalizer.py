# dealfeed/services/normalizer.py
"""
Pure mapping from Telegram channel posts to deal records.

Nothing in here touches the network or the database; the photo URL is filled
in later by the media resolver.
"""
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from dealfeed.schemas import ChannelMessage, DealRecord, MessageEntity
from dealfeed.services.affiliate import convert_to_affiliate_link

PRICE_PATTERN = re.compile(r"\$\d+(\.\d{2})?")
URL_PATTERN = re.compile(r"https?://[^\s]+")
TITLE_URL_PATTERN = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)
TITLE_MAX_LENGTH = 100

KNOWN_STORES = [
    "Amazon", "Walmart", "Target", "Best Buy", "Home Depot", "Costco",
    "eBay", "Lowes", "Macys", "Walgreens", "CVS",
]

CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "Electronics": ["electronics", "smartphone", "laptop", "computer", "tablet", "headphone",
                    "earbuds", "camera", "tv", "monitor"],
    "Kitchen": ["kitchen", "cookware", "appliance", "blender", "mixer", "microwave", "oven",
                "knife", "pot", "pan"],
    "Home": ["home", "furniture", "décor", "decor", "bedroom", "bathroom", "living room", "rug",
             "curtain", "sheet"],
    "Clothing": ["clothing", "dress", "shirt", "pants", "jacket", "shoes", "fashion", "apparel",
                 "t-shirt", "outfit"],
    "Beauty": ["beauty", "makeup", "skin care", "skincare", "moisturizer", "sunscreen",
               "foundation", "mascara", "lipstick", "serum"],
    "Toys": ["toys", "games", "play", "children", "kids", "lego", "puzzle", "board game", "doll",
             "action figure"],
    "Sports": ["sports", "fitness", "exercise", "workout", "gym", "outdoor", "camping", "hiking",
               "bike", "basketball"],
    "Books": ["books", "novel", "textbook", "reading", "kindle"],
    "Grocery": ["grocery", "food", "snack", "drink", "beverage", "coffee", "tea", "water", "soda",
                "juice"],
}
DEFAULT_CATEGORY = "Other"


def extract_price(text: str) -> Optional[str]:
    if not text:
        return None
    match = PRICE_PATTERN.search(text)
    return match.group(0) if match else None


def parse_price(price: Optional[str]) -> Optional[float]:
    if not price:
        return None
    digits = re.sub(r"[^0-9.]", "", price)
    try:
        return float(digits)
    except ValueError:
        return None


def extract_store(text: str) -> Optional[str]:
    if not text:
        return None
    lowered = text.lower()
    for store in KNOWN_STORES:
        if store.lower() in lowered:
            return store
    return None


def extract_title(text: str) -> str:
    if not text:
        return ""
    first_line = TITLE_URL_PATTERN.sub("", text).split("\n")[0]
    if len(first_line) > TITLE_MAX_LENGTH:
        return first_line[:TITLE_MAX_LENGTH] + "..."
    return first_line


def extract_category(text: str) -> Optional[str]:
    # Substring match, so "tv" also hits words like "activity"; first hit wins.
    if not text:
        return None
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def _entity_text(text: str, entity: MessageEntity) -> str:
    # Entity offsets count UTF-16 code units
    encoded = text.encode("utf-16-le")
    start, end = entity.offset * 2, (entity.offset + entity.length) * 2
    return encoded[start:end].decode("utf-16-le", errors="ignore")


def extract_links(
    text: str,
    entities: Optional[Iterable[MessageEntity]] = None,
    partner_tag: Optional[str] = None,
) -> List[str]:
    entities = list(entities or [])
    if not entities:
        return URL_PATTERN.findall(text or "")

    links = []
    for entity in entities:
        if entity.type == "url":
            url = _entity_text(text, entity)
        elif entity.type == "text_link" and entity.url:
            url = entity.url
        else:
            continue
        if partner_tag:
            url = convert_to_affiliate_link(url, partner_tag)
        links.append(url)
    return links


def normalize_message(
    message: ChannelMessage,
    partner_tag: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DealRecord:
    if message is None or not message.message_id:
        raise ValueError("Invalid message object")

    now = now or datetime.now(timezone.utc)
    text = message.body
    entities = message.entities or message.caption_entities or []
    price = extract_price(text)
    photo = message.largest_photo

    return DealRecord(
        telegram_message_id=message.message_id,
        channel_id=str(message.chat.id) if message.chat else None,
        text=text,
        title=extract_title(text),
        price=price,
        price_numeric=parse_price(price),
        store=extract_store(text),
        category=extract_category(text) or DEFAULT_CATEGORY,
        links=extract_links(text, entities, partner_tag),
        has_photo=photo is not None,
        photo_file_id=photo.file_id if photo else None,
        photo_url=None,
        date=datetime.fromtimestamp(message.date, tz=timezone.utc) if message.date else now,
        created_at=now,
    )


def filter_new(messages: Iterable[ChannelMessage], watermark: int) -> List[ChannelMessage]:
    """Messages strictly newer than the watermark, oldest first, one per id."""
    fresh: Dict[int, ChannelMessage] = {}
    for message in messages:
        if message and message.message_id and message.message_id > watermark:
            fresh.setdefault(message.message_id, message)
    return [fresh[message_id] for message_id in sorted(fresh)]
