# dealfeed/services/affiliate.py
import re
from typing import Optional

ASIN_PATTERN = re.compile(r"(?:/dp/|/gp/product/|/ASIN/)([A-Z0-9]{10})(?:[/?]|$)", re.IGNORECASE)
TAG_PARAM_PATTERN = re.compile(r"([?&])tag=[^&]*(&|$)")


def extract_asin(url: str) -> Optional[str]:
    if not url:
        return None
    match = ASIN_PATTERN.search(url)
    return match.group(1) if match else None


def affiliate_link_for_asin(asin: str, partner_tag: str) -> str:
    return f"https://www.amazon.com/dp/{asin}/?tag={partner_tag}"


def convert_to_affiliate_link(url: str, partner_tag: str) -> str:
    """
    Rewrites an Amazon product URL so it carries our partner tag.
    Non-Amazon URLs and URLs already carrying the tag come back unchanged.
    """
    if not url or "amazon.com" not in url or not partner_tag:
        return url

    if f"tag={partner_tag}" in url:
        return url

    # Drop whatever tag the link was shared with
    clean_url = TAG_PARAM_PATTERN.sub(lambda m: m.group(1) if m.group(2) else "", url)
    clean_url = clean_url.rstrip("?&")

    asin = extract_asin(clean_url)
    if asin:
        return affiliate_link_for_asin(asin, partner_tag)

    separator = "&" if "?" in clean_url else "?"
    return f"{clean_url}{separator}tag={partner_tag}"
