from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup
from pydantic import ValidationError

from .config import CATEGORIES, HTTP_TIMEOUT, RANKINGS_BASE_URL
from .errors import FetchFailed
from .models import Entry

logger = logging.getLogger(__name__)

ROW_SELECTOR = "div.grid.grid-cols-12.items-center"

HEADERS = {
    "User-Agent": "rankwatch/1.0 (ranking snapshots)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

_SUFFIX = {"B": 1e9, "M": 1e6, "K": 1e3}


# ----------------------------
# Value parsing
# ----------------------------
def parse_token_value(token_str: Optional[str]) -> int:
    """
    "17.3B" -> 17300000000, "850K" -> 850000. Anything unparseable is 0.
    """
    if not token_str:
        return 0
    s = token_str.strip()
    num_str = re.sub(r"[^\d.-]", "", s)
    try:
        num = float(num_str)
    except ValueError:
        return 0
    num *= _SUFFIX.get(s[-1:].upper(), 1)
    return max(0, int(round(num)))


def parse_percent(text: Optional[str]) -> Optional[float]:
    num_str = re.sub(r"[^\d.-]", "", text or "")
    if not num_str:
        return None
    try:
        return float(num_str)
    except ValueError:
        return None


def _int_or_zero(text: Optional[str]) -> int:
    m = re.match(r"\s*(\d+)", text or "")
    return int(m.group(1)) if m else 0


def _text(el) -> Optional[str]:
    if el is None:
        return None
    t = el.get_text(strip=True)
    return t or None


def category_url(category: str, base_url: Optional[str] = None) -> str:
    base = (base_url or RANKINGS_BASE_URL).rstrip("/")
    return base if category == "all" else f"{base}/{category}"


# ----------------------------
# HTML extraction
# ----------------------------
def parse_row(row) -> Dict[str, Any]:
    rank_el = row.select_one('div[class*="col-span-1"]')
    name_link_el = row.select_one('div[class*="col-span-7"] a')
    desc_el = row.select_one('div[class*="col-span-7"] div.truncate')

    token_info_el = row.select_one('div[class*="col-span-4"]')
    token_amount_el = token_info_el.select_one('div:not([class*="mt-1"])') if token_info_el else None
    token_change_el = token_info_el.select_one('div[title*="Increase"] span') if token_info_el else None

    name = _text(name_link_el)
    link = name_link_el.get("href") if name_link_el is not None else None
    link = link or None

    description = _text(desc_el)
    context = None
    if description and " • " in description:
        head, tail = description.split(" • ", 1)
        description = head.strip()
        digits = re.sub(r"\D", "", tail)
        if digits:
            context = int(digits)

    token_amount = _text(token_amount_el)
    if token_amount:
        token_amount = token_amount.replace("tokens", "").strip()

    entry = Entry(
        rank=_int_or_zero(_text(rank_el)),
        name=name,
        link=link,
        description=description,
        context=context,
        tokens=parse_token_value(token_amount),
        token_change_percent=parse_percent(_text(token_change_el)),
        id=link.rstrip("/").split("/")[-1] if link else "",
    )
    return entry.to_json_dict()


def parse_rankings_html(html: str) -> List[Dict[str, Any]]:
    soup = BeautifulSoup(html or "", "lxml")
    entries: List[Dict[str, Any]] = []
    for row in soup.select(ROW_SELECTOR):
        try:
            entries.append(parse_row(row))
        except ValidationError:
            logger.warning("Skipping unparseable ranking row: %s", row.get_text(" ", strip=True)[:120])
    return entries


# ----------------------------
# Network
# ----------------------------
def fetch_category(
    session: requests.Session,
    category: str,
    *,
    base_url: Optional[str] = None,
    timeout: float = HTTP_TIMEOUT,
) -> List[Dict[str, Any]]:
    url = category_url(category, base_url)
    logger.info("Scraping %s...", url)
    r = session.get(url, headers=HEADERS, timeout=timeout, allow_redirects=True)
    r.raise_for_status()
    entries = parse_rankings_html(r.text)
    if not entries:
        logger.warning("No ranking rows found for %s (%s)", category, url)
    return entries


def fetch_rankings(
    categories: Optional[List[str]] = None,
    *,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    timeout: float = HTTP_TIMEOUT,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Fetch every category and return category -> entries.

    A category that cannot be fetched comes back as an empty list; only a
    failure of the whole run raises FetchFailed.
    """
    cats = list(categories if categories is not None else CATEGORIES)
    own_session = session is None
    try:
        sess = session or requests.Session()
    except Exception as e:
        raise FetchFailed(f"cannot open HTTP session: {e}") from e

    results: Dict[str, List[Dict[str, Any]]] = {}
    try:
        for cat in cats:
            try:
                results[cat] = fetch_category(sess, cat, base_url=base_url, timeout=timeout)
                logger.info("Scraped %d entries for %s", len(results[cat]), cat)
            except Exception:
                logger.exception("Error scraping category %s", cat)
                results[cat] = []
    finally:
        if own_session:
            sess.close()

    logger.info("Scraping finished for %d categories", len(results))
    return results
