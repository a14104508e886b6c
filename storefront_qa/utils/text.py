"""Parsing helpers for text scraped from product pages."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

_PRICE_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_SIZE_SPLIT_RE = re.compile(r"\s*[x×*]\s*", re.IGNORECASE)
_UNIT_SUFFIX_RE = re.compile(r"\s*(mm|cm|in|inch|inches|\")\s*$", re.IGNORECASE)
_SHIPPING_RE = re.compile(r"dispatched around (.+)", re.IGNORECASE)
_CART_COUNT_RE = re.compile(r"\((\d+)\)")


def parse_price(text: str | None) -> Decimal | None:
    """Extract the first amount from a price label like ``'S$1,204.50'``."""
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return None


def parse_size(label: str | None) -> tuple[Decimal, Decimal] | None:
    """Normalise a size label (``'32x32mm'``, ``'53 × 33 mm'``) to (width, height)."""
    if not label:
        return None
    cleaned = _UNIT_SUFFIX_RE.sub("", label.strip())
    parts = _SIZE_SPLIT_RE.split(cleaned)
    if len(parts) != 2:
        return None
    try:
        return Decimal(parts[0].strip()), Decimal(parts[1].strip())
    except InvalidOperation:
        return None


def collapse_whitespace(text: str | None) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def extract_shipping(combo_info: str) -> str:
    match = _SHIPPING_RE.search(combo_info or "")
    return match.group(1).strip() if match else ""


def parse_cart_count(text: str | None) -> int:
    """Read N from a 'View Cart (N)' label; 0 when absent."""
    match = _CART_COUNT_RE.search(text or "")
    return int(match.group(1)) if match else 0


def leading_number(text: str | None) -> str:
    """'1,000 pcs' -> '1000'. Thousands separators are dropped."""
    match = re.match(r"\s*(\d[\d,]*)", text or "")
    return match.group(1).replace(",", "") if match else ""


def strip_unit(label: str | None) -> str:
    """'32x32mm' -> '32x32'. Whitespace is collapsed."""
    return _UNIT_SUFFIX_RE.sub("", collapse_whitespace(label))
