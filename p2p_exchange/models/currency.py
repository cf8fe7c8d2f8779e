from __future__ import annotations

from p2p_exchange.core.errors import InvalidArgument
from .constants import CURRENCY_CODE_RE


def normalize_currency(code: object) -> str:
    """Return the uppercase ISO 4217 style code or raise InvalidArgument."""
    if not isinstance(code, str):
        raise InvalidArgument("currency must be a three letter code")
    normalized = code.strip().upper()
    if not CURRENCY_CODE_RE.match(normalized):
        raise InvalidArgument(f"invalid currency code '{code}'")
    return normalized
