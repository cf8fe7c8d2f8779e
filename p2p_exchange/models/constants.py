"""Domain constants shared by validation, the converter and the rate providers."""

from decimal import Decimal
import re
from typing import Tuple

# Currencies offered by the converter
SUPPORTED_CURRENCIES: Tuple[str, ...] = (
    "USD",
    "EUR",
    "GBP",
    "JPY",
    "AUD",
    "CAD",
    "CHF",
    "HKD",
    "NZD",
    "SGD",
    "SEK",
    "DKK",
    "NOK",
)

# Fixed 0.2% service fee applied on top of the converted amount
SERVICE_FEE_RATE = Decimal("0.002")

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

USER_STATUS_PENDING = "pending"
