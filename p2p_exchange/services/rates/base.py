"""Rate provider abstraction.

A provider returns the rate table for one base currency: quote code ->
units of quote per 1 unit of base. The base maps to itself at 1.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict


class RateProvider(ABC):
    name: str = "abstract"

    @abstractmethod
    def get_rates(self, base_currency: str) -> Dict[str, Decimal]:
        """Return {quote_code: rate} for 1 unit of base_currency."""
        raise NotImplementedError
