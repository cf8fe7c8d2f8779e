"""P2P currency exchange API: fee-inclusive quotes, wallet balances, signup."""

__version__ = "0.1.0"
