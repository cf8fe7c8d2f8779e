"""Smoke script for the wallet + quote flow.

Walks the client path end to end against a throwaway database:
 1. Quote USD -> EUR (static provider).
 2. Credit the EUR wallet twice, once with a lowercase code.
 3. Verify the wallet and list balances.
 4. Show the error shape for an invalid credit.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import json
import tempfile
from pathlib import Path

from fastapi.testclient import TestClient

from p2p_exchange.core.config import Settings
from p2p_exchange.main import create_app


def run():
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(data_dir=Path(d), exchange_rate_provider="static")
        settings.init_post_load()
        client = TestClient(create_app(settings_override=settings))

        results = {}
        quote = client.post(
            "/api/rates/quote",
            json={"from_currency": "USD", "to_currency": "EUR", "amount": 100},
        ).json()
        results["quote"] = quote
        results["credit_1"] = client.post(
            "/api/wallet/update-balance",
            json={"amount": quote["total"], "currency": "eur"},
        ).json()
        results["credit_2"] = client.post(
            "/api/wallet/update-balance", json={"amount": 14.83, "currency": "EUR"}
        ).json()
        results["verify"] = client.get("/api/wallet/verify/EUR").json()
        results["balances"] = client.get("/api/wallet/balances").json()
        bad = client.post(
            "/api/wallet/update-balance", json={"amount": 5, "currency": "EURO"}
        )
        results["invalid_status"] = bad.status_code
        results["invalid_body"] = bad.json()
        print(json.dumps(results, indent=2))

        assert results["balances"] == [{"currency": "EUR", "balance": 100.0}]


if __name__ == "__main__":
    run()
