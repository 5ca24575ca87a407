#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from datetime import date

import requests


def _post(session: requests.Session, method: str, url: str, payload: dict) -> dict:
    resp = session.request(method, url, json=payload, timeout=30)
    resp.raise_for_status()
    return resp.json()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a running Resale Ledger with a small demo data set")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--operator", default=None, help="Operator name (default: first configured operator)")
    args = parser.parse_args()

    base = args.base_url.rstrip("/")
    today = date.today().isoformat()

    with requests.Session() as session:
        operator = args.operator
        if operator is None:
            resp = session.get(f"{base}/operators", timeout=30)
            resp.raise_for_status()
            operator = resp.json()["operators"][0]

        _post(session, "PUT", f"{base}/rates", {"currency": "KRW", "date": today, "cash": "41.5", "visa": "42.3", "jcb": "42.0"})
        _post(session, "PUT", f"{base}/rates", {"currency": "JPY", "date": today, "cash": "4.62", "visa": "4.70", "jcb": "4.75"})
        _post(session, "PUT", f"{base}/products", {"name": "Widget", "suggested_price": "500", "estimated_shipping": "30"})
        _post(session, "PUT", f"{base}/products", {"name": "Gadget", "suggested_price": "880", "estimated_shipping": "45"})

        orders = [
            ("Alice", "Widget", 2, "500", "KRW", "12000", "42.3"),
            ("Bob", "Widget", 1, "500", "KRW", "12000", "42.3"),
            ("Alice", "Gadget", 1, "880", "JPY", "1800", "4.70"),
        ]
        created = []
        for customer, name, qty, price, currency, foreign_price, rate in orders:
            body = {
                "operator": operator,
                "customer": customer,
                "items": [
                    {
                        "name": name,
                        "qty": qty,
                        "price": price,
                        "purchases": [{"qty": 0, "foreign_price": foreign_price, "currency": currency, "rate": rate}],
                    }
                ],
            }
            result = _post(session, "POST", f"{base}/orders", body)
            order_id = result["order"]["id"]
            for _ in range(qty):
                _post(session, "POST", f"{base}/orders/{order_id}/items/0/purchases", {"operator": operator})
            created.append(order_id)

        report = session.get(f"{base}/reports/products", timeout=30)
        report.raise_for_status()
        print(json.dumps({"orders": created, "products": report.json()["products"]}, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
