from __future__ import annotations

import json
import sys

import pytest

from resale_ledger import cli
from resale_ledger.core.config import Settings
from resale_ledger.domain.orders.aggregates import LineItem, Order
from resale_ledger.persistence.store import get_document_store
from resale_ledger.services.orders import OrderService


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("RL_HOME_CURRENCY", raising=False)
    settings = Settings(_env_file=None)
    assert settings.home_currency == "TWD"
    assert settings.missing_rate_policy == "fallback_one"
    assert settings.batch_merge_scope == "any"
    assert settings.operators


def test_settings_read_prefixed_env(monkeypatch):
    monkeypatch.setenv("RL_MISSING_RATE_POLICY", "reject")
    monkeypatch.setenv("RL_OPERATORS", '["Ann", "Ben"]')
    monkeypatch.setenv("RL_DEFAULT_OPERATOR", "Ben")
    settings = Settings(_env_file=None)
    assert settings.missing_rate_policy == "reject"
    assert settings.operators == ["Ann", "Ben"]
    assert settings.default_operator == "Ben"


def test_default_operator_must_be_on_roster():
    with pytest.raises(ValueError):
        Settings(_env_file=None, operators=["Ann"], default_operator="Zed")


def test_empty_roster_rejected_outside_dev():
    with pytest.raises(ValueError):
        Settings(_env_file=None, env="prod", operators=[])
    assert Settings(_env_file=None, env="dev", operators=[]).operators == []


def _run_cli(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["resale-ledger", *argv])
    return cli.main()


def test_cli_report_products_json(monkeypatch, capsys, operator):
    order = Order(customer="Alice", items=[LineItem(product_name="Widget", desired_quantity=2, unit_selling_price="500")])
    OrderService(get_document_store()).save(order, operator)

    assert _run_cli(monkeypatch, "report", "products", "--json") == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["name"] == "Widget"
    assert rows[0]["total_revenue"] == "1000"


def test_cli_dashboard_and_export(monkeypatch, capsys, tmp_path):
    assert _run_cli(monkeypatch, "report", "dashboard") == 0
    assert json.loads(capsys.readouterr().out)["active_count"] == 0

    target = tmp_path / "out.csv"
    assert _run_cli(monkeypatch, "export", "products", "--out", str(target)) == 0
    assert capsys.readouterr().out.strip() == str(target)
    assert target.exists()
