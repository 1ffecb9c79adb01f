from __future__ import annotations

import pytest

from policy_proxy.app.core.errors import ValidationFailed
from policy_proxy.app.services.orders import require_items, validate_order


def _assert_validation(r, message):
    assert r.status_code == 422
    assert r.json() == {
        "ok": False,
        "code": "VALIDATION",
        "message": message,
        "meta": {"status": 422},
    }


def test_valid_order(client):
    r = client.post("/apiclient/validateOrder", json={"items": [{"sku": "LARGE_PEP"}]})
    assert r.status_code == 200
    assert r.json() == {
        "ok": True,
        "totals": {"amount": 18.75, "currency": "USD"},
        "warnings": [],
        "substitutions": [],
    }


def test_totals_are_fixed_regardless_of_items(client):
    draft = {"items": [{"sku": "LARGE_PEP", "qty": 3}, {"sku": "MED_MARG", "qty": 9}]}
    r = client.post("/apiclient/validateOrder", json=draft)
    assert r.status_code == 200
    assert r.json()["totals"] == {"amount": 18.75, "currency": "USD"}


def test_empty_items(client):
    _assert_validation(client.post("/apiclient/validateOrder", json={"items": []}), "No items provided")


@pytest.mark.parametrize("body", [{}, {"items": "LARGE_PEP"}, {"items": None}, {"items": {"sku": "LARGE_PEP"}}, [], "x"])
def test_malformed_drafts(client, body):
    r = client.post("/apiclient/validateOrder", json=body)
    _assert_validation(r, "No items provided")


def test_missing_body(client):
    _assert_validation(client.post("/apiclient/validateOrder"), "No items provided")


def test_unknown_sku(client):
    r = client.post("/apiclient/validateOrder", json={"items": [{"sku": "UNKNOWN"}]})
    _assert_validation(r, "Unknown SKU(s): UNKNOWN")


def test_unknown_skus_listed_in_order(client):
    draft = {"items": [{"sku": "B"}, {"sku": "LARGE_PEP"}, {"sku": "A"}, {"sku": "B"}]}
    r = client.post("/apiclient/validateOrder", json=draft)
    _assert_validation(r, "Unknown SKU(s): B, A, B")


def test_item_without_sku_renders_empty():
    with pytest.raises(ValidationFailed) as ei:
        validate_order({"items": [{"name": "mystery"}, "LARGE_PEP", {"sku": None}]})
    assert ei.value.message == "Unknown SKU(s): , , "
    assert ei.value.status == 422
    assert ei.value.code == "VALIDATION"


def test_missing_sku_over_http(client):
    r = client.post("/apiclient/validateOrder", json={"items": [{"name": "x"}]})
    _assert_validation(r, "Unknown SKU(s): ")


@pytest.mark.parametrize(
    "sku, rendered",
    [
        (["LARGE_PEP"], '["LARGE_PEP"]'),
        ({"code": "MED_MARG"}, '{"code": "MED_MARG"}'),
        (42, "42"),
        (True, "true"),
    ],
)
def test_non_string_sku_is_unknown_not_server_error(client, sku, rendered):
    r = client.post("/apiclient/validateOrder", json={"items": [{"sku": sku}]})
    _assert_validation(r, f"Unknown SKU(s): {rendered}")


def test_malformed_json_left_to_framework(client):
    r = client.post(
        "/apiclient/validateOrder",
        content=b'{"items": [',
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 422
    body = r.json()
    assert "detail" in body
    assert "code" not in body


def test_require_items_returns_list():
    items = [{"sku": "MED_MARG"}]
    assert require_items({"items": items}) is items
