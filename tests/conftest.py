"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from ason import decode, encode
from ason.core.fingerprint import canonical_key


@pytest.fixture()
def users() -> dict[str, Any]:
    """Uniform records small enough to stay inline."""
    return {
        "users": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ]
    }


@pytest.fixture()
def orders() -> dict[str, Any]:
    """An order export with repeated schemas, addresses and status strings."""
    warehouse = {"city": "Rotterdam", "country": "NL"}
    return {
        "generated": "2026-03-01T08:00:00Z",
        "orders": [
            {
                "id": 1001,
                "status": "delivered",
                "origin": dict(warehouse),
                "lines": [
                    {"sku": "A-100", "qty": 2, "price": 9.5},
                    {"sku": "B-200", "qty": 1, "price": 24.0},
                ],
            },
            {
                "id": 1002,
                "status": "delivered",
                "origin": dict(warehouse),
                "lines": [
                    {"sku": "A-100", "qty": 5, "price": 9.5},
                ],
            },
            {
                "id": 1003,
                "status": "cancelled",
                "origin": {"city": "Oslo", "country": "NO"},
                "lines": [],
                "note": "customer asked to hold",
            },
        ],
        "summary": {"currency": "EUR", "totals": {"gross": 91.5, "net": 76.25}},
    }


@pytest.fixture()
def mixed_document() -> dict[str, Any]:
    """Awkward values: reserved words, numeric strings, nesting, empties."""
    return {
        "flags": [True, False, None],
        "codes": ["007", "1e3", "-5", "true", "null", ""],
        "quoted": {"colon": "a:b", "hash": "#1", "padded": "  x  ", "newline": "one\ntwo"},
        "nested": [[1, 2], [], [[3]], {"k": [4, {"deep": "yes"}]}],
        "empty": {"list": [], "map": {}},
        "unicode": "ünïcødé ✓",
        "keys": {"a.b": 1, "": 2, "x y": 3, "-lead": 4, "#tag": 5},
        "numbers": [0, -1, 2.5, 1e20, -0.001, 12345678901234567890],
    }


@pytest.fixture()
def assert_roundtrip() -> Callable[..., str]:
    """Encode, decode and compare type-exactly; returns the encoded text."""

    def _check(value: Any, **options: Any) -> str:
        text = encode(value, **options)
        decoded = decode(text, **options)
        assert canonical_key(decoded) == canonical_key(value), text
        return text

    return _check


@pytest.fixture()
def json_file(tmp_path: Path, orders: dict[str, Any]) -> Path:
    path = tmp_path / "orders.json"
    path.write_text(json.dumps(orders, indent=2), encoding="utf-8")
    return path


@pytest.fixture()
def ason_file(tmp_path: Path, orders: dict[str, Any]) -> Path:
    path = tmp_path / "orders.ason"
    path.write_text(encode(orders) + "\n", encoding="utf-8")
    return path
