from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

_TRUTHY = {"1", "true", "yes", "on"}


def _load_pricing_table() -> dict:
    path = CONFIG_DIR / "pricing.yaml"
    if not path.exists():
        return {"money_quantum": "1", "default_tax_percent": 0, "cancellation_refunds": []}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


PRICING_TABLE = _load_pricing_table()


def money_quantum() -> Decimal:
    """Return the rounding step for monetary amounts (env overrides the YAML table)."""

    raw = os.getenv("ORDERDESK_MONEY_QUANTUM") or str(PRICING_TABLE.get("money_quantum", "1"))
    try:
        quantum = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"invalid money quantum: {raw!r}") from exc
    if not quantum.is_finite() or quantum <= 0:
        raise ValueError(f"invalid money quantum: {raw!r}")
    return quantum


def default_tax_percent() -> Decimal:
    return Decimal(str(PRICING_TABLE.get("default_tax_percent", 0)))


def skill_matching_enabled() -> bool:
    return os.getenv("ORDERDESK_SKILL_MATCHING", "").strip().lower() in _TRUTHY


def log_level() -> str:
    return os.getenv("ORDERDESK_LOG_LEVEL", "INFO").upper()


def cors_origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    return origins
