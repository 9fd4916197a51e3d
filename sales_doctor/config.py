"""Tunable thresholds for the analysis pipeline.

Every number the analytics engine treats as a business rule lives here so a
deployment can override it from a JSON file without touching control flow.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AnalysisConfig:
    # header-row locator
    header_scan_rows: int = 20
    header_min_cells: int = 5
    header_keywords: tuple[str, ...] = ("date", "voucher", "product")

    # RFM buckets: (threshold, score) evaluated top to bottom
    recency_buckets: tuple[tuple[int, int], ...] = ((7, 5), (14, 4), (30, 3), (60, 2))
    frequency_buckets: tuple[tuple[int, int], ...] = ((10, 5), (6, 4), (3, 3), (2, 2))
    monetary_buckets: tuple[tuple[float, int], ...] = ((30000, 5), (15000, 4), (8000, 3), (3000, 2))
    churn_risk: dict[str, float] = field(
        default_factory=lambda: {
            "VIP": 0.05,
            "Loyal": 0.15,
            "Regular": 0.30,
            "At-Risk": 0.60,
            "Lost": 0.85,
        }
    )
    clv_repeat_multiplier: float = 3.0
    clv_single_multiplier: float = 1.5
    customer_top_n: int = 20

    # products
    abc_a_cutoff: float = 0.70
    abc_b_cutoff: float = 0.90
    default_margin: float = 0.30
    alert_limit: int = 5

    # forecast
    forecast_window: int = 3
    forecast_horizon: int = 4
    forecast_band_step: float = 0.10

    # market basket
    basket_min_transactions: int = 3
    basket_min_pair_count: int = 2
    basket_min_confidence: float = 0.20
    basket_max_rules: int = 8

    # cohorts
    cohort_max_offset: int = 6
    cohort_limit: int = 7

    # reconciliation between header totals and line sums
    reconciliation_tolerance: float = 1.0

    # entity normalisation
    currency_label: str = "रू"
    walk_in_synonyms: tuple[str, ...] = ("CASH PARTY", "CASHPARTY", "CASH")
    # customer-column values read as payment methods, on top of entities.PAYMENT_SYNONYMS
    payment_name_quirks: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, tuple):
                payload[key] = [list(item) if isinstance(item, tuple) else item for item in value]
        return payload


DEFAULT_CONFIG = AnalysisConfig()

_TUPLE_OF_PAIRS = {"recency_buckets", "frequency_buckets", "monetary_buckets"}


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name in _TUPLE_OF_PAIRS:
        if not isinstance(value, list) or not all(
            isinstance(item, list) and len(item) == 2 for item in value
        ):
            raise ConfigError(f"'{name}' must be a list of [threshold, score] pairs")
        return tuple((item[0], int(item[1])) for item in value)
    if isinstance(default, tuple):
        if not isinstance(value, list):
            raise ConfigError(f"'{name}' must be a list")
        return tuple(str(item) for item in value)
    if isinstance(default, dict):
        if not isinstance(value, dict):
            raise ConfigError(f"'{name}' must be an object")
        return {str(k): float(v) for k, v in value.items()}
    if isinstance(default, bool) or not isinstance(default, (int, float, str)):
        return value
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"'{name}' must be a string")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{name}' must be a number")
    return type(default)(value)


def config_from_dict(payload: dict[str, Any], base: AnalysisConfig = DEFAULT_CONFIG) -> AnalysisConfig:
    known = {f.name for f in fields(AnalysisConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    overrides = {
        name: _coerce(name, value, getattr(base, name))
        for name, value in payload.items()
    }
    return replace(base, **overrides)


def load_config(path: Path) -> AnalysisConfig:
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ConfigError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ConfigError(f"Could not read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a JSON object.")
    return config_from_dict(payload)


def starter_config_text() -> str:
    return json.dumps(DEFAULT_CONFIG.to_dict(), indent=2, ensure_ascii=False) + "\n"
