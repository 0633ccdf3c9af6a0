"""
Margin metrics derived from provider payloads.

Pure functions, no I/O:
- TTM / annual margin extraction from the ``/stock/metric`` payload
- Quarterly margin series from ``/stock/financials-reported`` reports
- The quality score used for the third leaderboard

Quality score:
    0.6 * net + 0.4 * gross                 margin magnitude (missing = 0)
    + clamp(0.2 * trend, -3, 3)             last minus first quarterly margin
    - 0.9 * clamp(volatility, 0, 12)        std-dev of quarterly margins
    - 25 if net < 0                         loss-making penalty

With the quarterly data held fixed, the score never decreases when net or
gross margin increases. Without series data trend and volatility are 0.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Optional, Sequence

from marginboard.schemas.leaderboard import Period


NET_WEIGHT = 0.6
GROSS_WEIGHT = 0.4
TREND_WEIGHT = 0.2
TREND_CAP = 3.0
VOLATILITY_WEIGHT = 0.9
VOLATILITY_CAP = 12.0
NEGATIVE_NET_PENALTY = 25.0

QUARTERS = 4

REVENUE_ALIASES = (
    "Revenue",
    "Revenues",
    "TotalRevenue",
    "Sales",
    "NetSales",
    "SalesRevenueNet",
    "RevenueFromContractWithCustomerExcludingAssessedTax",
    "Hasılat",
    "SatisGelirleri",
    "SatışGelirleri",
)
GROSS_PROFIT_ALIASES = (
    "GrossProfit",
    "Gross Profit",
    "BrütKar",
    "BrütKâr",
    "BrütKârZarar",
    "BrütKarZarar",
)
NET_INCOME_ALIASES = (
    "NetIncome",
    "NetIncomeLoss",
    "ProfitLoss",
    "NetProfit",
    "NetDönemKârıZararı",
    "DonemNetKariZarari",
    "DönemNetKârıZararı",
)


def num(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation (0 for fewer than two values)."""
    if len(values) <= 1:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((x - mean) ** 2 for x in values) / len(values))


def slope(values: Sequence[float]) -> float:
    """Last minus first value (0 for fewer than two values)."""
    if len(values) < 2:
        return 0.0
    return values[-1] - values[0]


def _first_num(metric: dict, keys: Iterable[str]) -> Optional[float]:
    for key in keys:
        value = num(metric.get(key))
        if value is not None:
            return value
    return None


def extract_margins(payload: Any) -> tuple[Optional[float], Optional[float], Period]:
    """
    Pull (net, gross, period) out of a ``/stock/metric`` response.

    TTM figures win over annual ones; the period reflects which family
    supplied at least one value.
    """
    metric = payload.get("metric") if isinstance(payload, dict) else None
    if not isinstance(metric, dict):
        return None, None, "UNKNOWN"

    net = _first_num(metric, ("netMarginTTM", "netMarginAnnual", "netMargin"))
    gross = _first_num(metric, ("grossMarginTTM", "grossMarginAnnual", "grossMargin"))

    if _first_num(metric, ("netMarginTTM", "grossMarginTTM")) is not None:
        period: Period = "TTM"
    elif _first_num(metric, ("netMarginAnnual", "grossMarginAnnual")) is not None:
        period = "FY"
    else:
        period = "UNKNOWN"
    return net, gross, period


def _normalize_key(value: Any) -> str:
    return re.sub(r"[\s\-_]+", "", str(value or "")).lower()


def _line_label(row: dict) -> str:
    for field in ("concept", "label", "name", "tag"):
        if row.get(field):
            return _normalize_key(row[field])
    return ""


def _line_value(row: dict) -> Optional[float]:
    for field in ("value", "val", "amount"):
        if field in row:
            value = num(row[field])
            if value is not None:
                return value
    return None


def pick_value(items: Any, aliases: Sequence[str]) -> Optional[float]:
    """Find a statement line by alias: exact normalized match first, then containment."""
    if not isinstance(items, list) or not items:
        return None
    keys = [_normalize_key(a) for a in aliases]
    rows = [row for row in items if isinstance(row, dict)]

    for row in rows:
        if _line_label(row) in keys:
            value = _line_value(row)
            if value is not None:
                return value

    for row in rows:
        label = _line_label(row)
        if not label:
            continue
        if any(k in label or label in k for k in keys):
            value = _line_value(row)
            if value is not None:
                return value
    return None


def income_statement_items(report_entry: Any) -> list:
    """Locate the income-statement line items inside one reported filing."""
    if not isinstance(report_entry, dict):
        return []
    report = report_entry.get("report") or report_entry.get("reportContent") or report_entry
    if not isinstance(report, dict):
        return report if isinstance(report, list) else []

    candidates = (
        report.get("ic"),
        report.get("incomeStatement"),
        report.get("income_statement"),
        report.get("is"),
        report.get("data"),
        report.get("items"),
    )
    for candidate in candidates:
        if isinstance(candidate, list):
            return candidate
        if isinstance(candidate, dict):
            for inner in ("items", "ic", "data"):
                if isinstance(candidate.get(inner), list):
                    return candidate[inner]
    return []


def _report_date(entry: Any) -> str:
    if not isinstance(entry, dict):
        return ""
    return str(entry.get("endDate") or entry.get("reportDate") or entry.get("year") or "")


def quarterly_margin_series(payload: Any) -> Optional[tuple[list[float], list[float]]]:
    """
    (net_series, gross_series) in percent for the last four reported quarters.

    Returns None when fewer than two quarters produce a usable margin.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data:
        return None

    last = sorted(data, key=_report_date)[-QUARTERS:]
    net_series: list[float] = []
    gross_series: list[float] = []

    for entry in last:
        items = income_statement_items(entry)
        revenue = pick_value(items, REVENUE_ALIASES)
        if not revenue:
            continue
        gross_profit = pick_value(items, GROSS_PROFIT_ALIASES)
        net_income = pick_value(items, NET_INCOME_ALIASES)
        if gross_profit is not None:
            gross_series.append(gross_profit / revenue * 100)
        if net_income is not None:
            net_series.append(net_income / revenue * 100)

    if len(net_series) < 2 and len(gross_series) < 2:
        return None
    return net_series, gross_series


def quality_score(
    net: Optional[float],
    gross: Optional[float],
    net_series: Sequence[float] = (),
    gross_series: Sequence[float] = (),
) -> float:
    """Quality score for one symbol (see module docstring)."""
    net_value = net if net is not None else 0.0
    gross_value = gross if gross is not None else 0.0

    series = net_series if net_series else gross_series
    trend = slope(series)
    volatility = stddev(series)

    score = (
        NET_WEIGHT * net_value
        + GROSS_WEIGHT * gross_value
        + clamp(trend * TREND_WEIGHT, -TREND_CAP, TREND_CAP)
        - VOLATILITY_WEIGHT * clamp(volatility, 0.0, VOLATILITY_CAP)
    )
    if net_value < 0:
        score -= NEGATIVE_NET_PENALTY
    return round(score, 2)
