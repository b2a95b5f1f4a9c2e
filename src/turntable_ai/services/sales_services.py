"""
Sales analytics for the owner dashboard: POS paste parsing, KPIs, a naive
7-day forecast, menu engineering and KPI threshold alerts.
"""
import logging
import math
import re
from statistics import median
from turntable_ai.config import (
    KPI_ALERT_GROSS_MARGIN_PCT,
    KPI_ALERT_LABOR_PCT,
    KPI_ALERT_REFUND_PCT,
)

_logger = logging.getLogger(__name__)

NAN = float("nan")
MISSING = "—"
POS_FIELDS = ("sales", "orders", "refunds", "cogs", "labor", "traffic")

# header keyword(s) per column; the date column is located separately
_POS_COLUMNS = {
    "sales": ("sales", "revenue", "gross", "net"),
    "orders": ("orders",),
    "refunds": ("refund",),
    "cogs": ("cogs",),
    "labor": ("labor",),
    "traffic": ("traffic",),
}

DEFAULT_THRESHOLDS = {
    "labor_pct": KPI_ALERT_LABOR_PCT,
    "gross_margin_pct": KPI_ALERT_GROSS_MARGIN_PCT,
    "refund_pct": KPI_ALERT_REFUND_PCT,
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _to_number(raw: str) -> float:
    cleaned = re.sub(r"[,$]", "", raw or "").strip()
    if not cleaned:
        return NAN
    try:
        value = float(cleaned)
    except ValueError:
        return NAN
    return value if math.isfinite(value) else NAN


def to_number(value):
    """Numeric form of a JSON input (numbers or numeric strings), else None."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        n = _to_number(value)
        return None if math.isnan(n) else n
    return None


def usd(n) -> str:
    if not _is_number(n):
        return MISSING
    sign = "-" if n < 0 else ""
    return f"{sign}${abs(n):,.2f}"


def round2(n: float) -> float:
    return math.floor(n * 100 + 0.5) / 100


def _pct(n) -> str:
    return f"{math.floor(n + 0.5)}%" if _is_number(n) else MISSING


def parse_pos(text: str | None) -> dict:
    """
    Parse a comma separated POS export.

    A first line mentioning "date" and one of sales/revenue/gross/net is a
    header and columns are matched by substring. Without one the columns are
    date, sales, orders, refunds, cogs, labor, traffic.

    Returns:
        dict: ``rows`` (NaN for unparseable cells) and ``totals`` (NaN counted as 0)
    """
    totals = {name: 0.0 for name in POS_FIELDS}
    lines = [line for line in (text or "").strip().splitlines() if line]
    if not lines:
        return {"rows": [], "totals": totals}

    first = lines[0]
    has_header = bool(re.search(r"date", first, re.I)) and bool(
        re.search(r"(sales|revenue|gross|net)", first, re.I)
    )

    if has_header:
        header = [h.strip().lower() for h in first.split(",")]

        def index_of(keys):
            return next((i for i, h in enumerate(header) if any(k in h for k in keys)), -1)

        date_index = index_of(("date",))
        indexes = {name: index_of(keys) for name, keys in _POS_COLUMNS.items()}
        body = lines[1:]
    else:
        date_index = 0
        indexes = {name: i + 1 for i, name in enumerate(POS_FIELDS)}
        body = lines

    rows = []
    for line in body:
        parts = [p.strip() for p in line.split(",")]
        row = {"date": parts[date_index] if 0 <= date_index < len(parts) else (parts[0] if parts else "")}
        for name, i in indexes.items():
            row[name] = _to_number(parts[i]) if 0 <= i < len(parts) else NAN
            if not math.isnan(row[name]):
                totals[name] += row[name]
        rows.append(row)

    return {"rows": rows, "totals": totals}


def moving_average(values: list, window: int = 3) -> list:
    out = []
    for i in range(len(values)):
        chunk = values[max(0, i - window + 1):i + 1]
        out.append(sum(chunk) / len(chunk))
    return out


def build_forecast(daily_sales: list, fallback_total: float = None, days: int = 7) -> list[dict]:
    """
    Naive forecast: the last 3-day moving average plus a gentle trend.

    The trend is the mean of the last three day-over-day deltas (the first of
    the three counts as 0), added at half weight per day ahead.
    """
    averages = moving_average(daily_sales, 3)
    if averages:
        last = averages[-1]
    else:
        last = fallback_total / 7 if fallback_total else 0

    tail = daily_sales[-3:]
    deltas = [0 if i == 0 else v - tail[i - 1] for i, v in enumerate(tail)]
    avg_delta = sum(deltas) / len(deltas) if deltas else 0

    return [
        {"day": i + 1, "sales": int(math.floor(max(0, last + avg_delta * (i / 2)) + 0.5))}
        for i in range(days)
    ]


def _first_present(given, parsed):
    # a zero or missing input defers to the POS total
    return given if given else (parsed or None)


def compute_sales_kpis(inputs: dict, pos: dict) -> dict:
    """
    Raw numbers behind the sales dashboard, combining typed inputs with POS totals.

    Returns:
        dict: total_sales, orders, refunds, cogs, labor, avg_ticket,
        gross_margin_pct, labor_pct and the daily sales series
    """
    totals = pos["totals"]
    total_sales = _first_present(to_number(inputs.get("totalSales")), totals["sales"])
    orders = _first_present(to_number(inputs.get("orders")), totals["orders"])
    refunds = to_number(inputs.get("refunds")) or totals["refunds"] or 0
    cogs = _first_present(to_number(inputs.get("cogs")), totals["cogs"])
    labor = _first_present(to_number(inputs.get("labor")), totals["labor"])

    avg_ticket = total_sales / orders if orders and orders > 0 and total_sales else None
    gross_margin_pct = (1 - cogs / total_sales) * 100 if total_sales and cogs is not None else None
    labor_pct = labor / total_sales * 100 if total_sales and labor is not None else None

    if pos["rows"]:
        daily_sales = [r["sales"] for r in pos["rows"] if _is_number(r["sales"]) and r["sales"] > 0]
    elif total_sales and total_sales > 0:
        # only a range total: spread it evenly over a week
        daily_sales = [total_sales / 7] * 7
    else:
        daily_sales = []

    return {
        "total_sales": total_sales,
        "orders": orders,
        "refunds": refunds,
        "cogs": cogs,
        "labor": labor,
        "avg_ticket": avg_ticket,
        "gross_margin_pct": gross_margin_pct,
        "labor_pct": labor_pct,
        "daily_sales": daily_sales,
    }


def format_sales_kpis(raw: dict, start: str, end: str, store: str = None) -> dict:
    return {
        "revenue": usd(raw["total_sales"]),
        "orders": str(_display_count(raw["orders"])) if raw["orders"] is not None else MISSING,
        "avgTicket": usd(raw["avg_ticket"]),
        "refunds": usd(raw["refunds"] or 0),
        "cogs": usd(raw["cogs"]),
        "labor": usd(raw["labor"]),
        "laborPct": _pct(raw["labor_pct"]),
        "grossMargin": _pct(raw["gross_margin_pct"]),
        "range": {"start": start, "end": end},
        "store": store or None,
    }


def _display_count(n):
    return int(n) if _is_number(n) and float(n).is_integer() else n


def compute_recap_kpis(
    total_sales=None,
    orders=None,
    refunds=None,
    cogs=None,
    labor_cost=None,
) -> dict:
    """Net sales, AOV, gross margin and labor share for the recap form. Unknowns stay None."""
    net_sales = max((total_sales or 0) - (refunds or 0), 0) if _is_number(total_sales) else None
    aov = round2(net_sales / orders) if net_sales is not None and _is_number(orders) and orders > 0 else None

    gross_margin = None
    gross_margin_pct = None
    if net_sales is not None and _is_number(cogs):
        gross_margin = round2(net_sales - cogs)
        if net_sales > 0:
            gross_margin_pct = round2(gross_margin / net_sales * 100)

    labor_pct = None
    if net_sales and _is_number(labor_cost):
        labor_pct = round2(labor_cost / net_sales * 100)

    return {
        "netSales": round2(net_sales) if net_sales is not None else None,
        "aov": aov,
        "grossMargin": gross_margin,
        "grossMarginPct": gross_margin_pct,
        "laborPct": labor_pct,
    }


# ---------------------------------------------------------------------------
# Menu engineering
# ---------------------------------------------------------------------------

def parse_menu_text(text: str | None) -> list[dict]:
    """``item,units,price,cost`` lines; a first line without numbers is a header."""
    lines = [line for line in (text or "").strip().splitlines() if line.strip()]
    if lines and not re.search(r"\d", lines[0]):
        lines = lines[1:]

    items = []
    for line in lines:
        parts = [p.strip() for p in line.split(",")]
        if not parts[0]:
            continue
        values = [_to_number(parts[i]) if i < len(parts) else NAN for i in (1, 2, 3)]
        items.append({"name": parts[0], "units": values[0], "price": values[1], "cost": values[2]})
    return items


def classify_menu_items(items: list[dict]) -> list[dict]:
    """
    Classic menu engineering quadrants.

    Popularity and unit margin (price - food cost) are each split at the
    median of the classifiable items: star (high/high), plowhorse (popular,
    low margin), puzzle (unpopular, high margin), dog (low/low). Items missing
    units or a margin are "unclassified".
    """
    enriched = []
    for item in items:
        units = item.get("units")
        price = item.get("price")
        cost = item.get("cost")
        margin = price - cost if _is_number(price) and _is_number(cost) else None
        enriched.append({
            "name": item.get("name"),
            "units": units if _is_number(units) else None,
            "unitMargin": round2(margin) if margin is not None else None,
        })

    valid = [e for e in enriched if e["units"] is not None and e["unitMargin"] is not None]
    if not valid:
        return [{**e, "category": "unclassified"} for e in enriched]

    units_median = median(e["units"] for e in valid)
    margin_median = median(e["unitMargin"] for e in valid)

    results = []
    for e in enriched:
        if e["units"] is None or e["unitMargin"] is None:
            category = "unclassified"
        else:
            popular = e["units"] >= units_median
            profitable = e["unitMargin"] >= margin_median
            if popular and profitable:
                category = "star"
            elif popular:
                category = "plowhorse"
            elif profitable:
                category = "puzzle"
            else:
                category = "dog"
        results.append({**e, "category": category})
    return results


def kpi_alerts(kpis: dict, thresholds: dict = None) -> list[str]:
    """Human readable lines for KPIs outside their thresholds."""
    limits = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
    alerts = []

    labor_pct = kpis.get("labor_pct")
    if _is_number(labor_pct) and labor_pct > limits["labor_pct"]:
        alerts.append(f"Labor is {labor_pct:.1f}% of sales (target {limits['labor_pct']:g}% or less).")

    margin_pct = kpis.get("gross_margin_pct")
    if _is_number(margin_pct) and margin_pct < limits["gross_margin_pct"]:
        alerts.append(f"Gross margin is {margin_pct:.1f}% (target {limits['gross_margin_pct']:g}% or more).")

    total_sales = kpis.get("total_sales")
    refunds = kpis.get("refunds")
    if _is_number(total_sales) and total_sales > 0 and _is_number(refunds):
        refund_pct = refunds / total_sales * 100
        if refund_pct > limits["refund_pct"]:
            alerts.append(f"Refunds are {refund_pct:.1f}% of sales (target {limits['refund_pct']:g}% or less).")

    if alerts:
        _logger.info(f"{len(alerts)} KPI alert(s) raised")
    return alerts
