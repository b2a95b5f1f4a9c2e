"""Sales recap, forecast and menu analytics routes"""
import logging
import re
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
from turntable_ai.config import GROQ_API_KEY
from turntable_ai.services.email_services import send_email
from turntable_ai.services.llm_services import (
    LLMConfigError,
    generate_sales_recap,
    generate_sales_report,
    summarize_sales,
)
from turntable_ai.services.sales_services import (
    build_forecast,
    classify_menu_items,
    compute_recap_kpis,
    compute_sales_kpis,
    format_sales_kpis,
    kpi_alerts,
    parse_menu_text,
    parse_pos,
    to_number,
    usd,
)
from turntable_ai.services.utils.http_utils import clean_text, read_json_body

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["sales"])

SALES_TASKS = ("recap", "forecast")

DEFAULT_ACTIONS = [
    "Feature 2 top-margin items on menu boards + social today.",
    "Test +$0.25 on best-seller; watch AOV and conversion.",
    "Align staffing to peak hours to keep labor% at or below target.",
]

NO_AI_SUMMARY = "AI disabled (no GROQ_API_KEY). Showing baseline KPIs and a naive 7-day forecast."
NO_AI_ACTIONS = [
    "Add your GROQ_API_KEY to enable AI summaries.",
    "Paste POS rows for a better forecast baseline.",
    "Enter COGS & Labor for accurate margin and labor%.",
]

_BULLET = re.compile(r"^\s*[-*•]\s+")


@router.get("/sales")
async def sales_health():
    return JSONResponse(content={"ok": True, "status": "alive"})


@router.post("/sales")
async def sales_report(request: Request):
    """Quick recap or forecast from pasted context"""
    _logger.info("Sales Report Endpoint Hit")
    body = await read_json_body(request)
    task = body.get("task")
    period = clean_text(body.get("period"), 120)
    if task not in SALES_TASKS:
        raise HTTPException(status_code=400, detail="Invalid task. Use 'recap' or 'forecast'.")
    if not period:
        raise HTTPException(status_code=400, detail="Missing 'period'.")

    try:
        result = generate_sales_report(
            task,
            period,
            data=clean_text(body.get("data"), 6000),
            notes=clean_text(body.get("notes"), 2000),
        )
        return JSONResponse(content={"ok": True, "result": result})
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in sales_report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Unknown server error.")


def _sales_prompt(body: dict, inputs: dict, raw: dict, kpis: dict, pos_rows: int) -> tuple[str, str]:
    system = "You are a concise restaurant analytics assistant. Output short, actionable insights."

    def field(value):
        return value if value else "—"

    user = f"""
Date range: {body['startDate']} -> {body['endDate']}
Store: {field(body.get('store'))}
City: {field(inputs.get('city'))}
Top items: {field(inputs.get('topItems'))}
Goal: {field(inputs.get('goal'))}
Upcoming promo: {field(inputs.get('upcomingPromo'))}
Notes: {field(inputs.get('notes'))}

Numbers:
- Revenue: {kpis['revenue']}
- Orders: {kpis['orders']}
- Avg Ticket: {kpis['avgTicket']}
- Refunds: {kpis['refunds']}
- COGS: {kpis['cogs']}
- Labor: {kpis['labor']}
- Labor %: {kpis['laborPct']}
- Gross Margin: {kpis['grossMargin']}
- POS rows: {pos_rows}

Please provide:
1) A 2-4 sentence summary.
2) 3-5 short, concrete recommended actions focused on lift (pricing, mix, staffing, promos, ops).
Return plain text (no JSON)."""
    return system, user


def _summary_and_actions(text: str) -> tuple[str, list]:
    lines = text.split("\n")
    summary = "\n".join(lines[:5]).strip()
    bullets = [_BULLET.sub("", line).strip() for line in lines if _BULLET.match(line)][:5]
    return summary, bullets or list(DEFAULT_ACTIONS)


def _send_kpi_alert(to: str, store: str, alerts: list) -> bool:
    try:
        send_email(
            to=to,
            subject=f"KPI alert for {store or 'your store'}",
            text="\n".join(f"- {line}" for line in alerts),
            title="KPI alert",
        )
        return True
    except Exception as e:
        _logger.warning(f"KPI alert email failed: {str(e)}")
        return False


@router.post("/sales-ai")
async def sales_ai(request: Request):
    """KPIs, a 7-day forecast and an AI summary for a date range"""
    _logger.info("Sales AI Endpoint Hit")
    body = await read_json_body(request)
    inputs = body.get("inputs")
    if not body.get("startDate") or not body.get("endDate") or not isinstance(inputs, dict):
        raise HTTPException(status_code=400, detail="Missing required fields (startDate, endDate, inputs)")

    try:
        pos = parse_pos(body.get("posText"))
        raw = compute_sales_kpis(inputs, pos)
        forecast = build_forecast(raw["daily_sales"], fallback_total=raw["total_sales"])
        kpis = format_sales_kpis(raw, body["startDate"], body["endDate"], body.get("store"))
        alerts = kpi_alerts(raw)

        if GROQ_API_KEY:
            system, user = _sales_prompt(body, inputs, raw, kpis, len(pos["rows"]))
            summary, actions = _summary_and_actions(summarize_sales(system, user))
        else:
            summary, actions = NO_AI_SUMMARY, list(NO_AI_ACTIONS)

        result = {
            "kpis": kpis,
            "forecast": forecast,
            "summary": summary,
            "actions": actions,
            "alerts": alerts,
            "debug": {
                "usedPOSRows": len(pos["rows"]),
                "computedFrom": {
                    "totals": bool(inputs.get("totalSales")) or bool(pos["rows"]),
                    "cogs": bool(inputs.get("cogs") or pos["totals"]["cogs"]),
                    "labor": bool(inputs.get("labor") or pos["totals"]["labor"]),
                },
            },
        }

        alert_email = body.get("alertEmail")
        if alert_email and alerts:
            result["alertEmailSent"] = _send_kpi_alert(alert_email, body.get("store"), alerts)

        return JSONResponse(content=result)
    except Exception as e:
        _logger.error(f"sales-ai error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Failed to analyze sales.")


@router.post("/sales-recap")
async def sales_recap(request: Request):
    """Long-form recap with KPI and forecast tables"""
    _logger.info("Sales Recap Endpoint Hit")
    body = await read_json_body(request)
    if not GROQ_API_KEY:
        raise HTTPException(status_code=500, detail="Missing GROQ_API_KEY")

    metrics = {
        "Total sales": body.get("totalSales"),
        "Orders": body.get("orders"),
        "Refunds": body.get("refunds"),
        "COGS": body.get("cogs"),
        "Labor hours": body.get("laborHours"),
        "Labor cost": body.get("laborCost"),
        "Foot traffic": body.get("footTraffic"),
        "Avg prep time (min)": body.get("avgPrepTimeMin"),
    }
    computed = body.get("computed")
    if not isinstance(computed, dict) or not computed:
        computed = compute_recap_kpis(
            total_sales=to_number(body.get("totalSales")),
            orders=to_number(body.get("orders")),
            refunds=to_number(body.get("refunds")),
            cogs=to_number(body.get("cogs")),
            labor_cost=to_number(body.get("laborCost")),
        )

    try:
        output = generate_sales_recap(
            metrics,
            computed,
            store=body.get("storeName") or "",
            city=body.get("city") or "",
            period_start=body.get("periodStart") or "",
            period_end=body.get("periodEnd") or "",
            top_items=body.get("topItems") or "",
            notes=body.get("notes") or "",
            upcoming_promo=body.get("upcomingPromo") or "",
            goal=body.get("goalNextPeriod") or "",
            raw_paste=body.get("rawPaste") or "",
            language=body.get("language") or "English",
        )
        return JSONResponse(content={"output": output})
    except Exception as e:
        _logger.error(f"Error in sales_recap: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Server error")


@router.post("/sales/menu-mix")
async def menu_mix(request: Request):
    """Menu engineering quadrants from item rows or an ``item,units,price,cost`` paste"""
    body = await read_json_body(request)
    items = body.get("items")
    if isinstance(items, list):
        rows = [
            {
                "name": str(item.get("name") or ""),
                "units": to_number(item.get("units")),
                "price": to_number(item.get("price")),
                "cost": to_number(item.get("cost")),
            }
            for item in items
            if isinstance(item, dict) and item.get("name")
        ]
    else:
        rows = parse_menu_text(body.get("menuText"))

    if not rows:
        raise HTTPException(status_code=400, detail="Provide menu items or menuText.")

    classified = classify_menu_items(rows)
    for item in classified:
        item["unitMarginDisplay"] = usd(item["unitMargin"])
    return JSONResponse(content={"ok": True, "items": classified})
