"""
Aggregate read models - pure reductions over rows already scoped to one owner.

Every function takes plain row dicts (storage column names) and returns
JSON-ready values. Nothing here touches the database, so identical rows
always give identical output.
"""
import datetime as dt
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from chicken_manager.utils.helpers import month_key, recent_month_keys, today

Row = Dict[str, Any]

EGGS_PER_DOZEN = 12

# Fallback price used to value the egg log before any paid sale exists
DEFAULT_PRICE_PER_EGG = 0.5

# Eggs per laying hen per day used to estimate active layers
LAYING_RATE = 0.8


def egg_total(sale: Row) -> int:
    return (sale.get("dozen_count") or 0) * EGGS_PER_DOZEN + (sale.get("individual_count") or 0)


def is_paid(sale: Row) -> bool:
    return (sale.get("total_amount") or 0) > 0


def is_gift(sale: Row) -> bool:
    return (sale.get("total_amount") or 0) == 0


def percentage_change(current: float, previous: float) -> float:
    """Month-over-month change in percent; 0 when there is no baseline"""
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def group_totals(rows: Iterable[Row], date_field: str, value_field: str, by_month: bool = True) -> List[Row]:
    """Sum value_field per YYYY-MM (or per exact date), ascending by key"""
    totals: Dict[str, float] = defaultdict(float)
    for row in rows:
        value = row.get(date_field)
        if value is None:
            continue
        key = month_key(value) if by_month else str(value)
        totals[key] += row.get(value_field) or 0
    return [{"key": key, "total": totals[key]} for key in sorted(totals)]


def category_breakdown(expenses: Iterable[Row]) -> Dict[str, float]:
    breakdown: Dict[str, float] = defaultdict(float)
    for expense in expenses:
        breakdown[expense.get("category") or "Other"] += expense.get("amount") or 0
    return dict(breakdown)


def low_stock_alerts(feed: Iterable[Row], threshold: float) -> List[Row]:
    """Feed still in use (no depletion date) at or below the threshold"""
    return [
        {
            "id": item["id"],
            "brand": item.get("name"),
            "quantity": item.get("quantity"),
            "unit": item.get("unit"),
            "threshold": threshold,
        }
        for item in feed
        if (item.get("quantity") or 0) <= threshold and not item.get("expiry_date")
    ]


# --- Sales ---

def top_customer(sales: Iterable[Row], customer_names: Dict[str, str]) -> Optional[str]:
    """Customer with the most eggs across all sales; ties go to the lowest customer id"""
    eggs: Dict[str, int] = defaultdict(int)
    for sale in sales:
        if sale.get("customer_id"):
            eggs[sale["customer_id"]] += egg_total(sale)
    if not eggs:
        return None
    best = min(eggs, key=lambda customer_id: (-eggs[customer_id], customer_id))
    return customer_names.get(best, "Unknown")


def sales_summary(sales: List[Row], customer_names: Dict[str, str], customer_count: int) -> Row:
    return {
        "total_sales": len(sales),
        "total_revenue": sum(s["total_amount"] for s in sales if is_paid(s)),
        "total_eggs_sold": sum(egg_total(s) for s in sales if is_paid(s)),
        "free_eggs_given": sum(egg_total(s) for s in sales if is_gift(s)),
        "customer_count": customer_count,
        "top_customer": top_customer(sales, customer_names),
    }


def monthly_sales(sales: Iterable[Row]) -> List[Row]:
    months: Dict[str, Row] = {}
    for sale in sales:
        key = month_key(sale["sale_date"])
        bucket = months.setdefault(
            key, {"month": key, "total_sales": 0, "total_revenue": 0.0, "total_eggs": 0}
        )
        bucket["total_sales"] += 1
        if is_paid(sale):
            bucket["total_revenue"] += sale["total_amount"]
            bucket["total_eggs"] += egg_total(sale)
    return [months[key] for key in sorted(months)]


def customer_stats(sales: List[Row]) -> Row:
    """Purchase history of one customer"""
    last = max((s["sale_date"] for s in sales), default=None)
    return {
        "total_purchases": sum(s.get("total_amount") or 0 for s in sales),
        "total_eggs": sum(egg_total(s) for s in sales),
        "last_purchase_date": last,
        "purchase_count": len(sales),
    }


# --- Production ---

def production_stats(entries: List[Row], previous_month_total: int, reference: Optional[dt.date] = None) -> Row:
    """Recent egg log view: entries are the last 30 days, newest first"""
    reference = reference or today()
    week_start = reference - dt.timedelta(days=7)
    current_key = month_key(reference)
    current_total = sum(e["count"] for e in entries if month_key(e["date"]) == current_key)

    return {
        "recent_entries": [{"id": e["id"], "date": e["date"], "count": e["count"]} for e in entries],
        "today_entry": next(
            ({"id": e["id"], "date": e["date"], "count": e["count"]} for e in entries if e["date"] == reference),
            None,
        ),
        "weekly_trend": [{"date": e["date"], "count": e["count"]} for e in entries if e["date"] >= week_start],
        "monthly_stats": {
            "current_month": current_total,
            "previous_month": previous_month_total,
            "percentage_change": percentage_change(current_total, previous_month_total),
        },
    }


def expense_stats(recent: List[Row], yearly: List[Row], reference: Optional[dt.date] = None) -> Row:
    week_start = (reference or today()) - dt.timedelta(days=7)
    return {
        "recent_expenses": recent,
        "monthly_totals": [
            {"month": g["key"], "total": g["total"]} for g in group_totals(yearly, "date", "amount")
        ],
        "category_breakdown": category_breakdown(recent),
        "weekly_trend": [
            {"date": g["key"], "amount": g["total"]}
            for g in group_totals(
                [e for e in recent if e["date"] >= week_start], "date", "amount", by_month=False
            )
        ],
    }


def feed_stats(inventory: List[Row], threshold: float, reference: Optional[dt.date] = None) -> Row:
    since = (reference or today()) - dt.timedelta(days=60)
    recent = [f for f in inventory if f.get("purchase_date") and f["purchase_date"] >= since]
    return {
        "feed_inventory": inventory,
        "recent_purchases": recent,
        "low_stock_alerts": low_stock_alerts(inventory, threshold),
        # Quantity bought per month; consumption itself isn't logged
        "purchase_trend": [
            {"month": g["key"], "quantity": g["total"]}
            for g in group_totals(recent, "purchase_date", "quantity")
        ],
    }


# --- Flock ---

def _laying_ready(batch: Row, reference: dt.date) -> bool:
    if batch.get("actual_laying_start_date"):
        return True
    expected = batch.get("expected_laying_start_date")
    if expected:
        return expected <= reference
    weeks_old = (reference - batch["acquisition_date"]).days // 7
    age = batch.get("age_at_acquisition")
    return age == "adult" or (age == "juvenile" and weeks_old >= 8) or (age == "chick" and weeks_old >= 18)


def production_status(avg_eggs_per_hen: float) -> tuple:
    if avg_eggs_per_hen <= 0:
        return "unknown", "No recent egg data available"
    if avg_eggs_per_hen >= 0.7:
        return "excellent", "Excellent egg production! Your hens are highly productive."
    if avg_eggs_per_hen >= 0.5:
        return "good", "Good egg production. Consider optimizing nutrition or environment."
    if avg_eggs_per_hen >= 0.3:
        return "fair", "Fair production. May need to address health, nutrition, or stress factors."
    return "poor", "Low production. Check for health issues, stress, molting, or seasonal factors."


def flock_summary(
    batches: List[Row],
    deaths: List[Row],
    recent_eggs: List[Row],
    reference: Optional[dt.date] = None,
) -> Row:
    """Bird totals and laying health of the active batches.

    deaths are the death records of those batches; recent_eggs the egg log of
    the last 30 days.
    """
    reference = reference or today()

    expected_layers = sum(
        max(0, (b.get("hens_count") or 0) - (b.get("brooding_count") or 0))
        for b in batches
        if (b.get("hens_count") or 0) > 0 and b.get("actual_laying_start_date")
    )
    total_deaths = sum(d["count"] for d in deaths)
    total_initial = sum(b.get("initial_count") or 0 for b in batches)
    mortality_rate = round(total_deaths / total_initial * 100, 2) if total_initial > 0 else 0

    avg_daily_eggs = sum(e["count"] for e in recent_eggs) / len(recent_eggs) if recent_eggs else 0
    avg_eggs_per_hen = round(avg_daily_eggs / expected_layers, 2) if avg_daily_eggs and expected_layers else 0
    status, message = production_status(avg_eggs_per_hen)

    laying_ready = too_young = 0
    for batch in batches:
        if batch["type"] != "hens":
            continue
        if _laying_ready(batch, reference):
            laying_ready += batch["current_count"]
        else:
            too_young += batch["current_count"]

    month_ago = reference - dt.timedelta(days=30)
    recent_deaths = sum(d["count"] for d in deaths if d["date"] >= month_ago)

    return {
        "total_birds": sum(b.get("current_count") or 0 for b in batches),
        "total_hens": sum(b.get("hens_count") or 0 for b in batches),
        "total_roosters": sum(b.get("roosters_count") or 0 for b in batches),
        "total_chicks": sum(b.get("chicks_count") or 0 for b in batches),
        "total_brooding": sum(b.get("brooding_count") or 0 for b in batches),
        "active_batches": len(batches),
        "expected_layers": expected_layers,
        "actual_layers": round(avg_daily_eggs / LAYING_RATE) if avg_daily_eggs else 0,
        "avg_eggs_per_hen": avg_eggs_per_hen,
        "total_deaths": total_deaths,
        "mortality_rate": mortality_rate,
        "production_metrics": {
            "avg_daily_eggs": round(avg_daily_eggs, 1),
            "production_status": status,
            "production_message": message,
            "laying_ready": laying_ready,
            "too_young": too_young,
        },
        "mortality_metrics": {
            "recent_deaths": recent_deaths,
            "overall_rate": mortality_rate,
        },
        "batch_summary": [
            {
                "id": b["id"],
                "name": b["batch_name"],
                "breed": b["breed"],
                "type": b["type"],
                "current_count": b["current_count"],
                "acquisition_date": b["acquisition_date"],
                "is_laying_age": b["type"] == "hens" and _laying_ready(b, reference),
            }
            for b in batches
        ],
    }


# --- Money ---

def savings_summary(sales: List[Row], expenses: List[Row], reference: Optional[dt.date] = None) -> Row:
    """Twelve-month revenue/expense picture with an annual projection"""
    months = {key: {"revenue": 0.0, "expenses": 0.0} for key in recent_month_keys(12, reference)}
    for sale in sales:
        bucket = months.get(month_key(sale["sale_date"]))
        if bucket is not None:
            bucket["revenue"] += sale.get("total_amount") or 0
    for expense in expenses:
        bucket = months.get(month_key(expense["date"]))
        if bucket is not None:
            bucket["expenses"] += expense.get("amount") or 0

    trends = [
        {"month": key, "revenue": m["revenue"], "expenses": m["expenses"], "profit": m["revenue"] - m["expenses"]}
        for key, m in months.items()
    ]
    revenue = sum(t["revenue"] for t in trends)
    spent = sum(t["expenses"] for t in trends)
    profit = revenue - spent

    last_quarter = trends[-3:]
    avg_revenue = sum(t["revenue"] for t in last_quarter) / len(last_quarter)
    avg_expenses = sum(t["expenses"] for t in last_quarter) / len(last_quarter)

    return {
        "financial_summary": {
            "total_revenue": round(revenue, 2),
            "total_expenses": round(spent, 2),
            "net_profit": round(profit, 2),
            "profit_margin": round(profit / revenue * 100, 1) if revenue > 0 else 0,
        },
        "monthly_trends": trends,
        "projections": {
            "annual_revenue": round(avg_revenue * 12),
            "annual_expenses": round(avg_expenses * 12),
            "annual_profit": round((avg_revenue - avg_expenses) * 12),
        },
    }


def dashboard_summary(
    all_time_eggs: int,
    last_30_days: List[Row],
    this_month: int,
    last_month: int,
    sales: List[Row],
    month_expenses: float,
    customer_count: int,
) -> Row:
    revenue = sum(s["total_amount"] for s in sales if is_paid(s))
    eggs_sold = sum(egg_total(s) for s in sales if is_paid(s))
    price_per_egg = revenue / eggs_sold if eggs_sold > 0 else DEFAULT_PRICE_PER_EGG
    daily_average = sum(e["count"] for e in last_30_days) / len(last_30_days) if last_30_days else 0

    return {
        "total_eggs": all_time_eggs,
        "daily_average": round(daily_average, 1),
        "this_month_production": this_month,
        "last_month_production": last_month,
        "percentage_change": percentage_change(this_month, last_month),
        "egg_value": round(all_time_eggs * price_per_egg, 2),
        "revenue": revenue,
        "free_eggs": sum(egg_total(s) for s in sales if is_gift(s)),
        "last_30_days": [{"date": e["date"], "count": e["count"]} for e in last_30_days],
        "monthly_expenses": month_expenses,
        "customer_count": customer_count,
        "sales_count": len(sales),
    }
