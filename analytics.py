# analytics.py
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List

import sqlalchemy
from fastapi import APIRouter, Depends

from auth import get_store, verify_token
from database import DocumentStore, utcnow
from schemas import CANCELLED, LOW_STOCK_THRESHOLD, ORDER_STATUSES, OrderOut

router = APIRouter()

SALES_WINDOW_DAYS = 7


def sales_series(daily_totals: Dict[str, float], today: date, days: int = SALES_WINDOW_DAYS) -> List[Dict[str, Any]]:
    """One entry per day ending today, oldest first; days without sales are 0."""
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        key = day.isoformat()
        series.append({
            "name": day.strftime("%a"),
            "date": key,
            "sales": daily_totals.get(key, 0),
        })
    return series


def inventory_breakdown(quantities: List[int]) -> List[Dict[str, Any]]:
    out_of_stock = sum(1 for q in quantities if q <= 0)
    low_stock = sum(1 for q in quantities if 0 < q < LOW_STOCK_THRESHOLD)
    in_stock = len(quantities) - low_stock - out_of_stock
    return [
        {"name": "In Stock", "value": in_stock},
        {"name": "Low Stock", "value": low_stock},
        {"name": "Out of Stock", "value": out_of_stock},
    ]


async def daily_sales(store: DocumentStore, since: datetime) -> Dict[str, float]:
    c = store.orders.c
    day = sqlalchemy.func.date(c.date).label("day")
    query = (
        sqlalchemy.select(day, sqlalchemy.func.sum(c.total).label("sales"))
        .where(c.date >= since, c.status != CANCELLED)
        .group_by(day)
    )
    rows = await store.orders.aggregate(query)
    return {str(row["day"]): float(row["sales"] or 0) for row in rows}


@router.get("/api/analytics", dependencies=[Depends(verify_token)])
async def get_analytics(store: DocumentStore = Depends(get_store)):
    today = utcnow().date()
    since = datetime.combine(today - timedelta(days=SALES_WINDOW_DAYS - 1), time.min)
    sales_data = sales_series(await daily_sales(store, since), today)

    medicines = await store.medicines.find()
    inventory_data = inventory_breakdown([m["quantity"] for m in medicines])

    c = store.orders.c
    order_status_data = [
        {"name": name, "value": await store.orders.count(c.status == name)}
        for name in ORDER_STATUSES
    ]

    recent = await store.orders.find(order_by=[c.date.desc(), c.id.desc()], limit=5)

    return {
        "salesData": sales_data,
        "inventoryData": inventory_data,
        "orderStatusData": order_status_data,
        "recentOrders": [OrderOut(**o).to_json() for o in recent],
    }
