# medicines.py
import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from auth import get_store
from database import DocumentStore, utcnow
from schemas import LOW_STOCK_THRESHOLD, MedicineCreate, MedicineOut, MedicineUpdate
from storage import UploadStore, read_payload

logger = logging.getLogger(__name__)

router = APIRouter()


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so a search term matches literally (escape char `/`)."""
    return term.replace("/", "//").replace("%", "/%").replace("_", "/_")


# -------------------------------------------------------------------
# Dashboard helpers
# -------------------------------------------------------------------

def is_low_stock(medicine: Dict[str, Any]) -> bool:
    return medicine["quantity"] < LOW_STOCK_THRESHOLD


def is_expired(medicine: Dict[str, Any], today: date) -> bool:
    return medicine["expiry"] < today


def time_ago(then: datetime, now: datetime) -> str:
    """Compact relative label: minutes under an hour, hours under a day, else days."""
    minutes = int((now - then).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes}m"
    if minutes < 1440:
        return f"{minutes // 60}h"
    return f"{minutes // 1440}d"


def dashboard_stats(medicines: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    total_value = sum(m["price"] * m["quantity"] for m in medicines)
    return {
        "totalStock": len(medicines),
        "lowStockCount": sum(1 for m in medicines if is_low_stock(m)),
        "expiredCount": sum(1 for m in medicines if is_expired(m, today)),
        "totalValue": f"{total_value:.2f}",
    }


def build_activity_feed(medicines: List[Dict[str, Any]], now: datetime, limit: int = 5) -> List[Dict[str, Any]]:
    """
    Synthesize dashboard events from medicines ordered newest first.

    Up to three low-stock alerts (out-of-stock items excluded), the two most
    recent additions and the first expired item, newest event first.
    """
    activities = []

    low_stock = [m for m in medicines if 0 < m["quantity"] < LOW_STOCK_THRESHOLD]
    for med in low_stock[:3]:
        activities.append({
            "type": "low-stock",
            "title": "Low Stock Alert",
            "message": f"{med['name']} is below threshold.",
            "detail": f"{med['quantity']} units left",
            "timestamp": med["updated_at"] or med["created_at"],
            "icon": "alert",
        })

    for med in medicines[:2]:
        activities.append({
            "type": "new-item",
            "title": "New Item Added",
            "message": f"{med['name']} added to inventory.",
            "detail": f"{med['quantity']} units",
            "timestamp": med["created_at"],
            "icon": "package",
        })

    expired = [m for m in medicines if is_expired(m, now.date())]
    if expired:
        med = expired[0]
        activities.append({
            "type": "expired",
            "title": "Expiry Alert",
            "message": f"{med['name']} has expired.",
            "detail": "Requires attention",
            "timestamp": datetime.combine(med["expiry"], time.min),
            "icon": "bell",
        })

    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    recent = activities[:limit]
    for activity in recent:
        activity["timeAgo"] = time_ago(activity["timestamp"], now)
        activity["timestamp"] = activity["timestamp"].isoformat()
    return recent


# -------------------------------------------------------------------
# Medicine CRUD
# -------------------------------------------------------------------

@router.get("/api/medicines")
async def list_medicines(
    search: Optional[str] = None,
    category: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    c = store.medicines.c
    criteria = []
    if search:
        # wildcards stay in the bound value; `databases` %-formats the SQL text
        criteria.append(c.name.ilike(f"%{escape_like(search.strip())}%", escape="/"))
    if category and category != "All":
        criteria.append(c.category == category)

    medicines = await store.medicines.find(*criteria, order_by=[c.created_at.desc(), c.id.desc()])
    return [MedicineOut(**m).to_json() for m in medicines]


@router.get("/api/medicines/{medicine_id}")
async def get_medicine(medicine_id: int, store: DocumentStore = Depends(get_store)):
    medicine = await store.medicines.get(medicine_id)
    if not medicine:
        raise HTTPException(status_code=404, detail="Medicine not found")
    return MedicineOut(**medicine).to_json()


@router.post("/api/medicines", status_code=status.HTTP_201_CREATED)
async def add_medicine(
    request: Request,
    store: DocumentStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    """
    Add a new medicine from a multipart form (optional `image` file) or JSON.
    """
    data, image = await read_payload(request, "image")
    med = MedicineCreate.model_validate(data)

    values = med.model_dump()
    values["image"] = await uploads.store(image) if image else ""
    medicine = await store.medicines.create(values)

    logger.info(f"Medicine added: {medicine['name']} (id={medicine['id']})")
    return {"message": "Medicine added successfully", "medicine": MedicineOut(**medicine).to_json()}


@router.put("/api/medicines/{medicine_id}")
async def update_medicine(
    medicine_id: int,
    request: Request,
    store: DocumentStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    """
    Update any subset of a medicine's fields, optionally replacing its image.
    """
    if await store.medicines.get(medicine_id) is None:
        raise HTTPException(status_code=404, detail="Medicine not found")

    data, image = await read_payload(request, "image")
    changes = MedicineUpdate.model_validate(data).model_dump(exclude_unset=True, exclude_none=True)
    if image:
        changes["image"] = await uploads.store(image)

    medicine = await store.medicines.update(medicine_id, changes)
    if medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")

    logger.info(f"Medicine updated: id={medicine_id}")
    return {"message": "Medicine updated successfully", "medicine": MedicineOut(**medicine).to_json()}


@router.delete("/api/medicines/{medicine_id}")
async def delete_medicine(medicine_id: int, store: DocumentStore = Depends(get_store)):
    if not await store.medicines.delete(medicine_id):
        raise HTTPException(status_code=404, detail="Medicine not found")
    logger.info(f"Medicine deleted: id={medicine_id}")
    return {"message": "Medicine deleted successfully"}


# -------------------------------------------------------------------
# Dashboard
# -------------------------------------------------------------------

@router.get("/api/dashboard/stats")
async def get_dashboard_stats(
    request: Request,
    send_alerts: bool = False,
    store: DocumentStore = Depends(get_store),
):
    medicines = await store.medicines.find()
    stats = dashboard_stats(medicines, utcnow().date())

    if send_alerts:
        low_stock = [m["name"] for m in medicines if is_low_stock(m)]
        sent = False
        if low_stock:
            message = f"⚠️ Low stock alert for: {', '.join(low_stock)}"
            sent = await run_in_threadpool(request.app.state.alerter.send_stock_alert, message)
        stats["alertSent"] = sent
    return stats


@router.get("/api/dashboard/activity")
async def get_dashboard_activity(store: DocumentStore = Depends(get_store)):
    c = store.medicines.c
    medicines = await store.medicines.find(order_by=[c.created_at.desc(), c.id.desc()])
    return build_activity_feed(medicines, utcnow())
