# accounts.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from auth import (
    TokenData,
    create_access_token,
    get_password_hash,
    get_settings,
    get_store,
    require_admin,
    require_customer,
    require_super_admin,
    verify_password,
)
from config import Settings
from database import Collection, DocumentStore
from schemas import (
    ADMIN,
    CUSTOMER,
    SUPER_ADMIN,
    AdminOut,
    AdminRegister,
    CustomerOut,
    CustomerRegister,
    LoginRequest,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _email_taken(collection: Collection, email: str) -> bool:
    return await collection.find_one(collection.c.email == email) is not None


# -------------------------------------------------------------------
# Registration & login
# -------------------------------------------------------------------

@router.post("/admin_register", status_code=status.HTTP_201_CREATED)
async def admin_register(payload: AdminRegister, store: DocumentStore = Depends(get_store)):
    """
    Register an admin. The first admin ever created becomes the Super Admin.

    The bootstrap slot column is unique, so when two first registrations race
    only one insert can claim it; the other is retried as a plain Admin.
    """
    if await _email_taken(store.admins, payload.email):
        logger.warning(f"Admin email already exists: {payload.email}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already exists")

    values = {
        "name": payload.name or "Admin",
        "email": payload.email,
        "password": get_password_hash(payload.password),
        "phone": payload.phone or "",
        "role": ADMIN,
        "primary_super_admin": None,
    }
    if await store.admins.count() == 0:
        values.update(role=SUPER_ADMIN, primary_super_admin=True)

    try:
        admin = await store.admins.create(values)
    except Exception:
        if await _email_taken(store.admins, payload.email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already exists")
        if values["role"] != SUPER_ADMIN:
            raise
        logger.info("Super Admin slot claimed concurrently; registering as Admin")
        values.update(role=ADMIN, primary_super_admin=None)
        admin = await store.admins.create(values)

    logger.info(f"Admin registered: {admin['email']} ({admin['role']})")
    return {"message": "Admin Registered Successfully", "admin": AdminOut(**admin).to_json()}


@router.post("/admin_login")
async def admin_login(
    payload: LoginRequest,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    admin = await store.admins.find_one(store.admins.c.email == payload.email)
    if not admin or not verify_password(payload.password, admin["password"]):
        logger.warning(f"Invalid admin login attempt for {payload.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Credentials")

    token = create_access_token(
        TokenData(id=admin["id"], email=admin["email"], role=admin["role"]), settings
    )
    logger.info(f"Admin logged in: {admin['email']}")
    return {
        "message": "Login Successful",
        "token": token,
        "user": {
            "id": admin["id"],
            "name": admin["name"],
            "email": admin["email"],
            "role": admin["role"],
        },
    }


@router.post("/customer_register", status_code=status.HTTP_201_CREATED)
async def customer_register(payload: CustomerRegister, store: DocumentStore = Depends(get_store)):
    if await _email_taken(store.customers, payload.email):
        logger.warning(f"Customer email already exists: {payload.email}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already exists")

    values = {
        "name": payload.name,
        "email": payload.email,
        "phone": payload.phone,
        "password": get_password_hash(payload.password),
    }
    try:
        customer = await store.customers.create(values)
    except Exception:
        # unique index caught a concurrent registration
        if await _email_taken(store.customers, payload.email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already exists")
        raise

    logger.info(f"Customer registered: {customer['email']}")
    return {"message": "Customer Registered Successfully", "customer": CustomerOut(**customer).to_json()}


@router.post("/customer_login")
async def customer_login(
    payload: LoginRequest,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    customer = await store.customers.find_one(store.customers.c.email == payload.email)
    if not customer or not verify_password(payload.password, customer["password"]):
        logger.warning(f"Invalid customer login attempt for {payload.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Credentials")

    token = create_access_token(
        TokenData(id=customer["id"], email=customer["email"], role=CUSTOMER), settings
    )
    return {
        "message": "Login Successful",
        "token": token,
        "customer": {"id": customer["id"], "name": customer["name"], "email": customer["email"]},
    }


# -------------------------------------------------------------------
# Admin management (Super Admin only)
# -------------------------------------------------------------------

@router.get("/api/admins", dependencies=[Depends(require_super_admin)])
async def list_admins(store: DocumentStore = Depends(get_store)):
    admins = await store.admins.find(order_by=[store.admins.c.id])
    return [AdminOut(**admin).to_json() for admin in admins]


@router.delete("/api/admins/{admin_id}", dependencies=[Depends(require_super_admin)])
async def delete_admin(admin_id: int, store: DocumentStore = Depends(get_store)):
    admin = await store.admins.get(admin_id)
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")
    if admin["role"] == SUPER_ADMIN:
        logger.warning(f"Refused to delete Super Admin {admin['email']}")
        raise HTTPException(status_code=400, detail="Cannot delete Super Admin")

    await store.admins.delete(admin_id)
    logger.info(f"Admin deleted: {admin['email']}")
    return {"message": "Admin deleted successfully"}


# -------------------------------------------------------------------
# Profiles
# -------------------------------------------------------------------

async def _apply_profile_update(collection: Collection, account: Dict[str, Any], payload: ProfileUpdate) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    if payload.name:
        changes["name"] = payload.name
    if payload.phone:
        changes["phone"] = payload.phone
    if payload.email and payload.email != account["email"]:
        if await _email_taken(collection, payload.email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")
        changes["email"] = payload.email

    if payload.new_password:
        if not payload.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")
        if not verify_password(payload.current_password, account["password"]):
            raise HTTPException(status_code=400, detail="Incorrect current password")
        changes["password"] = get_password_hash(payload.new_password)

    if not changes:
        return account
    return await collection.update(account["id"], changes)


@router.get("/api/admin/profile")
async def get_admin_profile(
    identity: TokenData = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
):
    admin = await store.admins.get(identity.id)
    if not admin:
        raise HTTPException(status_code=404, detail="Admin profile not found")
    return AdminOut(**admin).to_json()


@router.put("/api/admin/profile")
async def update_admin_profile(
    payload: ProfileUpdate,
    identity: TokenData = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
):
    admin = await store.admins.get(identity.id)
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")

    updated = await _apply_profile_update(store.admins, admin, payload)
    logger.info(f"Admin profile updated: {updated['email']}")
    return {"message": "Profile updated successfully", "admin": AdminOut(**updated).to_json()}


@router.put("/api/customer/profile")
async def update_customer_profile(
    payload: ProfileUpdate,
    identity: TokenData = Depends(require_customer),
    store: DocumentStore = Depends(get_store),
):
    customer = await store.customers.get(identity.id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    updated = await _apply_profile_update(store.customers, customer, payload)
    logger.info(f"Customer profile updated: {updated['email']}")
    return {"message": "Profile updated successfully", "customer": CustomerOut(**updated).to_json()}
