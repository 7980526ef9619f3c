# models.py

import sqlalchemy
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
)

metadata = sqlalchemy.MetaData()

admins = sqlalchemy.Table(
    "admins",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False, default="Admin"),
    Column("email", String(255), unique=True, index=True, nullable=False),
    Column("password", String(255), nullable=False),
    Column("phone", String(50), nullable=False, default=""),
    Column("role", String(20), nullable=False, default="Admin"),
    # only the bootstrap Super Admin holds True; NULLs don't collide
    Column("primary_super_admin", Boolean, unique=True, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

customers = sqlalchemy.Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), unique=True, index=True, nullable=False),
    Column("phone", String(50), nullable=False, default=""),
    Column("password", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

medicines = sqlalchemy.Table(
    "medicines",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False, index=True),
    Column("category", String(100), nullable=False, index=True),
    Column("manufacturer", String(255), nullable=False),
    Column("price", Float, nullable=False),
    Column("quantity", Integer, nullable=False, default=0),
    Column("expiry", Date, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("image", String(500), nullable=False, default=""),
    Column("prescription_required", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

orders = sqlalchemy.Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer", String(255), nullable=False, index=True),
    Column("items", JSON, nullable=False),
    Column("total", Float, nullable=False),
    Column("status", String(30), nullable=False, default="Pending"),
    Column("notes", Text, nullable=False, default=""),
    Column("date", DateTime, nullable=False, index=True),
    Column("address", Text, nullable=False),
    Column("payment_method", String(30), nullable=False),
    Column("prescription_image", String(500), nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)
