"""
Database Models - Bronze Staging and Silver Tables

Bronze tables are untyped staging copies of the source files: one text
column per raw field plus a surrogate row id. They are generated from the
entity rule tables so the two never drift apart.

Silver tables hold the cleansed, typed records. Their CHECK constraints
mirror the warehouse DDL; a typed record that still violates one (for example
a sale with quantity 0) is rejected by the database and fails the load.
NOT NULL is declared only where cleansing cannot produce a null (see
EntitySchema.not_null), so a nulled date or status never fails a load.
"""

import datetime as dt
from typing import Dict, Optional, Type

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from retail_silver.transformation.rules import ENTITY_SCHEMAS, EntitySchema


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def _amount(precision: int = 10, scale: int = 2) -> Numeric:
    # Floats in and out, matching the typed records
    return Numeric(precision, scale, asdecimal=False)


def _non_negative(prefix: str, *columns: str) -> tuple:
    return tuple(
        CheckConstraint(f"{column} >= 0", name=f"ck_{prefix}_{column}")
        for column in columns
    )


# =============================================================================
# BRONZE (STAGING) TABLES
# =============================================================================

def _bronze_table(schema: EntitySchema) -> Table:
    return Table(
        f"bronze_{schema.name}",
        Base.metadata,
        Column("row_id", Integer, primary_key=True, autoincrement=True),
        *[Column(column, Text) for column in schema.columns],
    )


BRONZE_TABLES: Dict[str, Table] = {
    name: _bronze_table(schema) for name, schema in ENTITY_SCHEMAS.items()
}


# =============================================================================
# SILVER TABLES
# =============================================================================

class SilverProduct(Base):
    """
    Products

    Grain: one row per SKU.
    """
    __tablename__ = "silver_products"

    sku_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    product_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50))
    sub_category: Mapped[Optional[str]] = mapped_column(String(50))
    brand: Mapped[Optional[str]] = mapped_column(String(50))
    product_type: Mapped[Optional[str]] = mapped_column(String(50))
    size_label: Mapped[Optional[str]] = mapped_column(String(20))
    launch_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    shelf_life_months: Mapped[Optional[float]] = mapped_column(_amount(5, 2))
    parent_sku: Mapped[Optional[str]] = mapped_column(String(20))
    default_price: Mapped[Optional[float]] = mapped_column(_amount())
    primary_supplier_id: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[Optional[int]] = mapped_column(Integer)  # 1/0
    country_of_origin: Mapped[Optional[str]] = mapped_column(String(10))
    online_only: Mapped[Optional[int]] = mapped_column(Integer)  # 1/0
    avg_rating: Mapped[Optional[float]] = mapped_column(_amount(3, 2))
    rating_count: Mapped[Optional[int]] = mapped_column(Integer)
    is_discontinued: Mapped[Optional[int]] = mapped_column(Integer)  # 1/0

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("avg_rating BETWEEN 1 AND 5", name="ck_products_avg_rating"),
        *_non_negative("products", "shelf_life_months", "default_price", "rating_count"),
    )


class SilverSupplier(Base):
    """Suppliers"""
    __tablename__ = "silver_suppliers"

    supplier_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    supplier_name: Mapped[str] = mapped_column(String(100), nullable=False)
    region: Mapped[str] = mapped_column(String(10), nullable=False)
    default_shipping_mode: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20))
    lead_time_category: Mapped[Optional[str]] = mapped_column(String(50))
    min_order_qty: Mapped[Optional[int]] = mapped_column(Integer)
    contract_start_date: Mapped[Optional[dt.date]] = mapped_column(Date)

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_suppliers_status"),
        CheckConstraint(
            "lead_time_category IN ('long', 'medium', 'short')",
            name="ck_suppliers_lead_time_category",
        ),
        *_non_negative("suppliers", "min_order_qty"),
    )


class SilverSale(Base):
    """
    Sales

    Grain: one row per sale line.
    """
    __tablename__ = "silver_sales"

    sale_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    order_id: Mapped[str] = mapped_column(String(20), nullable=False)
    date: Mapped[Optional[dt.date]] = mapped_column(Date)
    sku_id: Mapped[str] = mapped_column(String(20), nullable=False)
    channel: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[Optional[int]] = mapped_column(Integer)
    unit_price: Mapped[Optional[float]] = mapped_column(_amount())
    promo_flag: Mapped[Optional[int]] = mapped_column(Integer)
    discount_pct: Mapped[Optional[float]] = mapped_column(_amount(5, 2))
    event_name: Mapped[Optional[str]] = mapped_column(String(100))
    customer_segment_id: Mapped[Optional[int]] = mapped_column(Integer)
    customer_segment: Mapped[Optional[str]] = mapped_column(String(100))
    device_type: Mapped[Optional[str]] = mapped_column(String(50))
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))
    shipping_fee: Mapped[Optional[float]] = mapped_column(_amount())
    voucher_amount: Mapped[Optional[float]] = mapped_column(_amount())
    net_revenue: Mapped[Optional[float]] = mapped_column(_amount(12, 2))
    returned_flag: Mapped[Optional[int]] = mapped_column(Integer)
    quarter_bucket: Mapped[Optional[str]] = mapped_column(String(10))  # e.g. 2019Q2
    month: Mapped[Optional[dt.date]] = mapped_column(Date)

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity"),
        CheckConstraint("discount_pct BETWEEN 0 AND 100", name="ck_sales_discount_pct"),
        CheckConstraint("customer_segment_id IN (0, 1, 2)", name="ck_sales_customer_segment_id"),
        CheckConstraint(
            "customer_segment IN ('budget', 'value', 'premium')",
            name="ck_sales_customer_segment",
        ),
        *_non_negative("sales", "unit_price", "shipping_fee", "voucher_amount", "net_revenue"),
    )


class SilverPurchaseOrder(Base):
    """Purchase orders placed with suppliers"""
    __tablename__ = "silver_purchase_orders"

    po_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    sku_id: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(20), nullable=False)
    po_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    promised_delivery_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    delivery_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    order_qty: Mapped[Optional[int]] = mapped_column(Integer)
    unit_cost: Mapped[Optional[float]] = mapped_column(_amount())
    shipping_mode: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20))
    incoterm: Mapped[Optional[str]] = mapped_column(String(10))
    currency: Mapped[Optional[str]] = mapped_column(String(10))
    freight_cost: Mapped[Optional[float]] = mapped_column(_amount())
    duty_cost: Mapped[Optional[float]] = mapped_column(_amount())

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("order_qty > 0", name="ck_po_order_qty"),
        CheckConstraint("status IN ('delivered', 'pending')", name="ck_po_status"),
        *_non_negative("po", "unit_cost", "freight_cost", "duty_cost"),
    )


_STOCK_COLUMNS = (
    "current_stock",
    "incoming_stock",
    "warehouse_stock",
    "retail_stock",
    "amazon_allocated",
    "tiktokshop_allocated",
    "zalora_allocated",
    "reorder_point",
    "safety_stock",
)


class SilverDailyInventory(Base):
    """
    Daily Inventory

    Grain: one row per SKU per day.
    """
    __tablename__ = "silver_daily_inventory"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    sku_id: Mapped[str] = mapped_column(String(20), nullable=False)
    current_stock: Mapped[Optional[int]] = mapped_column(Integer)
    daily_sales: Mapped[Optional[int]] = mapped_column(Integer)
    incoming_stock: Mapped[Optional[int]] = mapped_column(Integer)
    warehouse_stock: Mapped[Optional[int]] = mapped_column(Integer)
    retail_stock: Mapped[Optional[int]] = mapped_column(Integer)
    amazon_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    tiktokshop_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    zalora_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer)
    safety_stock: Mapped[Optional[int]] = mapped_column(Integer)

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = _non_negative("di", "daily_sales", *_STOCK_COLUMNS)


class SilverInventorySnapshot(Base):
    """
    Inventory Snapshot

    Grain: one row per SKU per snapshot date, with stock ageing and backorders.
    """
    __tablename__ = "silver_inventory_snapshot"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    sku_id: Mapped[str] = mapped_column(String(20), nullable=False)
    current_stock: Mapped[Optional[int]] = mapped_column(Integer)
    incoming_stock: Mapped[Optional[int]] = mapped_column(Integer)
    stock_age_days: Mapped[Optional[int]] = mapped_column(Integer)
    warehouse_stock: Mapped[Optional[int]] = mapped_column(Integer)
    retail_stock: Mapped[Optional[int]] = mapped_column(Integer)
    amazon_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    tiktokshop_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    zalora_allocated: Mapped[Optional[int]] = mapped_column(Integer)
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer)
    safety_stock: Mapped[Optional[int]] = mapped_column(Integer)
    backorder_qty: Mapped[Optional[int]] = mapped_column(Integer)
    opening_buffer: Mapped[Optional[int]] = mapped_column(Integer)

    dwh_create_date: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = _non_negative(
        "is", "stock_age_days", "backorder_qty", "opening_buffer", *_STOCK_COLUMNS
    )


SILVER_MODELS: Dict[str, Type[Base]] = {
    "products": SilverProduct,
    "suppliers": SilverSupplier,
    "sales": SilverSale,
    "purchase_orders": SilverPurchaseOrder,
    "daily_inventory": SilverDailyInventory,
    "inventory_snapshot": SilverInventorySnapshot,
}
