"""
Silver Layer Rule Table

Declarative cleansing rules keyed by (entity, field). The rule data lives
here; EntityTransform is the single engine that applies it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import polars as pl

from .normalizers import (
    FieldRule,
    FieldType,
    RuleKind,
    at_least,
    boolean_text,
    bounded_date,
    closed_enum,
    non_negative,
    passthrough,
    pattern,
    trim,
    trim_blank_null,
)

INTEGER = FieldType.INTEGER
DECIMAL = FieldType.DECIMAL

QUARTER_BUCKET_PATTERN = r"^[0-9]{4}Q[0-9]$"


@dataclass(frozen=True)
class EntitySchema:
    """Cleansing rules and target for one entity"""
    name: str
    table: str
    fields: Dict[str, FieldRule]
    key: Tuple[str, ...] = ()
    required: Tuple[str, ...] = field(default=())

    @property
    def columns(self) -> List[str]:
        return list(self.fields)

    @property
    def output_schema(self) -> Dict[str, pl.DataType]:
        """Polars schema of the typed records"""
        return {name: rule.dtype for name, rule in self.fields.items()}

    def rule_for(self, column: str) -> FieldRule:
        return self.fields[column]

    @property
    def not_null(self) -> Tuple[str, ...]:
        """
        Required columns the silver table declares NOT NULL.

        Trimmed text and a single-column primary key only. A bounded date, a
        closed-set value or a typed passthrough can be nulled by cleansing, so
        those columns stay nullable even when required.
        """
        return tuple(
            column for column in self.required
            if (column,) == self.key or self.fields[column].kind == RuleKind.TRIM
        )


# =============================================================================
# ENTITY RULE SETS
# =============================================================================

PRODUCTS = EntitySchema(
    name="products",
    table="silver_products",
    key=("sku_id",),
    required=("sku_id", "product_name", "primary_supplier_id"),
    fields={
        "sku_id": trim(),
        "product_name": trim(),
        "category": trim(),
        "sub_category": trim(),
        "brand": trim(),
        "product_type": trim(),
        "size_label": trim(),
        "launch_date": bounded_date(),
        "shelf_life_months": passthrough(DECIMAL),
        "parent_sku": trim(),
        "default_price": non_negative(DECIMAL),
        "primary_supplier_id": trim(),
        "is_active": boolean_text(),
        "country_of_origin": trim(),
        "online_only": boolean_text(),
        # Ratings are on a 1-5 scale; only the lower bound is enforced here
        "avg_rating": at_least(1, DECIMAL),
        "rating_count": non_negative(INTEGER),
        "is_discontinued": boolean_text(),
    },
)

SUPPLIERS = EntitySchema(
    name="suppliers",
    table="silver_suppliers",
    key=("supplier_id",),
    required=(
        "supplier_id",
        "supplier_name",
        "region",
        "default_shipping_mode",
        "status",
        "lead_time_category",
    ),
    fields={
        "supplier_id": trim(),
        "supplier_name": trim(),
        "region": trim(),
        "default_shipping_mode": trim(),
        "status": closed_enum("active", "inactive"),
        "lead_time_category": closed_enum("long", "medium", "short"),
        "min_order_qty": non_negative(INTEGER),
        "contract_start_date": bounded_date(),
    },
)

SALES = EntitySchema(
    name="sales",
    table="silver_sales",
    key=("sale_id",),
    required=(
        "sale_id",
        "order_id",
        "date",
        "sku_id",
        "channel",
        "promo_flag",
        "returned_flag",
        "month",
    ),
    fields={
        "sale_id": passthrough(INTEGER),
        "order_id": trim(),
        "date": bounded_date(),
        "sku_id": trim(),
        "channel": trim(),
        "quantity": non_negative(INTEGER),
        "unit_price": non_negative(DECIMAL),
        # promo_flag and discount_pct carry no validity guard
        "promo_flag": passthrough(INTEGER),
        "discount_pct": passthrough(DECIMAL),
        "event_name": trim_blank_null(),
        "customer_segment_id": closed_enum(0, 1, 2, field_type=INTEGER),
        "customer_segment": closed_enum("budget", "value", "premium"),
        "device_type": trim(),
        "payment_method": trim(),
        "shipping_fee": non_negative(DECIMAL),
        "voucher_amount": non_negative(DECIMAL),
        "net_revenue": non_negative(DECIMAL),
        "returned_flag": closed_enum(0, 1, field_type=INTEGER),
        "quarter_bucket": pattern(QUARTER_BUCKET_PATTERN),
        "month": bounded_date(),
    },
)

PURCHASE_ORDERS = EntitySchema(
    name="purchase_orders",
    table="silver_purchase_orders",
    key=("po_id",),
    required=("po_id", "sku_id", "supplier_id", "po_date", "shipping_mode", "status"),
    fields={
        "po_id": trim(),
        "sku_id": trim(),
        "supplier_id": trim(),
        "po_date": bounded_date(),
        "promised_delivery_date": bounded_date(),
        "delivery_date": bounded_date(),
        "order_qty": non_negative(INTEGER),
        "unit_cost": non_negative(DECIMAL),
        "shipping_mode": trim(),
        "status": closed_enum("delivered", "pending"),
        "incoterm": trim(),
        "currency": trim(),
        "freight_cost": non_negative(DECIMAL),
        "duty_cost": non_negative(DECIMAL),
    },
)

_STOCK_COUNTERS = (
    "warehouse_stock",
    "retail_stock",
    "amazon_allocated",
    "tiktokshop_allocated",
    "zalora_allocated",
    "reorder_point",
    "safety_stock",
)

DAILY_INVENTORY = EntitySchema(
    name="daily_inventory",
    table="silver_daily_inventory",
    key=("snapshot_date", "sku_id"),
    required=("snapshot_date", "sku_id"),
    fields={
        "snapshot_date": bounded_date(),
        "sku_id": trim(),
        "current_stock": non_negative(INTEGER),
        "daily_sales": non_negative(INTEGER),
        "incoming_stock": non_negative(INTEGER),
        **{name: non_negative(INTEGER) for name in _STOCK_COUNTERS},
    },
)

INVENTORY_SNAPSHOT = EntitySchema(
    name="inventory_snapshot",
    table="silver_inventory_snapshot",
    key=("snapshot_date", "sku_id"),
    required=("snapshot_date", "sku_id"),
    fields={
        "snapshot_date": bounded_date(),
        "sku_id": trim(),
        "current_stock": non_negative(INTEGER),
        "incoming_stock": non_negative(INTEGER),
        "stock_age_days": non_negative(INTEGER),
        **{name: non_negative(INTEGER) for name in _STOCK_COUNTERS},
        "backorder_qty": non_negative(INTEGER),
        "opening_buffer": non_negative(INTEGER),
    },
)


ENTITY_SCHEMAS: Dict[str, EntitySchema] = {
    schema.name: schema
    for schema in (
        PRODUCTS,
        SUPPLIERS,
        SALES,
        PURCHASE_ORDERS,
        DAILY_INVENTORY,
        INVENTORY_SNAPSHOT,
    )
}

# Fixed run order
ENTITY_ORDER: Tuple[str, ...] = tuple(ENTITY_SCHEMAS)


def get_entity_schema(name: str) -> EntitySchema:
    """Look up an entity's rule set by name"""
    try:
        return ENTITY_SCHEMAS[name]
    except KeyError:
        raise ValueError(
            f"Unknown entity: {name}. Expected one of: {list(ENTITY_ORDER)}"
        ) from None
