"""
Test Suite Configuration
"""
import pytest
from datetime import date
from typing import Dict, List

from retail_silver.config import PipelineSettings
from retail_silver.database.connection import close_database, init_database


PROCESSING_DATE = date(2024, 1, 31)


@pytest.fixture
def processing_date() -> date:
    """Fixed processing date so date bounds are deterministic"""
    return PROCESSING_DATE


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Pipeline settings with quality checks on"""
    return PipelineSettings(
        batch_size=2,
        max_workers=1,
        insert_chunk_size=2,
        enable_quality_checks=True,
    )


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}"


@pytest.fixture
async def database(database_url):
    """Temporary SQLite warehouse with bronze and silver tables"""
    engine = await init_database(database_url, create_tables=True)
    yield engine
    await close_database()


@pytest.fixture
def raw_products() -> List[Dict]:
    """Raw product rows as read from the source file"""
    return [
        {
            "sku_id": " SKU001 ",
            "product_name": "Hydrating Serum ",
            "category": "Skincare",
            "sub_category": "Serum",
            "brand": " Glowlab",
            "product_type": "single",
            "size_label": "30ml",
            "launch_date": "2021-03-15",
            "shelf_life_months": "24",
            "parent_sku": "",
            "default_price": "19.90",
            "primary_supplier_id": "SUP01",
            "is_active": "TRUE",
            "country_of_origin": "KR",
            "online_only": "false",
            "avg_rating": "4.5",
            "rating_count": "120",
            "is_discontinued": "FALSE",
        },
        {
            "sku_id": "SKU002",
            "product_name": "Clay Mask",
            "category": "Skincare",
            "sub_category": "Mask",
            "brand": "Glowlab",
            "product_type": "bundle",
            "size_label": "100g",
            "launch_date": "1999-12-31",
            "shelf_life_months": "18",
            "parent_sku": "SKU001",
            "default_price": "-5",
            "primary_supplier_id": "SUP02",
            "is_active": "maybe",
            "country_of_origin": "TH",
            "online_only": " True ",
            "avg_rating": "0.5",
            "rating_count": "-3",
            "is_discontinued": "",
        },
    ]


@pytest.fixture
def raw_suppliers() -> List[Dict]:
    return [
        {
            "supplier_id": "SUP01",
            "supplier_name": " Seoul Cosmetics ",
            "region": "KR",
            "default_shipping_mode": "sea",
            "status": "active",
            "lead_time_category": "long",
            "min_order_qty": "500",
            "contract_start_date": "2019-06-01",
        },
        {
            "supplier_id": "SUP02",
            "supplier_name": "Bangkok Beauty",
            "region": "TH",
            "default_shipping_mode": "air",
            "status": " inactive",
            "lead_time_category": "short",
            "min_order_qty": "-10",
            "contract_start_date": "2030-01-01",
        },
    ]


@pytest.fixture
def raw_sales() -> List[Dict]:
    return [
        {
            "sale_id": "1001",
            "order_id": "ORD001",
            "date": "2023-11-11",
            "sku_id": "SKU001",
            "channel": "Shopee",
            "quantity": "2",
            "unit_price": "19.90",
            "promo_flag": "1",
            "discount_pct": "10",
            "event_name": "11.11",
            "customer_segment_id": "1",
            "customer_segment": "value",
            "device_type": "mobile",
            "payment_method": "card",
            "shipping_fee": "1.50",
            "voucher_amount": "0",
            "net_revenue": "35.82",
            "returned_flag": "0",
            "quarter_bucket": "2023Q4",
            "month": "2023-11-01",
        },
        {
            "sale_id": "1002",
            "order_id": "ORD002",
            "date": "2023-12-01",
            "sku_id": "SKU002",
            "channel": "Lazada",
            "quantity": "1",
            "unit_price": "12.00",
            "promo_flag": "0",
            "discount_pct": "0",
            "event_name": "   ",
            "customer_segment_id": "7",
            "customer_segment": "premium",
            "device_type": "desktop",
            "payment_method": "cod",
            "shipping_fee": "-1",
            "voucher_amount": "2",
            "net_revenue": "10.00",
            "returned_flag": "1",
            "quarter_bucket": "2023-Q4",
            "month": "2023-12-01",
        },
    ]


@pytest.fixture
def raw_purchase_orders() -> List[Dict]:
    return [
        {
            "po_id": "PO001",
            "sku_id": "SKU001",
            "supplier_id": "SUP01",
            "po_date": "2023-10-01",
            "promised_delivery_date": "2023-11-01",
            "delivery_date": "2023-11-03",
            "order_qty": "1000",
            "unit_cost": "6.50",
            "shipping_mode": "sea",
            "status": "delivered",
            "incoterm": "FOB",
            "currency": "USD",
            "freight_cost": "120.00",
            "duty_cost": "35.00",
        },
        {
            "po_id": "PO002",
            "sku_id": "SKU002",
            "supplier_id": "SUP02",
            "po_date": "2024-01-20",
            "promised_delivery_date": "2024-02-10",
            "delivery_date": "",
            "order_qty": "250",
            "unit_cost": "abc",
            "shipping_mode": "air",
            "status": "pending",
            "incoterm": "EXW",
            "currency": "THB",
            "freight_cost": "0",
            "duty_cost": "-2",
        },
    ]


@pytest.fixture
def raw_daily_inventory() -> List[Dict]:
    return [
        {
            "snapshot_date": "2024-01-30",
            "sku_id": "SKU001",
            "current_stock": "340",
            "daily_sales": "12",
            "incoming_stock": "0",
            "warehouse_stock": "300",
            "retail_stock": "40",
            "amazon_allocated": "10",
            "tiktokshop_allocated": "5",
            "zalora_allocated": "0",
            "reorder_point": "100",
            "safety_stock": "50",
        },
        {
            "snapshot_date": "2024-01-30",
            "sku_id": "SKU002",
            "current_stock": "-4",
            "daily_sales": "3",
            "incoming_stock": "250",
            "warehouse_stock": "0",
            "retail_stock": "0",
            "amazon_allocated": "0",
            "tiktokshop_allocated": "0",
            "zalora_allocated": "0",
            "reorder_point": "20",
            "safety_stock": "10",
        },
    ]


@pytest.fixture
def raw_inventory_snapshot() -> List[Dict]:
    return [
        {
            "snapshot_date": "2024-01-31",
            "sku_id": "SKU001",
            "current_stock": "328",
            "incoming_stock": "0",
            "stock_age_days": "45",
            "warehouse_stock": "290",
            "retail_stock": "38",
            "amazon_allocated": "10",
            "tiktokshop_allocated": "5",
            "zalora_allocated": "0",
            "reorder_point": "100",
            "safety_stock": "50",
            "backorder_qty": "0",
            "opening_buffer": "20",
        },
    ]


@pytest.fixture
def raw_records(
    raw_products,
    raw_suppliers,
    raw_sales,
    raw_purchase_orders,
    raw_daily_inventory,
    raw_inventory_snapshot,
) -> Dict[str, List[Dict]]:
    """Raw rows for every entity, keyed by entity name"""
    return {
        "products": raw_products,
        "suppliers": raw_suppliers,
        "sales": raw_sales,
        "purchase_orders": raw_purchase_orders,
        "daily_inventory": raw_daily_inventory,
        "inventory_snapshot": raw_inventory_snapshot,
    }
