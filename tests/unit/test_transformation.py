"""
Unit Tests - Entity Transformation
"""
import pytest
from datetime import date

import polars as pl

from retail_silver.database.models import SILVER_MODELS
from retail_silver.transformation.normalizers import RuleKind
from retail_silver.transformation.rules import (
    ENTITY_ORDER,
    ENTITY_SCHEMAS,
    get_entity_schema,
)
from retail_silver.transformation.transformers import EntityTransform, transform_records


class TestEntityRules:
    """Tests for the entity rule tables"""

    def test_entity_order(self):
        assert ENTITY_ORDER == (
            "products",
            "suppliers",
            "sales",
            "purchase_orders",
            "daily_inventory",
            "inventory_snapshot",
        )

    def test_every_entity_has_a_silver_table(self):
        for name, schema in ENTITY_SCHEMAS.items():
            assert schema.table == f"silver_{name}"

    def test_required_and_key_columns_are_declared(self):
        for schema in ENTITY_SCHEMAS.values():
            assert set(schema.required) <= set(schema.columns)
            assert set(schema.key) <= set(schema.columns)

    def test_unknown_entity(self):
        with pytest.raises(ValueError, match="Unknown entity"):
            get_entity_schema("customers")

    def test_not_null_columns_are_never_nulled_by_cleansing(self):
        for schema in ENTITY_SCHEMAS.values():
            for column in schema.not_null:
                assert column in schema.required
                assert schema.rule_for(column).kind == RuleKind.TRIM or (column,) == schema.key

    def test_silver_nullability_follows_not_null_columns(self):
        for name, schema in ENTITY_SCHEMAS.items():
            table_columns = SILVER_MODELS[name].__table__.c
            for column in schema.required:
                assert table_columns[column].nullable == (column not in schema.not_null), column


class TestEntityTransform:
    """Tests for EntityTransform"""

    @pytest.mark.parametrize("entity", ENTITY_ORDER)
    def test_row_count_preserved(self, entity, raw_records, processing_date):
        rows = raw_records[entity]
        typed = list(EntityTransform(entity, today=processing_date).transform(rows))

        assert len(typed) == len(rows)
        for record in typed:
            assert list(record) == ENTITY_SCHEMAS[entity].columns

    def test_products(self, raw_products, processing_date):
        first, second = transform_records("products", raw_products, today=processing_date)

        assert first["sku_id"] == "SKU001"
        assert first["product_name"] == "Hydrating Serum"
        assert first["brand"] == "Glowlab"
        assert first["launch_date"] == date(2021, 3, 15)
        assert first["default_price"] == 19.9
        assert first["is_active"] == 1
        assert first["online_only"] == 0
        assert first["is_discontinued"] == 0
        assert first["rating_count"] == 120

        assert second["launch_date"] is None
        assert second["default_price"] is None
        assert second["is_active"] is None
        assert second["online_only"] == 1
        assert second["avg_rating"] is None
        assert second["rating_count"] is None
        assert second["is_discontinued"] is None

    def test_sales(self, raw_sales, processing_date):
        first, second = transform_records("sales", raw_sales, today=processing_date)

        assert first["sale_id"] == 1001
        assert first["quantity"] == 2
        assert first["customer_segment_id"] == 1
        assert first["quarter_bucket"] == "2023Q4"
        assert first["month"] == date(2023, 11, 1)

        assert second["event_name"] is None
        assert second["customer_segment_id"] is None
        assert second["customer_segment"] == "premium"
        assert second["shipping_fee"] is None
        assert second["quarter_bucket"] is None
        assert second["returned_flag"] == 1

    def test_out_of_range_sale_date_is_null(self, raw_sales, processing_date):
        rows = [{**raw_sales[0], "date": "1999-12-31"}, {**raw_sales[0], "date": "2023-11-11garbage"}]

        first, second = transform_records("sales", rows, today=processing_date)

        assert first["date"] is None
        assert second["date"] is None
        assert first["sale_id"] == 1001

    def test_purchase_orders(self, raw_purchase_orders, processing_date):
        _, second = transform_records("purchase_orders", raw_purchase_orders, today=processing_date)

        assert second["po_date"] == date(2024, 1, 20)
        # Promised delivery is after the processing date
        assert second["promised_delivery_date"] is None
        assert second["delivery_date"] is None
        assert second["unit_cost"] is None
        assert second["duty_cost"] is None
        assert second["status"] == "pending"

    def test_missing_columns_are_null(self, processing_date):
        (record,) = transform_records("products", [{"sku_id": "SKU009"}], today=processing_date)

        assert record["sku_id"] == "SKU009"
        assert all(record[c] is None for c in record if c != "sku_id")

    def test_extra_columns_are_dropped(self, raw_suppliers, processing_date):
        rows = [{**row, "notes": "ignore me"} for row in raw_suppliers]
        typed = transform_records("suppliers", rows, today=processing_date)

        assert all("notes" not in record for record in typed)

    def test_empty_input(self, processing_date):
        assert transform_records("sales", [], today=processing_date) == []

    def test_deterministic(self, raw_sales, processing_date):
        first = transform_records("sales", raw_sales, today=processing_date)
        second = transform_records("sales", raw_sales, today=processing_date)

        assert first == second

    def test_worker_pool_preserves_order(self, processing_date):
        rows = [
            {"snapshot_date": "2024-01-01", "sku_id": f"SKU{i:03d}", "current_stock": str(i)}
            for i in range(25)
        ]
        sequential = EntityTransform("daily_inventory", today=processing_date, batch_size=3)
        pooled = EntityTransform("daily_inventory", today=processing_date, batch_size=3, max_workers=4)

        expected = list(sequential.transform(rows))
        result = list(pooled.transform(rows))

        assert result == expected
        assert [r["sku_id"] for r in result] == [f"SKU{i:03d}" for i in range(25)]

    def test_transform_is_lazy(self, processing_date):
        def rows():
            yield {"supplier_id": "SUP01"}
            raise AssertionError("read past the first chunk")

        transform = EntityTransform("suppliers", today=processing_date, batch_size=1)
        first = next(iter(transform.transform(rows())))

        assert first["supplier_id"] == "SUP01"

    def test_transform_all_schema(self, raw_daily_inventory, processing_date):
        transform = EntityTransform("daily_inventory", today=processing_date)
        df = transform.transform_all(raw_daily_inventory)

        assert df.height == 2
        assert df.schema["snapshot_date"] == pl.Date
        assert df.schema["current_stock"] == pl.Int64
        assert df["current_stock"].to_list() == [340, None]

    def test_transform_frame(self, processing_date):
        raw = pl.DataFrame({
            "supplier_id": ["SUP01", "SUP02"],
            "status": ["active", "closed"],
            "min_order_qty": [100, -1],
        })
        result = EntityTransform("suppliers", today=processing_date).transform_frame(raw)

        assert result.columns == ENTITY_SCHEMAS["suppliers"].columns
        assert result["status"].to_list() == ["active", None]
        assert result["min_order_qty"].to_list() == [100, None]
        assert result["region"].to_list() == [None, None]

    def test_processing_date_bounds_dates(self, raw_inventory_snapshot):
        earlier = transform_records("inventory_snapshot", raw_inventory_snapshot, today=date(2024, 1, 30))
        on_day = transform_records("inventory_snapshot", raw_inventory_snapshot, today=date(2024, 1, 31))

        assert earlier[0]["snapshot_date"] is None
        assert on_day[0]["snapshot_date"] == date(2024, 1, 31)
