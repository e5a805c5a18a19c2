"""Tests for the schema definitions."""

from database.lib.schema_manager import SchemaManager

def table_names(schema):
    return [table["name"] for table in schema["tables"]]

def columns(schema, table_name):
    table = next(t for t in schema["tables"] if t["name"] == table_name)
    return {col["name"]: col for col in table["columns"]}

def test_load_schema_files():
    """Test every schema version loads in order."""
    schemas = SchemaManager(pool=None).load_schema_files()

    assert list(schemas) == [1, 2]
    assert table_names(schemas[1]) == ["accounts", "cart_lines", "customer_orders", "seller_orders"]
    assert table_names(schemas[2]) == ["order_status_history"]
    assert schemas[2]["migrations"]

def test_ledgers_share_order_id():
    """Test the seller ledger is keyed by the customer order id."""
    schema = SchemaManager(pool=None).load_schema_files()[1]
    seller = next(t for t in schema["tables"] if t["name"] == "seller_orders")

    assert columns(schema, "seller_orders")["order_id"].get("primary_key")
    assert any(
        fk["columns"] == ["order_id"] and fk["references"].startswith("customer_orders")
        for fk in seller["foreign_keys"]
    )

def test_unique_indexes():
    """Test one cart line per product and one order per idempotency key."""
    schema = SchemaManager(pool=None).load_schema_files()[1]
    indexes = {
        index["name"]: index
        for table in schema["tables"]
        for index in table.get("indexes", [])
    }

    cart_unique = [i for i in indexes.values() if i.get("unique") and i["columns"] == ["buyer_id", "product_id"]]
    key_unique = [i for i in indexes.values() if i.get("unique") and i["columns"] == ["buyer_id", "idempotency_key"]]
    assert cart_unique
    assert key_unique and key_unique[0].get("where")

def test_order_status_defaults_to_placed():
    schema = SchemaManager(pool=None).load_schema_files()[1]

    assert columns(schema, "customer_orders")["status"]["default"] == "'PLACED'"
    assert columns(schema, "seller_orders")["status"]["default"] == "'PLACED'"
