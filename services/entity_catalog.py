"""
Importable entities.

Each entry configures the shared import engine for one upload type: the
alias table that recognises its spreadsheet columns, the field types,
the natural key used for deduplication and upserts, and the defaults
injected into every record.

Alias order matters: in each matching pass the first field listed wins,
so more specific fields come first.
"""

from datetime import date
from typing import Optional

from exceptions import UnknownEntityError
from models.entity import CanonicalRecord, CompanionTable, EntitySchema, ParentReference


def _today(record: CanonicalRecord) -> str:
    return date.today().isoformat()


# ===================
# LEADS
# ===================

LEADS = EntitySchema(
    name="leads",
    table="leads",
    natural_key=("customer_code",),
    aliases={
        "customer_code": ("customer code", "customer_code", "cust code", "code"),
        "customer_name": ("customer name", "customer_name", "name", "client name"),
        "mobile_number": ("mobile", "mobile number", "mobile_number", "phone", "contact", "phone number"),
        "alternate_mobile": ("alternate mobile", "alternate_mobile", "alt mobile", "alternate", "secondary mobile"),
        "location": ("location", "city", "place", "area"),
        "company_name": ("company name", "company_name", "company", "firm name", "business name"),
        "gst_number": ("gst number", "gst_number", "gst", "gstin", "gst no"),
        "email": ("email", "email id", "email address", "mail"),
        "status": ("status", "lead status"),
        "created_at": ("created at", "created_at", "date", "created date"),
    },
    required_fields=("customer_code", "customer_name", "mobile_number"),
    date_fields=frozenset({"created_at"}),
    defaults={"status": "New"},
    stamp_updated_at=True,
)


# ===================
# INVENTORY
# ===================

INVENTORY = EntitySchema(
    name="inventory",
    table="inventory",
    natural_key=("serial_number",),
    aliases={
        "serial_number": (
            "serial number", "serial_number", "serial", "sr no", "sr.no", "s.no", "sno",
            "serial no", "device serial", "imei", "device_id", "device id", "sl no", "sl.no", "slno",
        ),
        "product_name": (
            "model name", "product_name", "product name", "product", "item name", "item",
            "device name", "device", "model", "description",
        ),
        "status": ("status", "inventory status", "stock status", "availability", "state"),
        "qc_result": (
            "qc result", "qc_result", "qc", "quality check", "quality", "test result",
            "qc status", "quality status",
        ),
        "in_date": (
            "in date", "in_date", "inward date", "received date", "entry date", "purchase date",
            "date added", "added date", "inward", "receipt date",
        ),
        "dispatch_date": (
            "dispatch date", "dispatch_date", "shipped date", "ship date", "sent date",
            "outward date", "delivery date", "out date",
        ),
        "customer_code": ("customer code", "customer_code", "cust code", "client code", "customer id", "client id", "cust_code"),
        "customer_name": ("customer name", "customer_name", "client name", "buyer name", "buyer", "consignee"),
        "customer_city": (
            "customer city", "customer_city", "city", "location", "place", "destination",
            "customer location", "ship to city",
        ),
        "order_id": ("order id", "order_id", "order no", "order number", "sales order", "so number", "invoice", "invoice no"),
        "category": ("category", "product category", "type", "item category", "product type", "group", "item type"),
        "qc_date": ("qc date", "qc_date", "quality check date", "test date", "checked date", "inspection date"),
        "sd_connect": ("sd_connect", "sd connect", "sd card", "sd status", "memory card"),
        "all_channels": ("all_channels", "all channels", "channels", "channel test", "video channels"),
        "network_test": ("network_test", "network test", "network", "connectivity", "network status", "wifi test"),
        "gps_test": ("gps_test", "gps test", "gps", "gps status", "location test"),
        "sim_slot": ("sim_slot", "sim slot", "sim", "sim card", "sim status"),
        "online_test": ("online_test", "online test", "online", "online status", "cloud test"),
        "camera_quality": ("camera_quality", "camera quality", "camera", "video quality", "image quality"),
        "monitor_test": ("monitor_test", "monitor test", "monitor", "display test", "screen test"),
        "ip_address": ("ip_address", "ip address", "ip", "device ip", "network ip"),
        "checked_by": ("checked_by", "checked by", "inspector", "tested by", "quality inspector", "qc person", "operator"),
    },
    required_fields=("serial_number", "product_name"),
    date_fields=frozenset({"in_date", "dispatch_date", "qc_date"}),
    defaults={"status": "In Stock", "qc_result": "Pending"},
    stamp_updated_at=True,
)


# ===================
# QC REPORTS
# ===================

# Layout: S. No, QC Date, Serial Number, Device Type, SD Connect, All Channels,
# Network, GPS, SIM Slot, Online, Camera Quality, Monitor, Final Status,
# IP Address, Checked By
QC_REPORTS = EntitySchema(
    name="qc_reports",
    table="inventory",
    natural_key=("serial_number",),
    aliases={
        "serial_number": ("serial number", "serial_number", "serial", "sr no", "s no", "s. no", "sno"),
        "product_name": ("device type", "device_type", "model", "model name", "product", "device"),
        "qc_date": ("qc date", "qc_date", "date", "test date", "check date"),
        "sd_connect": ("sd connect", "sd_connect", "sd card", "sd"),
        "all_channels": ("all channels", "all_channels", "channels"),
        "network_test": ("network", "network_test", "network test"),
        "gps_test": ("gps", "gps_test", "gps test"),
        "sim_slot": ("sim slot", "sim_slot", "sim"),
        "online_test": ("online", "online_test", "online test"),
        "camera_quality": ("camera quality", "camera_quality", "camera"),
        "monitor_test": ("monitor", "monitor_test", "monitor test", "display"),
        "qc_result": ("final status", "final_status", "status", "result", "qc result"),
        "ip_address": ("ip address", "ip_address", "ip"),
        "checked_by": ("checked by", "checked_by", "inspector", "operator", "tested by"),
    },
    required_fields=("serial_number",),
    date_fields=frozenset({"qc_date"}),
    defaults={"qc_result": "Pending", "product_name": "Unknown Device"},
    stamp_updated_at=True,
)


# ===================
# PRODUCTS & PRICING
# ===================

PRICING_FIELDS = ("qty_0_10", "qty_10_50", "qty_50_100", "qty_100_plus")

PRODUCTS = EntitySchema(
    name="products",
    table="products",
    natural_key=("product_code",),
    aliases={
        "product_code": ("product code", "product_code", "code", "item code", "sku"),
        "product_name": ("product name", "product_name", "name", "item name", "description", "product"),
        "category": ("category", "type", "product category", "group"),
        "qty_0_10": ("0-10 qty", "0 10 qty", "qty 0 10", "0-10", "qty0-10"),
        "qty_10_50": ("10-50 qty", "10 50 qty", "qty 10 50", "10-50", "qty10-50"),
        "qty_50_100": ("50-100 qty", "50 100 qty", "qty 50 100", "50-100", "qty50-100"),
        "qty_100_plus": ("100+ qty", "100 qty", "qty 100", "100+", "qty100+", "100 plus"),
    },
    required_fields=("product_code", "product_name"),
    numeric_fields=frozenset(PRICING_FIELDS),
    defaults={"category": "General"},
    stamp_updated_at=True,
    companion=CompanionTable(table="product_pricing", fields=PRICING_FIELDS),
)


# ===================
# PAYMENT HISTORY
# ===================

PAYMENTS = EntitySchema(
    name="payments",
    table="payment_history",
    natural_key=("order_id", "payment_date", "amount"),
    aliases={
        "order_id": ("order id", "order_id", "order no", "order number", "invoice"),
        "payment_date": ("payment date", "payment_date", "date", "paid date"),
        "amount": ("amount", "payment amount", "paid amount", "value"),
        "account_received": ("account", "account_received", "bank", "payment mode", "mode"),
        "payment_reference": ("payment reference", "payment_reference", "reference", "ref", "txn id", "transaction id"),
    },
    required_fields=("order_id", "payment_date", "amount"),
    date_fields=frozenset({"payment_date"}),
    numeric_fields=frozenset({"amount"}),
    defaults={"account_received": "Cash"},
    parent=ParentReference(field="order_id", table="sales", column="order_id"),
)


# ===================
# SALES
# ===================

def _total_from_final(record: CanonicalRecord) -> float:
    return record.get("final_amount") or 0


def _total_amount(record: CanonicalRecord) -> float:
    return record.get("total_amount") or 0


def _location_remark(record: CanonicalRecord) -> Optional[str]:
    location = record.get("location")
    return f"Location: {location}" if location else None


SALES = EntitySchema(
    name="sales",
    table="sales",
    natural_key=("order_id",),
    aliases={
        "order_id": ("order id", "order_id", "order no", "order number", "orderid", "order", "id", "sr no", "s no", "sno", "srno"),
        "sale_date": ("sale date", "sale_date", "saledate", "date", "order date", "invoice date"),
        "customer_code": ("customer code", "customer_code", "customercode", "cust code", "custcode", "cust id", "customer id"),
        "customer_name": ("customer name", "customer_name", "customername", "name", "cust name", "custname", "party name", "party"),
        "customer_contact": ("mobile", "mobile number", "phone", "contact", "mobile_number", "phone number", "cell", "mob", "contact no"),
        "location": ("location", "city", "address", "area", "state", "place", "delivery location"),
        "total_amount": (
            "total amount", "total_amount", "totalamount", "total", "amount", "grand total",
            "net amount", "invoice amount", "bill amount",
        ),
        "final_amount": ("final amount", "final_amount", "finalamount", "final", "net amount", "payable", "receivable"),
    },
    required_fields=("order_id",),
    date_fields=frozenset({"sale_date"}),
    numeric_fields=frozenset({"total_amount", "final_amount"}),
    additive_fields=frozenset({"final_amount"}),
    # Evaluated in order: total_amount first (falling back to final_amount),
    # then the fields derived from it
    defaults={
        "total_amount": _total_from_final,
        "employee_name": "Imported",
        "sale_type": "Without",
        "subtotal": _total_amount,
        "gst_amount": 0,
        "courier_cost": 0,
        "amount_received": 0,
        "balance_amount": _total_amount,
        "sale_date": _today,
        "remarks": _location_remark,
    },
    transient_fields=("final_amount", "location"),
)


# ===================
# PENDING PAYMENTS
# ===================

# Outstanding-balance sheets: the same sales rows, with received and
# balance amounts taken from the file instead of derived
PENDING_PAYMENTS = EntitySchema(
    name="pending_payments",
    table="sales",
    natural_key=("order_id",),
    aliases={
        "order_id": ("order id", "order_id", "order no", "order number"),
        "customer_code": ("cust code", "customer code", "customer_code", "code"),
        "customer_name": ("customer name", "customer_name", "name"),
        "company_name": ("company name", "company_name", "company"),
        "sale_date": ("date", "sale date", "order date", "sale_date"),
        "employee_name": ("employee", "employee_name", "salesperson", "sales person"),
        "customer_contact": ("contact", "customer_contact", "phone", "mobile"),
        "total_amount": ("total amount", "total_amount", "total", "amount"),
        "amount_received": ("received", "amount_received", "paid"),
        "balance_amount": ("balance", "balance_amount", "due"),
    },
    required_fields=("order_id",),
    date_fields=frozenset({"sale_date"}),
    numeric_fields=frozenset({"total_amount", "amount_received", "balance_amount"}),
    additive_fields=frozenset({"total_amount", "amount_received", "balance_amount"}),
    defaults={
        "sale_type": "With",
        "subtotal": _total_amount,
        "gst_amount": 0,
        "courier_cost": 0,
        "sale_date": _today,
        "employee_name": "Unknown",
        "customer_code": "UNKNOWN",
    },
)


ENTITY_SCHEMAS: dict[str, EntitySchema] = {
    schema.name: schema
    for schema in (LEADS, INVENTORY, QC_REPORTS, PRODUCTS, PAYMENTS, SALES, PENDING_PAYMENTS)
}


def get_entity_schema(name: str) -> EntitySchema:
    """
    Look up an entity schema by name.

    Raises:
        UnknownEntityError: If no schema is registered under name
    """
    schema = ENTITY_SCHEMAS.get(name.strip().lower())
    if schema is None:
        raise UnknownEntityError(name)
    return schema


def list_entity_schemas() -> list[EntitySchema]:
    """All registered schemas, in registration order."""
    return list(ENTITY_SCHEMAS.values())
