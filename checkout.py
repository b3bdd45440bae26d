"""
Order placement and order status handling.

place_order() runs in three steps:
1. Validate every line item in input order (product exists, enough stock)
   and accumulate the total from current unit prices. Nothing is written.
2. Reserve stock per line with a conditional decrement (stock >= quantity
   in the update filter). A failed reservation restores the ones already
   taken and rejects the order.
3. Persist the order as pending. If that fails the reservations are
   restored and the error propagates.
"""

from typing import Any, Dict, List

import structlog
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_document, now, serialize_document, to_object_id, update_document
from errors import InsufficientStockError, NotFoundError, ValidationError
from observability import storefront_orders_total
from schemas import Order, OrderCreate, OrderItem, OrderStatus

log = structlog.get_logger(__name__)

PRODUCT_COLLECTION = "product"
ORDER_COLLECTION = "order"


def _product_not_found(product_id) -> NotFoundError:
    return NotFoundError(f"Product not found: {product_id}")


def _validate_items(database: Database, payload: OrderCreate):
    total = 0.0
    lines: List[OrderItem] = []
    for item in payload.items:
        product = get_document(database, PRODUCT_COLLECTION, item.product)
        if product is None:
            raise _product_not_found(item.product)
        stock = int(product.get("stock", 0))
        if stock < item.quantity:
            raise InsufficientStockError(product.get("name", item.product), stock, item.quantity)
        price = float(product.get("price", 0))
        total += price * item.quantity
        lines.append(OrderItem(
            product=str(product["_id"]),
            name=product.get("name", ""),
            price=price,
            quantity=item.quantity,
        ))
    return lines, total


def _release_stock(database: Database, lines: List[OrderItem]):
    products = database[PRODUCT_COLLECTION]
    for line in lines:
        products.update_one(
            {"_id": to_object_id(line.product)},
            {"$inc": {"stock": line.quantity}, "$set": {"updatedAt": now()}},
        )
        log.info("stock_released", product=line.product, quantity=line.quantity)


def _reserve_stock(database: Database, lines: List[OrderItem]) -> List[OrderItem]:
    products = database[PRODUCT_COLLECTION]
    reserved: List[OrderItem] = []
    for line in lines:
        oid = to_object_id(line.product)
        updated = products.find_one_and_update(
            {"_id": oid, "stock": {"$gte": line.quantity}},
            {"$inc": {"stock": -line.quantity}, "$set": {"updatedAt": now()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            _release_stock(database, reserved)
            current = products.find_one({"_id": oid})
            if current is None:
                raise _product_not_found(line.product)
            raise InsufficientStockError(line.name, int(current.get("stock", 0)), line.quantity)
        reserved.append(line)
    return reserved


def place_order(database: Database, payload: OrderCreate) -> Dict[str, Any]:
    """Validate, reserve stock and persist a new pending order. All or nothing."""
    try:
        lines, total = _validate_items(database, payload)
        reserved = _reserve_stock(database, lines)
    except (NotFoundError, InsufficientStockError) as e:
        storefront_orders_total.labels(status="rejected").inc()
        log.info("order_rejected", reason=e.message)
        raise

    order = Order(
        customer_name=payload.customer_name,
        phone_number=payload.phone_number,
        address=payload.address,
        items=lines,
        total_amount=total,
        status=OrderStatus.PENDING,
    )
    try:
        doc = create_document(database, ORDER_COLLECTION, order.to_document())
    except Exception:
        log.exception("order_persist_failed")
        _release_stock(database, reserved)
        raise

    storefront_orders_total.labels(status="placed").inc()
    log.info("order_placed", order_id=str(doc["_id"]), total=total, lines=len(lines))
    return doc


def _resolve_items(database: Database, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace each line's product id with the current product record (None if deleted)."""
    ids = {
        to_object_id(item.get("product"))
        for order in orders
        for item in order.get("items", [])
    }
    ids.discard(None)
    found = {}
    if ids:
        for product in database[PRODUCT_COLLECTION].find({"_id": {"$in": list(ids)}}):
            found[str(product["_id"])] = serialize_document(product)

    resolved = []
    for order in orders:
        out = serialize_document(order)
        out["items"] = [
            {**item, "product": found.get(str(item.get("product")))}
            for item in order.get("items", [])
        ]
        resolved.append(out)
    return resolved


def list_orders(database: Database) -> List[Dict[str, Any]]:
    orders = list(database[ORDER_COLLECTION].find().sort([("createdAt", -1), ("_id", -1)]))
    return _resolve_items(database, orders)


def get_order(database: Database, order_id: str) -> Dict[str, Any]:
    order = get_document(database, ORDER_COLLECTION, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return _resolve_items(database, [order])[0]


def update_order_status(database: Database, order_id: str, status: Any) -> Dict[str, Any]:
    """Overwrite an order's status. Any enumerated status may follow any other."""
    try:
        new_status = OrderStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status '{status}'. Expected one of: {allowed}") from None

    order = update_document(database, ORDER_COLLECTION, order_id, {"status": new_status.value})
    if order is None:
        raise NotFoundError("Order not found")
    log.info("order_status_changed", order_id=order_id, status=new_status.value)
    return _resolve_items(database, [order])[0]
