"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Routes Orders                                                         ║
║                                                                              ║
║  RÈGLE: totalSpend suit les orders via $inc (jamais lecture + écriture)      ║
║  - create: totalSpend += amount                                              ║
║  - delete: totalSpend -= amount                                              ║
║  Pas de transaction entre l'order et le $inc.                                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from fastapi import APIRouter
import logging

from config import db, new_id, utc_now
from models import OrderCreate
from services.errors import NotFoundError

logger = logging.getLogger("orders")

router = APIRouter(prefix="/orders", tags=["Orders"])


async def _with_customer(order: dict) -> dict:
    customer = await db.customers.find_one({"_id": order.get("customerId")}, {"_id": 1, "name": 1})
    if customer:
        order["customerId"] = customer
    return order


@router.post("/create", status_code=201)
async def create_order(data: OrderCreate):
    customer = await db.customers.find_one({"_id": data.customerId}, {"_id": 1})
    if not customer:
        raise NotFoundError("Customer not found")

    order = {
        "_id": new_id(),
        "customerId": data.customerId,
        "orderId": data.orderId,
        "amount": data.amount,
        "items": data.items,
        "createdAt": utc_now()
    }

    await db.orders.insert_one(order)

    await db.customers.update_one(
        {"_id": data.customerId},
        {"$inc": {"totalSpend": data.amount}}
    )
    logger.info(f"Order {order['_id']} saved, customer {data.customerId} totalSpend += {data.amount}")

    return {"message": "Order saved and totalSpend updated", "order": order}


@router.get("/fetch")
async def list_orders():
    orders = await db.orders.find({}).sort("createdAt", -1).to_list(None)
    for order in orders:
        await _with_customer(order)
    return {"success": True, "orders": orders}


@router.get("/fetch/{order_id}")
async def get_order(order_id: str):
    order = await db.orders.find_one({"_id": order_id})
    if not order:
        raise NotFoundError("Order not found")
    return {"success": True, "order": await _with_customer(order)}


@router.delete("/delete/{order_id}")
async def delete_order(order_id: str):
    order = await db.orders.find_one_and_delete({"_id": order_id})
    if not order:
        raise NotFoundError("Order not found")

    await db.customers.update_one(
        {"_id": order["customerId"]},
        {"$inc": {"totalSpend": -order["amount"]}}
    )
    logger.info(f"Order {order_id} deleted, customer {order['customerId']} totalSpend -= {order['amount']}")

    return {
        "success": True,
        "message": "Order deleted and customer totalSpend updated",
        "order": order
    }
