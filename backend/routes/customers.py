"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Routes Customers                                                      ║
║                                                                              ║
║  CRUD customers. totalSpend n'est modifié que par les orders.                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from fastapi import APIRouter
from pymongo.errors import DuplicateKeyError
import logging

from config import db, new_id, utc_now
from models import CustomerCreate
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger("customers")

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("/create", status_code=201)
async def create_customer(data: CustomerCreate):
    """Crée un customer (email unique)"""
    existing = await db.customers.find_one({"email": data.email}, {"_id": 1})
    if existing:
        raise ValidationError(f"A customer with email {data.email} already exists")

    customer = {
        "_id": new_id(),
        "name": data.name,
        "email": data.email,
        "phone": data.phone,
        "joinedAt": data.joinedAt or utc_now(),
        "totalSpend": 0,
        "visitCount": data.visitCount,
        "lastActive": data.lastActive
    }

    try:
        await db.customers.insert_one(customer)
    except DuplicateKeyError:
        raise ValidationError(f"A customer with email {data.email} already exists")

    logger.info(f"Customer created: {customer['_id']} ({data.email})")

    return {"message": "Customer created", "customer": customer}


@router.get("/fetch")
async def list_customers():
    """Liste les customers, plus récents d'abord"""
    customers = await db.customers.find({}).sort("joinedAt", -1).to_list(None)
    return {"success": True, "customers": customers}


@router.get("/fetch/{customer_id}")
async def get_customer(customer_id: str):
    customer = await db.customers.find_one({"_id": customer_id})
    if not customer:
        raise NotFoundError("Customer not found")
    return {"success": True, "customer": customer}


@router.delete("/delete/{customer_id}")
async def delete_customer(customer_id: str):
    """
    Supprime un customer.

    Les orders, segments et logs qui le référencent sont conservés.
    """
    customer = await db.customers.find_one_and_delete({"_id": customer_id})
    if not customer:
        raise NotFoundError("Customer not found")

    return {"success": True, "message": "Customer deleted successfully", "customer": customer}
