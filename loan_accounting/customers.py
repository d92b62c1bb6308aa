"""
Customer Management Module

Customer profiles with soft delete. The interest batch job only needs the id,
name, phone and whether the customer is active (not soft-deleted).
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
import uuid

from .storage import StorageInterface, StorageRecord, utc_now, parse_datetime


@dataclass
class Customer(StorageRecord):
    """Customer profile"""
    name: str
    phone: Optional[str] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Customer name is required")

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


class CustomerManager:
    """Creates, soft-deletes and lists customers"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "customers"

    def create_customer(self, name: str, phone: Optional[str] = None,
                        customer_id: Optional[str] = None) -> Customer:
        now = utc_now()
        customer = Customer(
            id=customer_id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip(),
            phone=phone
        )
        self.storage.insert(self.table_name, customer.id, customer.to_dict())
        return customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        data = self.storage.load(self.table_name, customer_id)
        return self._customer_from_dict(data) if data else None

    def soft_delete(self, customer_id: str) -> bool:
        """Mark a customer deleted; returns False if unknown or already deleted"""
        with self.storage.atomic():
            customer = self.get_customer(customer_id)
            if not customer or not customer.is_active:
                return False
            customer.deleted_at = utc_now()
            customer.updated_at = customer.deleted_at
            self.storage.save(self.table_name, customer.id, customer.to_dict())
            return True

    def restore(self, customer_id: str) -> bool:
        """Undo a soft delete (trash page restore)"""
        with self.storage.atomic():
            customer = self.get_customer(customer_id)
            if not customer or customer.is_active:
                return False
            customer.deleted_at = None
            customer.updated_at = utc_now()
            self.storage.save(self.table_name, customer.id, customer.to_dict())
            return True

    def list_active_customers(self) -> List[Customer]:
        """All customers that are not soft-deleted"""
        return [
            self._customer_from_dict(data)
            for data in self.storage.find(self.table_name, {"deleted_at": None})
        ]

    def _customer_from_dict(self, data: Dict[str, Any]) -> Customer:
        return Customer(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            name=data['name'],
            phone=data.get('phone'),
            deleted_at=parse_datetime(data.get('deleted_at'))
        )
