"""
Customer, subscription and interest endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import LoanAccountingSystem, get_system
from .schemas import CreateCustomerRequest, RecordSubscriptionRequest, to_money


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    request: CreateCustomerRequest,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Create a new customer"""
    try:
        customer = system.customer_manager.create_customer(request.name, phone=request.phone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"customer_id": customer.id, "message": "Customer created successfully"}


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: str,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Soft-delete a customer; deleted customers are left out of interest runs"""
    if not system.customer_manager.soft_delete(customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"customer_id": customer_id, "message": "Customer deleted"}


@router.post("/{customer_id}/restore")
def restore_customer(
    customer_id: str,
    system: LoanAccountingSystem = Depends(get_system)
):
    if not system.customer_manager.restore(customer_id):
        raise HTTPException(status_code=404, detail="Deleted customer not found")
    return {"customer_id": customer_id, "message": "Customer restored"}


@router.post("/{customer_id}/subscriptions", status_code=status.HTTP_201_CREATED)
def record_subscription(
    customer_id: str,
    request: RecordSubscriptionRequest,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Record a subscription payment"""
    customer = system.customer_manager.get_customer(customer_id)
    if not customer or not customer.is_active:
        raise HTTPException(status_code=404, detail="Customer not found")

    try:
        subscription = system.subscription_manager.record_subscription(
            customer_id,
            to_money(request.amount, system.subscription_manager.currency),
            request.paid_on,
            receipt_number=request.receipt_number
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"subscription_id": subscription.id, "message": "Subscription recorded successfully"}


@router.get("/{customer_id}/interest")
def get_customer_interest(
    customer_id: str,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Running interest total and ledger history for a customer"""
    if system.customer_manager.get_customer(customer_id) is None:
        raise HTTPException(status_code=404, detail="Customer not found")

    service = system.interest_service
    current = service.get_customer_interest(customer_id)
    entries = service.list_ledger_entries(customer_id)

    return {
        "customer_id": customer_id,
        "total_interest_charged": current.total_interest_charged.to_raw() if current else "0.00",
        "last_applied_quarter": (
            current.last_applied_quarter.isoformat()
            if current and current.last_applied_quarter else None
        ),
        "ledger": [
            {
                "id": entry.id,
                "period_start": entry.period_start.isoformat(),
                "period_end": entry.period_end.isoformat(),
                "subscription_total_used": entry.subscription_total_used.to_raw(),
                "interest_rate_pct": str(entry.interest_rate_pct),
                "interest_amount": entry.interest_amount.to_raw(),
                "applied_at": entry.applied_at.isoformat()
            }
            for entry in entries
        ]
    }


@router.post("/{customer_id}/interest/rollback")
def rollback_customer_interest(
    customer_id: str,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Revert the most recent quarterly interest application"""
    result = system.interest_service.rollback_quarterly_interest(customer_id)
    if result["status"] == "error":
        raise HTTPException(status_code=404, detail=result["error"])
    return result
