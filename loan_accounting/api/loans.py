"""
Loan endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.responses import JSONResponse

from .dependencies import LoanAccountingSystem, get_system
from .schemas import CreateLoanRequest, RecordInstallmentRequest, to_money
from ..exceptions import ConfigurationError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_loan(
    request: CreateLoanRequest,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Record a new loan"""
    currency = system.loan_manager.currency
    try:
        loan = system.loan_manager.record_loan(
            customer_id=request.customer_id,
            original_amount=to_money(request.original_amount, currency),
            interest_amount=to_money(request.interest_amount, currency),
            total_installments=request.total_installments,
            payment_date=request.payment_date
        )
    except (ConfigurationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"loan_id": loan.id, "message": "Loan recorded successfully"}


@router.post("/{loan_id}/installments", status_code=status.HTTP_201_CREATED)
def record_installment(
    loan_id: str,
    request: RecordInstallmentRequest,
    system: LoanAccountingSystem = Depends(get_system)
):
    """Record a payment against a loan"""
    if system.loan_manager.get_loan(loan_id) is None:
        raise HTTPException(status_code=404, detail="Loan not found")

    currency = system.loan_manager.currency
    try:
        installment = system.loan_manager.record_installment(
            loan_id,
            to_money(request.amount, currency),
            request.paid_on,
            installment_number=request.installment_number,
            late_fee=to_money(request.late_fee, currency) if request.late_fee else None,
            receipt_number=request.receipt_number
        )
    except (ConfigurationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "installment_id": installment.id,
        "installment_number": installment.installment_number,
        "message": "Installment recorded successfully"
    }


@router.get("/{loan_id}/status")
def get_loan_status(
    loan_id: str,
    system: LoanAccountingSystem = Depends(get_system)
):
    """
    Paid amount, total repayable and payoff status for a loan.

    Corrupted loan data answers 422 with the calculator's message rather than
    a guessed figure.
    """
    try:
        loan_status = system.loan_manager.get_loan_status(loan_id)
    except ConfigurationError as e:
        return JSONResponse(status_code=422, content={"error": str(e)})

    if loan_status is None:
        raise HTTPException(status_code=404, detail="Loan not found")

    return {"loan_id": loan_id, **loan_status.to_dict()}
