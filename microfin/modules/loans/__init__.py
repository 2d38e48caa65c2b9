# Loans module
from microfin.modules.loans.models import (
    Loan, Installment,
    PaymentFrequency, LoanStatus, InstallmentStatus
)

__all__ = [
    "Loan", "Installment",
    "PaymentFrequency", "LoanStatus", "InstallmentStatus"
]
