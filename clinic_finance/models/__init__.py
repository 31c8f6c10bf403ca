from clinic_finance.models.financial_transaction import (
    CASH_CLOSING,
    CASH_OPENING,
    CASH_REGISTER_CATEGORIES,
    FinancialTransaction,
    TransactionStatus,
    TransactionType,
)
from clinic_finance.models.payment_method import PaymentMethod
from clinic_finance.models.supplier import Supplier
from clinic_finance.models.user import User

__all__ = [
    "CASH_CLOSING",
    "CASH_OPENING",
    "CASH_REGISTER_CATEGORIES",
    "FinancialTransaction",
    "PaymentMethod",
    "Supplier",
    "TransactionStatus",
    "TransactionType",
    "User",
]
