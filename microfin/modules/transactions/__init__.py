# Transaction module
from microfin.modules.transactions.models import Transaction, TransactionType, TransactionCategory

__all__ = ["Transaction", "TransactionType", "TransactionCategory"]
