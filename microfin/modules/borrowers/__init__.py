# Borrowers module
from microfin.modules.borrowers.models import Borrower

__all__ = ["Borrower"]
