"""
Installment schedule generation.

Flat-rate model with interest added per period: the borrower receives the full
principal, total interest is ``principal x rate% x duration_months`` and both
are split evenly over the periods. Each installment owes its principal portion
(``installment_amount``) plus its interest portion (``amount`` is the sum).

Totals are rounded half-up to 0.01. Each portion is the even share rounded
down to the cent, and the leftover cents go one each to the last periods, so
every portion is within a cent of the exact share and the portions add up
exactly to the principal and total interest.
"""
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN
from typing import List

from dateutil.relativedelta import relativedelta

from microfin.core.exceptions import InvalidLoanParameters
from microfin.modules.loans.models import PaymentFrequency, InstallmentStatus

CENT = Decimal("0.01")

# Periods per month of loan duration
PERIODS_PER_MONTH = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.WEEKLY: 4,
    PaymentFrequency.DAILY: 30,
}

# Loan term limits; amounts must fit Numeric(12, 2)
MAX_PRINCIPAL = Decimal("100000000.00")
MAX_INTEREST_RATE = Decimal("100")
MAX_DURATION_MONTHS = 120


def money(value) -> Decimal:
    """Round to the currency unit"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class ScheduleItem:
    number: int
    due_date: date
    principal: Decimal
    interest: Decimal
    installment_amount: Decimal
    amount: Decimal
    status: InstallmentStatus = InstallmentStatus.PENDING

    def as_dict(self) -> dict:
        return asdict(self)


def validate_loan_parameters(principal, rate, duration) -> None:
    if principal is None or Decimal(str(principal)) <= 0:
        raise InvalidLoanParameters("Principal amount must be greater than zero")
    if Decimal(str(principal)) > MAX_PRINCIPAL:
        raise InvalidLoanParameters(f"Principal amount cannot exceed {MAX_PRINCIPAL}")
    if rate is None or Decimal(str(rate)) < 0:
        raise InvalidLoanParameters("Interest rate cannot be negative")
    if Decimal(str(rate)) > MAX_INTEREST_RATE:
        raise InvalidLoanParameters(f"Interest rate cannot exceed {MAX_INTEREST_RATE}%")
    if duration is None or int(duration) <= 0:
        raise InvalidLoanParameters("Duration must be at least one month")
    if int(duration) > MAX_DURATION_MONTHS:
        raise InvalidLoanParameters(f"Duration cannot exceed {MAX_DURATION_MONTHS} months")


def period_count(duration: int, frequency: PaymentFrequency) -> int:
    return int(duration) * PERIODS_PER_MONTH[PaymentFrequency(frequency)]


def total_interest(principal, rate, duration) -> Decimal:
    return money(Decimal(str(principal)) * Decimal(str(rate)) / Decimal(100) * int(duration))


def due_date_for(start_date: date, index: int, frequency: PaymentFrequency) -> date:
    """Due date of period ``index`` (0-based)"""
    frequency = PaymentFrequency(frequency)
    if frequency == PaymentFrequency.MONTHLY:
        return start_date + relativedelta(months=index + 1)
    if frequency == PaymentFrequency.WEEKLY:
        return start_date + timedelta(days=(index + 1) * 7)
    return start_date + timedelta(days=index + 1)


def _split_evenly(total: Decimal, parts: int) -> List[Decimal]:
    share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
    leftover = int((total - share * parts) / CENT)
    return [share] * (parts - leftover) + [share + CENT] * leftover


def generate_schedule(
    principal,
    rate,
    duration: int,
    frequency: PaymentFrequency,
    start_date: date
) -> List[ScheduleItem]:
    """Build the ordered installment schedule for a new loan"""
    validate_loan_parameters(principal, rate, duration)

    periods = period_count(duration, frequency)
    principal = money(principal)
    principal_shares = _split_evenly(principal, periods)
    interest_shares = _split_evenly(total_interest(principal, rate, duration), periods)

    schedule = []
    for index in range(periods):
        principal_part = principal_shares[index]
        interest_part = interest_shares[index]
        schedule.append(ScheduleItem(
            number=index + 1,
            due_date=due_date_for(start_date, index, frequency),
            principal=principal_part,
            interest=interest_part,
            installment_amount=principal_part,
            amount=principal_part + interest_part,
        ))
    return schedule


def monthly_interest(principal, rate) -> Decimal:
    """Interest owed for one month on an interest-only continuation period"""
    return money(Decimal(str(principal)) * Decimal(str(rate)) / Decimal(100))
