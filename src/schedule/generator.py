"""
Loan Schedule Generator

Turns principal, profit/rate, duration, start date and amortization policy
into a full installment schedule.

Three numeric modes, in priority order:
1. Fixed total profit - whenever fixed_profit_amount > 0, regardless of policy
2. Flat rate          - profit = principal * rate * years, spread evenly
3. Decreasing balance - level-payment annuity on the outstanding balance

Every mode settles each line to the cent and lets the final line absorb the
rounding residue, so stored totals reconcile exactly:
- fixed/flat: sum(payment_amount) == principal + total profit
- decreasing: sum(principal_component) == principal

Invalid inputs (months <= 0, a negative principal, rate or fixed profit)
produce an empty schedule instead of raising. Callers treat an empty
schedule as "nothing to save".
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from src.models.loan import AmortizationPolicy, InstallmentLine
from src.schedule.dates import add_months
from src.schedule.rounding import ZERO, safe_decimal, to_money


logger = structlog.get_logger(__name__)


def generate_schedule(
    principal,
    annual_rate_percent,
    months: int,
    start_date: date,
    policy: AmortizationPolicy = AmortizationPolicy.DECREASING,
    fixed_profit_amount=ZERO,
) -> list[InstallmentLine]:
    """
    Generate a from-scratch installment schedule for a loan.

    Args:
        principal: Amount borrowed (>= 0)
        annual_rate_percent: Nominal annual rate; ignored in fixed-profit mode
        months: Number of installments (>= 1)
        start_date: Due date of the first installment
        policy: FLAT or DECREASING
        fixed_profit_amount: Total profit when known directly

    Returns:
        Ordered installment lines, all unpaid. Empty for invalid inputs.
    """
    principal = safe_decimal(principal)
    rate = safe_decimal(annual_rate_percent) or ZERO
    fixed_profit = safe_decimal(fixed_profit_amount) or ZERO

    if (
        principal is None or principal < 0
        or months is None or months <= 0
        or rate < 0 or fixed_profit < 0
    ):
        logger.debug(
            "schedule_rejected",
            principal=str(principal),
            months=months,
            annual_rate_percent=str(rate),
            fixed_profit_amount=str(fixed_profit),
        )
        return []

    principal = to_money(principal)

    if fixed_profit > 0:
        mode = "fixed_profit"
        schedule = _even_split_schedule(
            principal, to_money(fixed_profit), months, start_date
        )
    elif policy == AmortizationPolicy.FLAT:
        mode = "flat"
        total_profit = principal * rate / Decimal(100) * Decimal(months) / Decimal(12)
        schedule = _even_split_schedule(
            principal, to_money(total_profit), months, start_date
        )
    elif rate == 0:
        mode = "decreasing_zero_rate"
        schedule = _even_split_schedule(principal, ZERO, months, start_date)
    else:
        mode = "decreasing"
        schedule = _amortized_schedule(principal, rate, months, start_date)

    logger.debug(
        "schedule_generated",
        mode=mode,
        months=months,
        principal=str(principal),
        total_payable=str(sum((line.payment_amount for line in schedule), ZERO)),
    )
    return schedule


def _even_split_schedule(
    principal: Decimal,
    total_profit: Decimal,
    months: int,
    start_date: date,
) -> list[InstallmentLine]:
    """
    Spread principal and a known total profit evenly across `months` lines.

    Lines 1..n-1 pay the rounded even share of principal + profit, split into
    the rounded profit share and principal for the rest; line n takes
    whatever is left of both, which forces the closing balance to exactly zero.
    """
    payment = to_money((principal + total_profit) / months)
    profit_share = to_money(total_profit / months)

    schedule = []
    balance = principal
    allocated_profit = ZERO

    for i in range(months):
        if i == months - 1:
            profit_part = total_profit - allocated_profit
            principal_part = balance
        else:
            profit_part = min(profit_share, total_profit - allocated_profit)
            principal_part = min(max(ZERO, payment - profit_part), balance)

        allocated_profit += profit_part
        balance -= principal_part

        schedule.append(InstallmentLine(
            due_date=add_months(start_date, i),
            payment_amount=principal_part + profit_part,
            principal_component=principal_part,
            profit_component=profit_part,
            remaining_balance=max(ZERO, balance),
        ))

    return schedule


def _amortized_schedule(
    principal: Decimal,
    annual_rate_percent: Decimal,
    months: int,
    start_date: date,
) -> list[InstallmentLine]:
    """
    Standard level-payment amortization.

    payment = P * r * (1 + r)^n / ((1 + r)^n - 1), r = monthly rate.
    Profit each period is charged on the balance outstanding at its start.
    """
    monthly_rate = annual_rate_percent / Decimal(100) / Decimal(12)
    growth = (Decimal(1) + monthly_rate) ** months
    payment = to_money(principal * monthly_rate * growth / (growth - 1))

    schedule = []
    balance = principal

    for i in range(months):
        profit_part = to_money(balance * monthly_rate)
        if i == months - 1:
            principal_part = balance
        else:
            principal_part = min(max(ZERO, payment - profit_part), balance)

        balance -= principal_part

        schedule.append(InstallmentLine(
            due_date=add_months(start_date, i),
            payment_amount=principal_part + profit_part,
            principal_component=principal_part,
            profit_component=profit_part,
            remaining_balance=max(ZERO, balance),
        ))

    return schedule


def apply_payment_overrides(
    schedule: list[InstallmentLine],
    monthly_payment=None,
    last_payment_amount=None,
) -> list[InstallmentLine]:
    """
    Replace generated payment amounts with the contract's stated figures.

    `monthly_payment` overrides every line (except the last when a
    `last_payment_amount` is also given); `last_payment_amount` overrides the
    final line. Each line keeps its profit component, principal takes the
    rest, and remaining balances are recomputed from the original principal.
    """
    monthly = safe_decimal(monthly_payment)
    last = safe_decimal(last_payment_amount)
    if monthly is not None and monthly <= 0:
        monthly = None
    if last is not None and last <= 0:
        last = None

    if not schedule or (monthly is None and last is None):
        return [line.model_copy() for line in schedule]

    balance = sum((line.principal_component for line in schedule), ZERO)
    final_index = len(schedule) - 1
    result = []

    for idx, line in enumerate(schedule):
        payment: Optional[Decimal] = None
        if idx == final_index and last is not None:
            payment = to_money(last)
        elif monthly is not None:
            payment = to_money(monthly)

        if payment is None:
            principal_part = line.principal_component
            profit_part = line.profit_component
        else:
            profit_part = min(line.profit_component, payment)
            principal_part = payment - profit_part

        balance -= principal_part
        result.append(line.model_copy(update={
            "payment_amount": principal_part + profit_part,
            "principal_component": principal_part,
            "profit_component": profit_part,
            "remaining_balance": max(ZERO, balance),
        }))

    return result
