"""
Budget aggregation — totals and net balance of a planning form.

All figures are derived on every read and never stored. Arithmetic is
Decimal throughout; amounts may be negative (refunds, corrections).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from sgld.domain.document import MAX_AMOUNT_EXPONENT, ZERO, coerce_amount

CENT = Decimal("0.01")
# enough digits to add or subtract any two accepted amounts exactly
EXACT_PRECISION = 2 * MAX_AMOUNT_EXPONENT + 40


def _total(lines) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        return sum((coerce_amount(getattr(line, "amount", line)) for line in lines or ()), ZERO)


def _difference(income: Decimal, expenditure: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        return income - expenditure


def total_expenditure(lines) -> Decimal:
    """Sum of expenditure amounts; zero for an empty collection."""
    return _total(lines)


def total_income(lines) -> Decimal:
    """Sum of income amounts; zero for an empty collection."""
    return _total(lines)


def net_balance(expenditure, income) -> Decimal:
    """total_income − total_expenditure."""
    return _difference(total_income(income), total_expenditure(expenditure))


@dataclass(frozen=True)
class BudgetSummary:
    total_expenditure: Decimal
    total_income: Decimal
    net_balance: Decimal

    @property
    def is_surplus(self) -> bool:
        return self.net_balance >= ZERO

    def to_dict(self) -> dict:
        return {
            "total_expenditure": str(self.total_expenditure),
            "total_income": str(self.total_income),
            "net_balance": str(self.net_balance),
        }


def budget_summary(doc) -> BudgetSummary:
    expenditure = total_expenditure(doc.budget_expenditure)
    income = total_income(doc.budget_income)
    return BudgetSummary(
        total_expenditure=expenditure,
        total_income=income,
        net_balance=_difference(income, expenditure),
    )


def format_amount(value, symbol: str = "$") -> str:
    """Display text for an amount: ``-$1,234.50`` style, two decimals."""
    # totals may exceed the per-line range and are shown as computed
    amount = value if isinstance(value, Decimal) and value.is_finite() else coerce_amount(value)
    with localcontext() as ctx:
        # room for every integer digit plus the cents
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
