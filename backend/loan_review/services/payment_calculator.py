"""Payment illustration for counter-offers.

Calculates the period payment, total to pay and total interest for a
principal amortized over monthly or biweekly periods.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from loan_review.models.loan import PaymentFrequency

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PaymentQuote:
    principal: Decimal
    term_months: int
    annual_rate: Decimal
    frequency: PaymentFrequency
    periods_per_year: int
    total_periods: int
    period_rate: Decimal
    payment: Decimal
    total_to_pay: Decimal
    total_interest: Decimal


@dataclass(frozen=True)
class ScheduleRow:
    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


def calculate_payment(
    principal,
    term_months: int,
    annual_rate,
    frequency: "str | PaymentFrequency" = PaymentFrequency.MONTHLY,
) -> PaymentQuote:
    """Amortized payment for the given terms.

    Uses standard amortization: PMT = P * [r(1+r)^n] / [(1+r)^n - 1], with
    r the period rate and n the number of periods. A zero rate splits the
    principal evenly. Money is rounded half-up to the cent; the total is the
    rounded payment times the number of periods.
    """
    freq = PaymentFrequency.normalize(frequency)
    if freq is None:
        raise ValueError(f"Unknown payment frequency: {frequency}")
    if term_months <= 0:
        raise ValueError("term_months must be positive")

    p = Decimal(str(principal))
    rate = Decimal(str(annual_rate))
    periods_per_year = freq.periods_per_year
    n = term_months * 2 if freq is PaymentFrequency.BIWEEKLY else term_months
    r = rate / 100 / periods_per_year

    if r > 0:
        growth = (1 + r) ** n
        raw_payment = p * (r * growth) / (growth - 1)
    else:
        raw_payment = p / n

    payment = to_cents(raw_payment)
    total_to_pay = to_cents(payment * n)
    quote = PaymentQuote(
        principal=to_cents(p),
        term_months=term_months,
        annual_rate=rate,
        frequency=freq,
        periods_per_year=periods_per_year,
        total_periods=n,
        period_rate=r,
        payment=payment,
        total_to_pay=total_to_pay,
        total_interest=to_cents(total_to_pay - p),
    )
    logger.debug(
        "Quote principal=%s term=%s rate=%s freq=%s payment=%s",
        p, term_months, rate, freq.value, payment,
    )
    return quote


def amortization_schedule(quote: PaymentQuote) -> list[ScheduleRow]:
    """Period-by-period breakdown. The last period absorbs rounding."""
    rows: list[ScheduleRow] = []
    balance = quote.principal
    for period in range(1, quote.total_periods + 1):
        interest = to_cents(balance * quote.period_rate)
        if period == quote.total_periods:
            principal_part = balance
            payment = principal_part + interest
        else:
            payment = quote.payment
            principal_part = payment - interest
        balance = balance - principal_part
        rows.append(ScheduleRow(
            period=period,
            payment=payment,
            principal=principal_part,
            interest=interest,
            balance=balance,
        ))
    return rows
