"""
Mortgage payment estimate for the listing detail view.
"""

from dataclasses import dataclass


DEFAULT_DOWN_PAYMENT_PCT = 20.0
DEFAULT_ANNUAL_RATE_PCT = 7.0
DEFAULT_TERM_YEARS = 30


def monthly_payment(principal: float, annual_rate_pct: float, years: int) -> float:
    """
    Standard amortised monthly payment.

    Args:
        principal: Loan amount
        annual_rate_pct: Annual interest rate in percent (7.0 means 7%)
        years: Loan term

    Returns:
        Monthly payment; principal / months when the rate is zero
    """
    if principal < 0:
        raise ValueError("principal must be non-negative")
    if annual_rate_pct < 0:
        raise ValueError("annual_rate_pct must be non-negative")
    if years <= 0:
        raise ValueError("years must be positive")

    months = years * 12
    if principal == 0:
        return 0.0
    if annual_rate_pct == 0:
        return principal / months

    r = annual_rate_pct / 100 / 12
    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


@dataclass(frozen=True)
class MortgageEstimate:
    price: float
    down_payment: float
    loan_amount: float
    annual_rate_pct: float
    years: int
    monthly_payment: float

    @property
    def total_paid(self) -> float:
        return self.monthly_payment * self.years * 12

    @property
    def total_interest(self) -> float:
        return self.total_paid - self.loan_amount

    @classmethod
    def from_price(
        cls,
        price: float,
        down_payment_pct: float = DEFAULT_DOWN_PAYMENT_PCT,
        annual_rate_pct: float = DEFAULT_ANNUAL_RATE_PCT,
        years: int = DEFAULT_TERM_YEARS,
    ) -> "MortgageEstimate":
        if price < 0:
            raise ValueError("price must be non-negative")
        if not 0 <= down_payment_pct <= 100:
            raise ValueError("down_payment_pct must be between 0 and 100")
        down_payment = price * down_payment_pct / 100
        loan_amount = price - down_payment
        return cls(
            price=price,
            down_payment=down_payment,
            loan_amount=loan_amount,
            annual_rate_pct=annual_rate_pct,
            years=years,
            monthly_payment=monthly_payment(loan_amount, annual_rate_pct, years),
        )

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "down_payment": self.down_payment,
            "loan_amount": self.loan_amount,
            "annual_rate_pct": self.annual_rate_pct,
            "years": self.years,
            "monthly_payment": self.monthly_payment,
            "total_interest": self.total_interest,
        }
