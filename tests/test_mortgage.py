"""
Tests for the mortgage estimate
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.mortgage import MortgageEstimate, monthly_payment


class TestMonthlyPayment:
    """Amortisation formula."""

    def test_standard_loan(self):
        assert monthly_payment(200000, 6.0, 30) == pytest.approx(1199.10, abs=0.01)

    def test_zero_rate(self):
        assert monthly_payment(120000, 0, 10) == 1000

    def test_zero_principal(self):
        assert monthly_payment(0, 7.0, 30) == 0.0

    @pytest.mark.parametrize("principal,rate,years", [(-1, 7, 30), (1000, -1, 30), (1000, 7, 0)])
    def test_invalid_inputs(self, principal, rate, years):
        with pytest.raises(ValueError):
            monthly_payment(principal, rate, years)


class TestMortgageEstimate:
    """Estimate from a listing price."""

    def test_from_price(self):
        estimate = MortgageEstimate.from_price(250000, down_payment_pct=20, annual_rate_pct=6.0)

        assert estimate.down_payment == 50000
        assert estimate.loan_amount == 200000
        assert estimate.monthly_payment == pytest.approx(1199.10, abs=0.01)
        assert estimate.total_interest == pytest.approx(1199.10 * 360 - 200000, abs=5)

    def test_full_cash_purchase(self):
        estimate = MortgageEstimate.from_price(250000, down_payment_pct=100)

        assert estimate.monthly_payment == 0.0
        assert estimate.total_interest == 0.0

    def test_invalid_down_payment(self):
        with pytest.raises(ValueError):
            MortgageEstimate.from_price(250000, down_payment_pct=120)

    def test_to_dict(self):
        data = MortgageEstimate.from_price(100000).to_dict()

        assert data["loan_amount"] == 80000
        assert data["years"] == 30
        assert "total_interest" in data
