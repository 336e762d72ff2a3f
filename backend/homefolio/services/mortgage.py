"""Estimated monthly payment, matching the buyer-facing mortgage calculator."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MortgageAssumptions:
    down_payment_pct: float = 20.0
    interest_rate_pct: float = 6.5
    term_years: int = 30
    property_tax_rate: float = 0.012
    monthly_insurance: float = 100.0

    @classmethod
    def from_settings(cls, settings) -> "MortgageAssumptions":
        return cls(
            down_payment_pct=settings.mortgage_down_payment_pct,
            interest_rate_pct=settings.mortgage_interest_rate_pct,
            term_years=settings.mortgage_term_years,
            property_tax_rate=settings.property_tax_rate,
            monthly_insurance=settings.monthly_insurance_estimate,
        )


@dataclass(frozen=True)
class MonthlyPayment:
    loan_amount: float
    principal_interest: float
    taxes: float
    insurance: float

    @property
    def total(self) -> float:
        return self.principal_interest + self.taxes + self.insurance


def estimate_monthly_payment(price: float, terms: MortgageAssumptions = MortgageAssumptions()) -> MonthlyPayment:
    """Standard amortization: M = L·r·(1+r)^n / ((1+r)^n − 1).

    Taxes are estimated from the purchase price; insurance is a flat
    monthly figure. A zero interest rate spreads the loan evenly.
    """
    loan = price * (1 - terms.down_payment_pct / 100)
    r = terms.interest_rate_pct / 100 / 12
    n = terms.term_years * 12

    if n <= 0:
        principal_interest = 0.0
    elif r > 0:
        growth = (1 + r) ** n
        principal_interest = loan * r * growth / (growth - 1)
    else:
        principal_interest = loan / n

    return MonthlyPayment(
        loan_amount=loan,
        principal_interest=principal_interest,
        taxes=price * terms.property_tax_rate / 12,
        insurance=terms.monthly_insurance,
    )
