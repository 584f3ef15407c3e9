"""Simplified annual income tax, resident tax and social insurance (円)."""

from dataclasses import dataclass

SOCIAL_INSURANCE_RATE = 0.15  # 健康保険+厚生年金+雇用保険 ≈ 15%（簡易）
BASIC_DEDUCTION = 480_000  # 基礎控除
RESIDENT_TAX_RATE = 0.10  # 住民税所得割
RESIDENT_TAX_PER_CAPITA = 5_000  # 均等割
RESIDENT_TAX_HOUSING_CAP = 97_500  # 住宅ローン控除の住民税からの控除上限（簡易）

# 給与所得控除: (収入上限, 率, 加算額)。上限超は最上位帯の値で頭打ち
_EMPLOYMENT_DEDUCTION_TABLE: tuple[tuple[float, float, float], ...] = (
    (1_625_000, 0.0, 550_000),
    (1_800_000, 0.4, -100_000),
    (3_600_000, 0.3, 80_000),
    (6_600_000, 0.2, 440_000),
    (8_500_000, 0.1, 1_100_000),
)
_EMPLOYMENT_DEDUCTION_MAX = 1_950_000

# 所得税累進税率: (課税所得上限, 税率, 控除額)
_INCOME_TAX_BRACKETS: tuple[tuple[float, float, float], ...] = (
    (1_950_000, 0.05, 0),
    (3_300_000, 0.10, 97_500),
    (6_950_000, 0.20, 427_500),
    (9_000_000, 0.23, 636_000),
    (18_000_000, 0.33, 1_536_000),
    (float("inf"), 0.40, 2_796_000),
)


@dataclass(frozen=True)
class TaxResult:
    tax: float  # 所得税 + 住民税
    social: float  # 社会保険料
    take_home: float
    income_tax: float = 0.0
    resident_tax: float = 0.0
    housing_deduction_applied: float = 0.0


def calc_social_insurance(gross_income: float) -> float:
    return max(0.0, gross_income) * SOCIAL_INSURANCE_RATE


def calc_employment_income_deduction(gross_income: float) -> float:
    """給与所得控除 via the 6-tier piecewise-linear schedule."""
    for upper, rate, base in _EMPLOYMENT_DEDUCTION_TABLE:
        if gross_income <= upper:
            return gross_income * rate + base
    return _EMPLOYMENT_DEDUCTION_MAX


def calc_taxable_income(gross_income: float, ideco_contribution: float = 0.0) -> float:
    """課税所得 = 額面 - 給与所得控除 - 社保 - 基礎控除 - iDeCo掛金 (min 0)."""
    taxable = (
        gross_income
        - calc_employment_income_deduction(gross_income)
        - calc_social_insurance(gross_income)
        - BASIC_DEDUCTION
        - max(0.0, ideco_contribution)
    )
    return max(0.0, taxable)


def calc_income_tax(taxable_income: float) -> float:
    """National income tax (所得税) by progressive brackets."""
    for upper, rate, deduction in _INCOME_TAX_BRACKETS:
        if taxable_income <= upper:
            return max(0.0, taxable_income * rate - deduction)
    return 0.0  # pragma: no cover


def calc_annual_tax(
    gross_income: float,
    housing_deduction: float = 0.0,
    ideco_contribution: float = 0.0,
) -> TaxResult:
    """Annual tax, social insurance and take-home for one earner.

    The housing loan credit offsets income tax first. Credit beyond the
    income tax is still reported as fully applied; the only spill-over is a
    flat resident-tax reduction (capped at RESIDENT_TAX_HOUSING_CAP) when the
    income tax ends at zero.
    """
    if gross_income <= 0:
        return TaxResult(tax=0.0, social=0.0, take_home=0.0)

    social = calc_social_insurance(gross_income)
    taxable = calc_taxable_income(gross_income, ideco_contribution)
    income_tax = calc_income_tax(taxable)

    housing_deduction = max(0.0, housing_deduction)
    applied = 0.0
    if housing_deduction > 0:
        income_tax = max(0.0, income_tax - housing_deduction)
        applied = housing_deduction

    resident_tax = taxable * RESIDENT_TAX_RATE + RESIDENT_TAX_PER_CAPITA
    if housing_deduction > 0 and income_tax == 0:
        resident_tax = max(0.0, resident_tax - RESIDENT_TAX_HOUSING_CAP)

    total_tax = income_tax + resident_tax
    take_home = max(0.0, gross_income - social - total_tax)
    return TaxResult(
        tax=total_tax,
        social=social,
        take_home=take_home,
        income_tax=income_tax,
        resident_tax=resident_tax,
        housing_deduction_applied=applied,
    )
