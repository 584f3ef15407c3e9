"""Household input model (one complete snapshot per simulation run)."""

from dataclasses import dataclass, field
from datetime import date

from nisa_sim_jp.dates import YearMonth

FREQUENCY_MONTHLY = "monthly"
FREQUENCY_YEARLY = "yearly"
FREQUENCIES = (FREQUENCY_MONTHLY, FREQUENCY_YEARLY)


@dataclass(frozen=True)
class Fund:
    fund_id: str
    name: str
    rate: float  # 想定年率リターン%（固定）
    risk_level: str = "Medium"


@dataclass
class PortfolioAllocation:
    fund_id: str
    percentage: float  # 0-100（合計100%を想定するが検証しない）


@dataclass
class ContributionPeriod:
    """Calendar-month range → monthly contribution (円/月)."""

    start: YearMonth
    end: YearMonth
    amount: float


@dataclass
class IncomePeriod:
    """Age range (inclusive) → annual gross income (額面, 円/年)."""

    start: int
    end: int
    amount: float


@dataclass
class GiftReceivingPeriod(IncomePeriod):
    """Age range → annual gift received from parents (暦年贈与の受取, 円/年)."""


@dataclass
class BonusContribution:
    age: int
    amount: float  # 一括投資額（円）


@dataclass
class InsurancePolicy:
    """Variable insurance policy (変額保険)."""

    name: str
    recorded_date: date  # 解約返戻金を確認した日
    monthly_premium: float = 0.0
    total_premiums_paid: float = 0.0  # 払込累計（元本）
    cash_value: float = 0.0
    expected_return_rate: float = 0.0  # 年率%
    payment_end_age: int = 65


@dataclass
class IdecoProfile:
    """Retirement account (iDeCo). asset_data_date=None → person's asset_data_date."""

    asset_data_date: date | None = None
    principal: float = 0.0
    profit: float = 0.0
    contribution_periods: list[ContributionPeriod] = field(default_factory=list)
    portfolio: list[PortfolioAllocation] = field(default_factory=list)


@dataclass
class PersonProfile:
    """One spouse: income, pension, withdrawal plan and NISA account."""

    name: str
    birth_date: date
    asset_data_date: date  # NISA元本・含み益を記録した日

    withdrawal_start_age: int = 65
    pension_start_age: int = 65
    monthly_pension: float = 0.0
    monthly_withdrawal: float = 0.0  # 取り崩し目標（円/月）

    # Income & tax
    income_periods: list[IncomePeriod] = field(default_factory=list)
    furusato_amount: float = 0.0  # ふるさと納税 寄付額（円/年）
    gift_receiving_periods: list[GiftReceivingPeriod] = field(default_factory=list)

    # NISA
    nisa_principal: float = 0.0
    nisa_profit: float = 0.0
    contribution_periods: list[ContributionPeriod] = field(default_factory=list)
    bonus_contributions: list[BonusContribution] = field(default_factory=list)
    portfolio: list[PortfolioAllocation] = field(default_factory=list)

    ideco: IdecoProfile = field(default_factory=IdecoProfile)
    insurance_policies: list[InsurancePolicy] = field(default_factory=list)

    @property
    def ideco_data_date(self) -> date:
        return self.ideco.asset_data_date or self.asset_data_date


@dataclass
class Child:
    name: str
    birth_date: date


@dataclass
class HousingLoan:
    """Level-payment housing loan and its tax credit window."""

    has_loan: bool = False
    balance: float = 0.0
    interest_rate: float = 0.0  # 年率%
    monthly_payment: float = 0.0  # 元利合計
    bonus_payment: float = 0.0  # 年間ボーナス返済額（6月・12月に半額ずつ）
    payment_end: YearMonth = (9999, 12)
    deduction_end: YearMonth = (0, 0)  # 住宅ローン控除の終了年月
    deduction_rate: float = 0.7  # 年末残高に対する控除率%
    monthly_maintenance_fee: float = 0.0  # 管理費・修繕積立金・固定資産税（月平均）


@dataclass
class FixedCost:
    name: str
    amount: float
    frequency: str = FREQUENCY_MONTHLY

    def annual_amount(self) -> float:
        if self.frequency == FREQUENCY_MONTHLY:
            return self.amount * 12
        return self.amount


@dataclass
class FamilySettings:
    """Household-level gifts, children, housing and fixed costs."""

    # 暦年贈与（子1人あたり、夫の年齢で期間指定）
    gift_annual_per_child: float = 0.0
    gift_start_age: int = 60
    gift_end_age: int = 75

    # 結婚資金贈与
    marriage_gift_per_child: float = 0.0
    child_marriage_age: int = 30

    children: list[Child] = field(default_factory=list)
    housing: HousingLoan = field(default_factory=HousingLoan)
    fixed_costs: list[FixedCost] = field(default_factory=list)


@dataclass
class Household:
    husband: PersonProfile
    wife: PersonProfile
    family: FamilySettings = field(default_factory=FamilySettings)
    funds: dict[str, Fund] = field(default_factory=dict)  # プリセットに追加するカスタム銘柄

    @property
    def persons(self) -> tuple[PersonProfile, PersonProfile]:
        return self.husband, self.wife
