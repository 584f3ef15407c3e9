"""Annual snapshot records derived from live account state."""

import dataclasses
import math
from dataclasses import dataclass, field

from nisa_sim_jp.accounts import NISA_LIFETIME_LIMIT, PersonState


def round_yen(value: float) -> int:
    """Round half up to whole yen."""
    return int(math.floor(value + 0.5))


def display_principal(principal: float, assets: float) -> int:
    return round_yen(min(principal, assets))


def display_profit(principal: float, assets: float) -> int:
    return round_yen(max(0.0, assets - principal))


@dataclass(frozen=True)
class PersonSnapshot:
    nisa_principal: int = 0
    nisa_profit: int = 0
    nisa_assets: int = 0
    ideco_principal: int = 0
    ideco_profit: int = 0
    ideco_assets: int = 0
    ins_principal: int = 0
    ins_profit: int = 0
    insurance_assets: int = 0
    total_assets: int = 0
    nisa_maxed: bool = False
    annual_contribution: int = 0  # NISA+iDeCo+保険の年間拠出
    gross_income: int = 0
    withdrawn: int = 0  # 生活費として取り崩した額
    shortfall: int = 0  # 資産で賄えなかった生活費


@dataclass(frozen=True)
class CashFlow:
    gross_income: int = 0
    tax_and_social: int = 0
    take_home: int = 0  # 手取り + 年金
    received_gift: int = 0
    housing_cost: int = 0
    housing_deduction: int = 0
    fixed_cost: int = 0
    furusato: int = 0
    contributions: int = 0
    disposable: int = 0


@dataclass(frozen=True)
class YearSnapshot:
    year_index: int
    calendar_year: int
    husband_age: int
    wife_age: int
    husband: PersonSnapshot = field(default_factory=PersonSnapshot)
    wife: PersonSnapshot = field(default_factory=PersonSnapshot)
    cashflow: CashFlow = field(default_factory=CashFlow)
    total_assets: int = 0
    total_principal: int = 0
    total_roi: float = 0.0  # %
    annual_gift: int = 0
    cumulative_gifts: int = 0
    total_pension: int = 0

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def build_person_snapshot(
    state: PersonState,
    annual_contribution: float = 0.0,
    gross_income: float = 0.0,
    withdrawn: float = 0.0,
    shortfall: float = 0.0,
    limit: float = NISA_LIFETIME_LIMIT,
) -> PersonSnapshot:
    ins_principal = state.insurance_principal
    ins_assets = state.insurance_assets
    return PersonSnapshot(
        nisa_principal=display_principal(state.nisa_principal, state.nisa_assets),
        nisa_profit=display_profit(state.nisa_principal, state.nisa_assets),
        nisa_assets=round_yen(state.nisa_assets),
        ideco_principal=display_principal(state.ideco_principal, state.ideco_assets),
        ideco_profit=display_profit(state.ideco_principal, state.ideco_assets),
        ideco_assets=round_yen(state.ideco_assets),
        ins_principal=display_principal(ins_principal, ins_assets),
        ins_profit=display_profit(ins_principal, ins_assets),
        insurance_assets=round_yen(ins_assets),
        total_assets=round_yen(state.total_assets),
        nisa_maxed=state.nisa_principal >= limit,
        annual_contribution=round_yen(annual_contribution),
        gross_income=round_yen(gross_income),
        withdrawn=round_yen(withdrawn),
        shortfall=round_yen(shortfall),
    )


def calc_roi(total_assets: float, total_principal: float) -> float:
    """Return on investment in %, 0 when nothing has been invested."""
    if total_principal <= 0:
        return 0.0
    return (total_assets - total_principal) / total_principal * 100


def _principal_sum(state: PersonState) -> float:
    return state.nisa_principal + state.ideco_principal + state.insurance_principal


def build_snapshot(
    year_index: int,
    calendar_year: int,
    husband_age: int,
    wife_age: int,
    husband_state: PersonState,
    wife_state: PersonState,
    husband: PersonSnapshot,
    wife: PersonSnapshot,
    cashflow: CashFlow | None = None,
    annual_gift: float = 0.0,
    cumulative_gifts: float = 0.0,
    total_pension: float = 0.0,
) -> YearSnapshot:
    """Assemble one year's record; household totals use tracked (not display) principal."""
    total_assets = husband_state.total_assets + wife_state.total_assets
    total_principal = _principal_sum(husband_state) + _principal_sum(wife_state)
    return YearSnapshot(
        year_index=year_index,
        calendar_year=calendar_year,
        husband_age=husband_age,
        wife_age=wife_age,
        husband=husband,
        wife=wife,
        cashflow=cashflow or CashFlow(),
        total_assets=round_yen(total_assets),
        total_principal=round_yen(total_principal),
        total_roi=round(calc_roi(total_assets, total_principal), 1),
        annual_gift=round_yen(annual_gift),
        cumulative_gifts=round_yen(cumulative_gifts),
        total_pension=round_yen(total_pension),
    )


def build_cashflow(
    gross_income: float,
    tax_and_social: float,
    take_home: float,
    received_gift: float,
    housing_cost: float,
    housing_deduction: float,
    fixed_cost: float,
    furusato: float,
    contributions: float,
) -> CashFlow:
    """Annual cash flow; disposable = take-home + gifts - contributions - housing - fixed - donations."""
    disposable = (
        take_home + received_gift - contributions - housing_cost - fixed_cost - furusato
    )
    return CashFlow(
        gross_income=round_yen(gross_income),
        tax_and_social=round_yen(tax_and_social),
        take_home=round_yen(take_home),
        received_gift=round_yen(received_gift),
        housing_cost=round_yen(housing_cost),
        housing_deduction=round_yen(housing_deduction),
        fixed_cost=round_yen(fixed_cost),
        furusato=round_yen(furusato),
        contributions=round_yen(contributions),
        disposable=round_yen(disposable),
    )


def find_peak(snapshots: list[YearSnapshot]) -> YearSnapshot | None:
    """First snapshot with the highest household total."""
    if not snapshots:
        return None
    return max(snapshots, key=lambda s: s.total_assets)


def find_depletion(
    snapshots: list[YearSnapshot],
    husband_withdrawal_age: int,
    wife_withdrawal_age: int,
) -> YearSnapshot | None:
    """First year household assets reach zero after either spouse starts withdrawing."""
    for s in snapshots:
        if s.total_assets <= 0 and (
            s.husband_age > husband_withdrawal_age or s.wife_age > wife_withdrawal_age
        ):
            return s
    return None
