"""Household projection engine: monthly account steps folded into annual snapshots."""

import dataclasses
from dataclasses import dataclass

from nisa_sim_jp.accounts import (
    IDECO_AGE_LIMIT,
    NISA_LIFETIME_LIMIT,
    PersonState,
    PolicyState,
    add_lump_sum,
    step_ideco,
    step_insurance,
    step_nisa,
    withdraw,
)
from nisa_sim_jp.dates import (
    YearMonth,
    calc_age,
    is_active,
    is_on_or_before,
    parse_year_month,
    period_value,
)
from nisa_sim_jp.funds import FUND_PRESETS, monthly_rate, weighted_return_rate
from nisa_sim_jp.params import FamilySettings, Fund, HousingLoan, Household, PersonProfile
from nisa_sim_jp.snapshot import (
    YearSnapshot,
    build_cashflow,
    build_person_snapshot,
    build_snapshot,
)
from nisa_sim_jp.tax import calc_annual_tax

MAX_YEARS = 70  # 最大シミュレーション年数
TERMINAL_AGE = 100  # 夫婦とも100歳超で打ち切り

# 住宅ローン
BONUS_PAYMENT_MONTHS = (6, 12)  # ボーナス返済月（年額の半分ずつ）
HOUSING_DEDUCTION_CAP = 210_000  # 住宅ローン控除の年間上限（簡易）


@dataclass(frozen=True)
class PersonPlan:
    """Per-person constants resolved once at run start."""

    profile: PersonProfile
    nisa_recorded: YearMonth
    ideco_recorded: YearMonth
    nisa_rate: float  # 月利
    ideco_rate: float  # 月利


def _make_plan(person: PersonProfile, funds: dict[str, Fund]) -> PersonPlan:
    return PersonPlan(
        profile=person,
        nisa_recorded=parse_year_month(person.asset_data_date),
        ideco_recorded=parse_year_month(person.ideco_data_date),
        nisa_rate=monthly_rate(weighted_return_rate(person.portfolio, funds)),
        ideco_rate=monthly_rate(weighted_return_rate(person.ideco.portfolio, funds)),
    )


def initial_state(person: PersonProfile, limit: float = NISA_LIFETIME_LIMIT) -> PersonState:
    """Fresh account state copied from the profile (the profile itself is never mutated)."""
    policies = tuple(
        PolicyState(
            name=p.name,
            recorded=parse_year_month(p.recorded_date),
            monthly_premium=p.monthly_premium,
            principal=max(0.0, p.total_premiums_paid),
            cash_value=max(0.0, p.cash_value),
            monthly_rate=monthly_rate(p.expected_return_rate),
            payment_end_age=p.payment_end_age,
        )
        for p in person.insurance_policies
    )
    return PersonState(
        nisa_principal=min(max(0.0, person.nisa_principal), limit),
        nisa_assets=max(0.0, person.nisa_principal + person.nisa_profit),
        ideco_principal=max(0.0, person.ideco.principal),
        ideco_assets=max(0.0, person.ideco.principal + person.ideco.profit),
        policies=policies,
    )


def resolve_start_year(household: Household) -> int:
    """Earliest year among all account data dates and insurance recorded dates."""
    years = []
    for person in household.persons:
        years.append(person.asset_data_date.year)
        years.append(person.ideco_data_date.year)
        years.extend(p.recorded_date.year for p in person.insurance_policies)
    return min(years)


def amortize_month(
    loan: HousingLoan, balance: float, year: int, month: int,
) -> tuple[float, float]:
    """One month of level-payment amortization. Returns (balance, payment)."""
    if not loan.has_loan or balance <= 0 or not is_on_or_before(loan.payment_end, year, month):
        return balance, 0.0
    interest = balance * loan.interest_rate / 100 / 12
    payment = max(0.0, loan.monthly_payment)
    bonus = max(0.0, loan.bonus_payment) / 2 if month in BONUS_PAYMENT_MONTHS else 0.0
    principal_part = min(payment - interest + bonus, balance)
    return balance - principal_part, payment + bonus


def calc_housing_deduction(loan: HousingLoan, balance: float, year: int) -> float:
    """Year-end housing loan tax credit (住宅ローン控除)."""
    if not loan.has_loan or balance <= 0 or year > loan.deduction_end[0]:
        return 0.0
    return min(balance * loan.deduction_rate / 100, HOUSING_DEDUCTION_CAP)


def calc_gift_need(family: FamilySettings, husband_age: int, year: int) -> float:
    """Annual gifts to children: per-child annual gift in the window + marriage gifts."""
    if not family.children:
        return 0.0
    need = 0.0
    if family.gift_start_age <= husband_age <= family.gift_end_age:
        need += len(family.children) * max(0.0, family.gift_annual_per_child)
    for child in family.children:
        if calc_age(child.birth_date, year) == family.child_marriage_age:
            need += max(0.0, family.marriage_gift_per_child)
    return need


def split_gift(need: float, husband_total: float, wife_total: float) -> tuple[float, float]:
    """Draw from the wealthier spouse first until equal, then split the rest evenly.

    Returns (from_husband, from_wife).
    """
    from_husband = from_wife = 0.0
    remaining = need
    if husband_total > wife_total:
        from_husband = min(husband_total - wife_total, remaining)
        remaining -= from_husband
    elif wife_total > husband_total:
        from_wife = min(wife_total - husband_total, remaining)
        remaining -= from_wife
    if remaining > 0:
        from_husband += remaining / 2
        from_wife += remaining / 2
    return from_husband, from_wife


def step_person_month(
    plan: PersonPlan, state: PersonState, age: int, year: int, month: int,
) -> tuple[PersonState, float, float, float, float, float]:
    """Advance one person by one month.

    Returns (state, contributed, ideco_contributed, pension, withdrawn, shortfall).
    contributed includes NISA (lump sum + monthly), iDeCo and insurance premiums.
    """
    person = plan.profile
    nisa_on = is_active(plan.nisa_recorded, year, month)
    ideco_on = is_active(plan.ideco_recorded, year, month)
    accumulating = age < person.withdrawal_start_age
    contributed = 0.0

    nisa_principal, nisa_assets = state.nisa_principal, state.nisa_assets
    if month == 1 and nisa_on and accumulating:
        for bonus in person.bonus_contributions:
            if bonus.age == age:
                nisa_principal, nisa_assets, actual = add_lump_sum(
                    nisa_principal, nisa_assets, bonus.amount,
                )
                contributed += actual

    if nisa_on:
        contribution = (
            period_value(person.contribution_periods, (year, month)) if accumulating else 0.0
        )
        before = nisa_principal
        nisa_principal, nisa_assets = step_nisa(
            nisa_principal, nisa_assets, contribution, plan.nisa_rate,
        )
        contributed += nisa_principal - before

    ideco_principal, ideco_assets = state.ideco_principal, state.ideco_assets
    ideco_contributed = 0.0
    if ideco_on:
        if age < IDECO_AGE_LIMIT:
            ideco_contributed = max(
                0.0, period_value(person.ideco.contribution_periods, (year, month)),
            )
        ideco_principal, ideco_assets = step_ideco(
            ideco_principal, ideco_assets, ideco_contributed, plan.ideco_rate,
        )
    contributed += ideco_contributed

    policies, premiums = step_insurance(state.policies, age, year, month)
    contributed += premiums

    state = PersonState(
        nisa_principal=nisa_principal,
        nisa_assets=nisa_assets,
        ideco_principal=ideco_principal,
        ideco_assets=ideco_assets,
        policies=policies,
    )

    pension = max(0.0, person.monthly_pension) if age >= person.pension_start_age else 0.0
    withdrawn = shortfall = 0.0
    if not accumulating:
        need = max(0.0, person.monthly_withdrawal)
        if pension >= need:
            # 年金の余剰はNISA（評価額のみ）へ
            if nisa_on:
                state = dataclasses.replace(
                    state, nisa_assets=state.nisa_assets + pension - need,
                )
            need = 0.0
        else:
            need -= pension
        if need > 0:
            state, shortfall = withdraw(state, need, age)
            withdrawn = need - shortfall

    return state, contributed, ideco_contributed, pension, withdrawn, shortfall


def simulate_household(
    household: Household,
    max_years: int = MAX_YEARS,
) -> list[YearSnapshot]:
    """Project the household year by year from the earliest recorded date.

    Index 0 is the starting state (no flows). The run stops after max_years
    or once both spouses are older than TERMINAL_AGE. The input household is
    never mutated; all working state is rebuilt here on every call.
    """
    funds = {**FUND_PRESETS, **household.funds}
    husband, wife = household.husband, household.wife
    family = household.family
    loan = family.housing

    h_plan = _make_plan(husband, funds)
    w_plan = _make_plan(wife, funds)
    h_state = initial_state(husband)
    w_state = initial_state(wife)

    loan_balance = max(0.0, loan.balance) if loan.has_loan else 0.0
    cumulative_gifts = 0.0
    fixed_cost = sum(max(0.0, fc.annual_amount()) for fc in family.fixed_costs)

    start_year = resolve_start_year(household)
    snapshots = [
        build_snapshot(
            0, start_year,
            calc_age(husband.birth_date, start_year),
            calc_age(wife.birth_date, start_year),
            h_state, w_state,
            build_person_snapshot(h_state),
            build_person_snapshot(w_state),
        )
    ]

    for year_index in range(1, max_years + 1):
        year = start_year + year_index
        h_age = calc_age(husband.birth_date, year)
        w_age = calc_age(wife.birth_date, year)

        h_gross = max(0.0, period_value(husband.income_periods, h_age))
        w_gross = max(0.0, period_value(wife.income_periods, w_age))

        housing_cost = 0.0
        annual_pension = 0.0
        h_paid = w_paid = 0.0
        h_ideco_year = w_ideco_year = 0.0
        h_withdrawn = w_withdrawn = 0.0
        h_shortfall = w_shortfall = 0.0

        for month in range(1, 13):
            loan_balance, payment = amortize_month(loan, loan_balance, year, month)
            housing_cost += payment
            if loan.has_loan:
                housing_cost += max(0.0, loan.monthly_maintenance_fee)

            h_state, paid, ideco_paid, pension, withdrawn, shortfall = step_person_month(
                h_plan, h_state, h_age, year, month,
            )
            h_paid += paid
            h_ideco_year += ideco_paid
            annual_pension += pension
            h_withdrawn += withdrawn
            h_shortfall += shortfall

            w_state, paid, ideco_paid, pension, withdrawn, shortfall = step_person_month(
                w_plan, w_state, w_age, year, month,
            )
            w_paid += paid
            w_ideco_year += ideco_paid
            annual_pension += pension
            w_withdrawn += withdrawn
            w_shortfall += shortfall

        # 年末: 住宅ローン控除は年収の高い方に全額
        housing_deduction = calc_housing_deduction(loan, loan_balance, year)
        if h_gross > w_gross:
            h_deduction, w_deduction = housing_deduction, 0.0
        else:
            h_deduction, w_deduction = 0.0, housing_deduction
        h_tax = calc_annual_tax(h_gross, h_deduction, h_ideco_year)
        w_tax = calc_annual_tax(w_gross, w_deduction, w_ideco_year)

        furusato = 0.0
        for person, gross in ((husband, h_gross), (wife, w_gross)):
            if gross > 0:
                furusato += max(0.0, person.furusato_amount)
        received_gift = (
            max(0.0, period_value(husband.gift_receiving_periods, h_age))
            + max(0.0, period_value(wife.gift_receiving_periods, w_age))
        )

        cashflow = build_cashflow(
            gross_income=h_gross + w_gross,
            tax_and_social=h_tax.tax + h_tax.social + w_tax.tax + w_tax.social,
            take_home=h_tax.take_home + w_tax.take_home + annual_pension,
            received_gift=received_gift,
            housing_cost=housing_cost,
            housing_deduction=housing_deduction,
            fixed_cost=fixed_cost,
            furusato=furusato,
            contributions=h_paid + w_paid,
        )

        gift_need = calc_gift_need(family, h_age, year)
        if gift_need > 0:
            from_husband, from_wife = split_gift(
                gift_need, h_state.total_assets, w_state.total_assets,
            )
            if from_husband > 0:
                h_state, _ = withdraw(h_state, from_husband, h_age)
            if from_wife > 0:
                w_state, _ = withdraw(w_state, from_wife, w_age)
            cumulative_gifts += gift_need

        snapshots.append(
            build_snapshot(
                year_index, year, h_age, w_age,
                h_state, w_state,
                build_person_snapshot(h_state, h_paid, h_gross, h_withdrawn, h_shortfall),
                build_person_snapshot(w_state, w_paid, w_gross, w_withdrawn, w_shortfall),
                cashflow=cashflow,
                annual_gift=gift_need,
                cumulative_gifts=cumulative_gifts,
                total_pension=annual_pension,
            )
        )

        if h_age > TERMINAL_AGE and w_age > TERMINAL_AGE:
            break

    return snapshots
