"""Tests for simulate_household() and its yearly building blocks."""

import copy
from datetime import date

import pytest
from nisa_sim_jp import (
    BonusContribution,
    Child,
    ContributionPeriod,
    FamilySettings,
    FixedCost,
    GiftReceivingPeriod,
    HousingLoan,
    Household,
    IdecoProfile,
    IncomePeriod,
    InsurancePolicy,
    PersonProfile,
    PortfolioAllocation,
    default_household,
    find_depletion,
    simulate_household,
)
from nisa_sim_jp.simulation import (
    amortize_month,
    calc_gift_need,
    calc_housing_deduction,
    initial_state,
    resolve_start_year,
    split_gift,
)

RECORDED = date(2024, 12, 31)  # 2025年1月から動き出す


def _person(birth_year: int, **kwargs) -> PersonProfile:
    """利回り0%・収入なしの最小プロフィール"""
    kwargs.setdefault("asset_data_date", RECORDED)
    return PersonProfile(name="テスト", birth_date=date(birth_year, 1, 1), **kwargs)


def _household(husband: PersonProfile, wife: PersonProfile | None = None,
               family: FamilySettings | None = None) -> Household:
    if wife is None:
        wife = _person(husband.birth_date.year)
    return Household(husband=husband, wife=wife, family=family or FamilySettings())


class TestSplitGift:
    def test_equal_assets(self):
        assert split_gift(1_000_000, 5_000_000, 5_000_000) == (500_000, 500_000)

    def test_richer_husband_first(self):
        """30万の差を夫が先に負担、残り70万を折半"""
        assert split_gift(1_000_000, 5_300_000, 5_000_000) == (650_000, 350_000)

    def test_richer_wife_first(self):
        assert split_gift(1_000_000, 5_000_000, 5_300_000) == (350_000, 650_000)

    def test_gap_covers_need(self):
        assert split_gift(100_000, 5_300_000, 5_000_000) == (100_000, 0)


class TestGiftNeed:
    def setup_method(self):
        self.family = FamilySettings(
            gift_annual_per_child=1_100_000,
            gift_start_age=60,
            gift_end_age=75,
            marriage_gift_per_child=3_000_000,
            child_marriage_age=30,
            children=[Child("長子", date(2000, 4, 1)), Child("次子", date(2003, 4, 1))],
        )

    def test_annual_gift_window(self):
        assert calc_gift_need(self.family, 59, 2029) == 0
        assert calc_gift_need(self.family, 60, 2029) == 2_200_000
        assert calc_gift_need(self.family, 75, 2029) == 2_200_000
        assert calc_gift_need(self.family, 76, 2029) == 0

    def test_marriage_gift(self):
        """長子30歳の年に結婚資金を追加"""
        assert calc_gift_need(self.family, 50, 2030) == 3_000_000
        assert calc_gift_need(self.family, 60, 2030) == 5_200_000

    def test_no_children(self):
        assert calc_gift_need(FamilySettings(gift_annual_per_child=1_100_000), 65, 2030) == 0


class TestHousingLoan:
    def setup_method(self):
        self.loan = HousingLoan(
            has_loan=True,
            balance=1_200_000,
            interest_rate=0.0,
            monthly_payment=100_000,
            bonus_payment=200_000,
            payment_end=(2030, 12),
            deduction_end=(2028, 12),
            deduction_rate=0.7,
        )

    def test_regular_month(self):
        assert amortize_month(self.loan, 1_200_000, 2027, 1) == (1_100_000, 100_000)

    def test_bonus_month(self):
        """6月・12月は年間ボーナス返済の半額を上乗せ"""
        assert amortize_month(self.loan, 1_200_000, 2027, 6) == (1_000_000, 200_000)

    def test_interest(self):
        loan = HousingLoan(has_loan=True, balance=1_200_000, interest_rate=1.2,
                           monthly_payment=100_000)
        balance, payment = amortize_month(loan, 1_200_000, 2027, 1)
        assert balance == pytest.approx(1_200_000 - (100_000 - 1_200))
        assert payment == 100_000

    def test_principal_capped_at_balance(self):
        balance, _ = amortize_month(self.loan, 50_000, 2027, 1)
        assert balance == 0

    def test_after_payment_end(self):
        assert amortize_month(self.loan, 500_000, 2031, 1) == (500_000, 0.0)

    def test_no_loan(self):
        loan = HousingLoan(has_loan=False, balance=1_000_000, monthly_payment=100_000)
        assert amortize_month(loan, 1_000_000, 2027, 1) == (1_000_000, 0.0)

    def test_negative_payments_clamped(self):
        """負の返済額は0扱い（残高は増えない）"""
        loan = HousingLoan(has_loan=True, balance=1_000_000, monthly_payment=-100_000,
                           bonus_payment=-200_000)
        assert amortize_month(loan, 1_000_000, 2027, 6) == (1_000_000, 0.0)

    def test_deduction_capped(self):
        assert calc_housing_deduction(self.loan, 40_000_000, 2027) == 210_000

    def test_deduction_rate(self):
        assert calc_housing_deduction(self.loan, 20_000_000, 2027) == pytest.approx(140_000)

    def test_deduction_ends(self):
        assert calc_housing_deduction(self.loan, 20_000_000, 2029) == 0


class TestInitialState:
    def test_nisa_principal_clamped(self):
        state = initial_state(_person(1985, nisa_principal=20_000_000, nisa_profit=0))
        assert state.nisa_principal == 18_000_000
        assert state.nisa_assets == 20_000_000

    def test_negative_assets_floored(self):
        state = initial_state(_person(1985, nisa_principal=100_000, nisa_profit=-200_000))
        assert state.nisa_assets == 0

    def test_start_year_is_earliest_date(self):
        policy = InsurancePolicy(name="GQ", recorded_date=date(2022, 5, 1))
        household = _household(_person(1985, insurance_policies=[policy]))
        assert resolve_start_year(household) == 2022


class TestWithdrawalPhase:
    """夫65歳から月5万取り崩し、評価額110万（元本100万）、利回り0%"""

    def setup_method(self):
        husband = _person(1960, nisa_principal=1_000_000, nisa_profit=100_000,
                          withdrawal_start_age=65, monthly_withdrawal=50_000)
        self.household = _household(husband)
        self.snapshots = simulate_household(self.household)

    def test_starting_snapshot(self):
        s = self.snapshots[0]
        assert s.calendar_year == 2024
        assert s.husband_age == 64
        assert s.total_assets == 1_100_000

    def test_first_withdrawal_year(self):
        s = self.snapshots[1].husband
        assert s.nisa_assets == 500_000
        assert s.nisa_principal == 454_545
        assert s.nisa_profit == 45_455
        assert s.withdrawn == 600_000
        assert s.shortfall == 0

    def test_depleted_with_shortfall(self):
        s = self.snapshots[2].husband
        assert s.nisa_assets == 0
        assert s.withdrawn == 500_000
        assert s.shortfall == 100_000

    def test_depletion_year(self):
        depletion = find_depletion(self.snapshots, 65, 65)
        assert depletion is not None
        assert depletion.calendar_year == 2026

    def test_stops_after_terminal_age(self):
        assert self.snapshots[-1].husband_age == 101
        assert self.snapshots[-1].wife_age == 101
        assert len(self.snapshots) == 38


class TestPension:
    def test_surplus_goes_to_nisa(self):
        """年金15万 > 取り崩し10万 → 差額5万/月をNISA評価額へ"""
        husband = _person(1960, nisa_principal=1_000_000, withdrawal_start_age=65,
                          pension_start_age=65, monthly_pension=150_000,
                          monthly_withdrawal=100_000)
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.husband.nisa_assets == 1_600_000
        assert s.husband.nisa_principal == 1_000_000
        assert s.husband.withdrawn == 0
        assert s.total_pension == 1_800_000

    def test_pension_reduces_withdrawal(self):
        husband = _person(1960, nisa_principal=1_000_000, withdrawal_start_age=65,
                          pension_start_age=65, monthly_pension=30_000,
                          monthly_withdrawal=50_000)
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.husband.withdrawn == 240_000
        assert s.husband.nisa_assets == 760_000

    def test_negative_pension_ignored(self):
        """負の年金額は0扱い: 取り崩しは目標額のまま"""
        husband = _person(1960, nisa_principal=1_000_000, withdrawal_start_age=65,
                          pension_start_age=65, monthly_pension=-30_000,
                          monthly_withdrawal=50_000)
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.husband.withdrawn == 600_000
        assert s.husband.nisa_assets == 400_000
        assert s.total_pension == 0
        assert s.cashflow.take_home == 0


class TestNisaLimit:
    def test_monthly_contributions_stop_at_limit(self):
        husband = _person(
            1985,
            contribution_periods=[ContributionPeriod((2025, 1), (2040, 12), 1_000_000)],
        )
        snapshots = simulate_household(_household(husband), max_years=3)
        assert snapshots[1].husband.nisa_principal == 12_000_000
        assert not snapshots[1].husband.nisa_maxed
        assert snapshots[2].husband.nisa_principal == 18_000_000
        assert snapshots[2].husband.nisa_maxed
        assert snapshots[2].husband.annual_contribution == 6_000_000
        assert snapshots[3].husband.annual_contribution == 0

    def test_lump_sum_capped(self):
        """41歳の1月に2,000万一括 → 既存元本100万なので1,700万のみ"""
        husband = _person(
            1984, nisa_principal=1_000_000,
            bonus_contributions=[BonusContribution(41, 20_000_000)],
        )
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.husband.nisa_principal == 18_000_000
        assert s.husband.annual_contribution == 17_000_000

    def test_no_contribution_after_withdrawal_start(self):
        husband = _person(
            1960, withdrawal_start_age=65,
            contribution_periods=[ContributionPeriod((2025, 1), (2040, 12), 50_000)],
        )
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.husband.nisa_principal == 0


class TestIdeco:
    def setup_method(self):
        husband = _person(
            1985,
            ideco=IdecoProfile(
                contribution_periods=[ContributionPeriod((2025, 1), (2099, 12), 23_000)],
                portfolio=[PortfolioAllocation("emaxis-all-country", 100)],
            ),
        )
        self.snapshots = simulate_household(_household(husband), max_years=25)

    def test_principal_grows_until_60(self):
        by_age = {s.husband_age: s.husband for s in self.snapshots}
        assert by_age[40].ideco_principal == 276_000
        for age in range(41, 60):
            assert by_age[age].ideco_principal == by_age[age - 1].ideco_principal + 276_000

    def test_contributions_stop_at_60(self):
        by_age = {s.husband_age: s.husband for s in self.snapshots}
        assert by_age[60].ideco_principal == by_age[59].ideco_principal
        assert by_age[60].ideco_assets > by_age[59].ideco_assets

    def test_locked_for_gifts_before_60(self):
        """58歳の贈与はiDeCoから出せず不足になる"""
        husband = _person(1967, ideco=IdecoProfile(principal=1_000_000))
        family = FamilySettings(
            gift_annual_per_child=1_100_000, gift_start_age=58, gift_end_age=58,
            children=[Child("長子", date(2000, 1, 1))],
        )
        s = simulate_household(_household(husband, family=family), max_years=1)[1]
        assert s.husband.ideco_assets == 1_000_000
        assert s.annual_gift == 1_100_000
        assert s.cumulative_gifts == 1_100_000


class TestGiftEqualization:
    def setup_method(self):
        husband = _person(1970, nisa_principal=10_000_000, withdrawal_start_age=80)
        wife = _person(1972, nisa_principal=5_000_000, withdrawal_start_age=80)
        family = FamilySettings(
            gift_annual_per_child=1_100_000, gift_start_age=55, gift_end_age=75,
            children=[Child("長子", date(2000, 1, 1)), Child("次子", date(2002, 1, 1))],
        )
        self.snapshots = simulate_household(_household(husband, wife, family), max_years=3)

    def test_richer_spouse_pays_first(self):
        s = self.snapshots[1]
        assert s.annual_gift == 2_200_000
        assert s.husband.nisa_assets == 7_800_000
        assert s.wife.nisa_assets == 5_000_000

    def test_converges_then_splits(self):
        s = self.snapshots[3]
        assert s.husband.nisa_assets == 4_200_000
        assert s.wife.nisa_assets == 4_200_000
        assert s.cumulative_gifts == 6_600_000

    def test_gift_draws_insurance_before_nisa(self):
        """贈与の取り崩しも保険 → NISA の順"""
        policy = InsurancePolicy(name="GQ", recorded_date=RECORDED,
                                 total_premiums_paid=1_000_000, cash_value=2_000_000)
        husband = _person(1970, nisa_principal=3_000_000, insurance_policies=[policy])
        wife = _person(1972, nisa_principal=5_000_000)
        family = FamilySettings(
            gift_annual_per_child=1_000_000, gift_start_age=55, gift_end_age=55,
            children=[Child("長子", date(2000, 1, 1))],
        )
        s = simulate_household(_household(husband, wife, family), max_years=1)[1]
        assert s.husband.insurance_assets == 1_500_000
        assert s.husband.ins_principal == 750_000
        assert s.husband.nisa_assets == 3_000_000
        assert s.wife.nisa_assets == 4_500_000


class TestActivationDates:
    def test_vehicle_waits_for_its_recorded_month(self):
        husband = _person(1985)
        wife = _person(
            1987, asset_data_date=date(2026, 6, 30), nisa_principal=100_000,
            contribution_periods=[ContributionPeriod((2025, 1), (2040, 12), 10_000)],
            portfolio=[PortfolioAllocation("emaxis-sp500", 100)],
        )
        snapshots = simulate_household(_household(husband, wife), max_years=2)
        assert snapshots[1].wife.nisa_assets == 100_000
        assert snapshots[2].wife.nisa_principal == 160_000


class TestCashFlow:
    def test_housing_credit_lowers_tax(self):
        def run(has_loan: bool):
            husband = _person(1990, income_periods=[IncomePeriod(25, 60, 6_000_000)])
            wife = _person(1992, income_periods=[IncomePeriod(25, 60, 4_000_000)])
            family = FamilySettings(housing=HousingLoan(
                has_loan=has_loan, balance=40_000_000, interest_rate=0.6,
                monthly_payment=100_000, payment_end=(2050, 12),
                deduction_end=(2034, 12), monthly_maintenance_fee=30_000,
            ))
            return simulate_household(_household(husband, wife, family), max_years=1)[1]

        with_loan, without = run(True), run(False)
        assert with_loan.cashflow.housing_deduction == 210_000
        assert with_loan.cashflow.tax_and_social < without.cashflow.tax_and_social
        assert with_loan.cashflow.housing_cost == (100_000 + 30_000) * 12

    def test_disposable(self):
        husband = _person(1990, income_periods=[IncomePeriod(25, 60, 6_000_000)],
                          furusato_amount=80_000)
        family = FamilySettings()
        s = simulate_household(_household(husband, family=family), max_years=1)[1]
        cf = s.cashflow
        assert cf.gross_income == 6_000_000
        assert cf.take_home == 4_596_500
        assert cf.furusato == 80_000
        assert cf.disposable == 4_596_500 - 80_000

    def test_no_furusato_without_income(self):
        husband = _person(1960, furusato_amount=80_000)
        s = simulate_household(_household(husband), max_years=1)[1]
        assert s.cashflow.furusato == 0

    def test_fixed_costs_and_received_gifts(self):
        """固定費: 月額×12 + 年額、受贈は可処分に加算"""
        husband = _person(
            1990, gift_receiving_periods=[GiftReceivingPeriod(30, 40, 1_100_000)],
        )
        family = FamilySettings(fixed_costs=[
            FixedCost("生活費", 100_000, "monthly"),
            FixedCost("車検", 200_000, "yearly"),
        ])
        cf = simulate_household(_household(husband, family=family), max_years=1)[1].cashflow
        assert cf.fixed_cost == 1_400_000
        assert cf.received_gift == 1_100_000
        assert cf.disposable == 1_100_000 - 1_400_000

    def test_received_gifts_outside_period(self):
        husband = _person(
            1990, gift_receiving_periods=[GiftReceivingPeriod(40, 50, 1_100_000)],
        )
        cf = simulate_household(_household(husband), max_years=1)[1].cashflow
        assert cf.received_gift == 0

    def test_negative_maintenance_fee_ignored(self):
        family = FamilySettings(housing=HousingLoan(
            has_loan=True, balance=1_200_000, monthly_payment=100_000,
            monthly_maintenance_fee=-30_000,
        ))
        cf = simulate_household(_household(_person(1990), family=family), max_years=1)[1].cashflow
        assert cf.housing_cost == 1_200_000


class TestRunProperties:
    def test_deterministic(self):
        household = default_household(date(2026, 10, 17))
        assert simulate_household(household) == simulate_household(household)

    def test_input_not_mutated(self):
        household = default_household(date(2026, 10, 17))
        before = copy.deepcopy(household)
        simulate_household(household)
        assert household == before

    def test_max_years(self):
        household = default_household(date(2026, 10, 17))
        snapshots = simulate_household(household, max_years=10)
        assert len(snapshots) == 11
        assert [s.year_index for s in snapshots] == list(range(11))

    def test_default_household_runs_full_length(self):
        snapshots = simulate_household(default_household(date(2026, 10, 17)))
        assert snapshots[0].calendar_year == 2026
        assert snapshots[0].husband_age == 32
        assert len(snapshots) == 71
        assert all(s.total_assets >= 0 for s in snapshots)
