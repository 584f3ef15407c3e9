"""TOML config loader: config file sections override the built-in default household."""

import argparse
import dataclasses
import math
import sys
import tomllib
from datetime import date
from pathlib import Path
from typing import Callable

from nisa_sim_jp.dates import parse_year_month
from nisa_sim_jp.funds import INSURANCE_PRESETS, allocation_total
from nisa_sim_jp.params import (
    FREQUENCIES,
    BonusContribution,
    Child,
    ContributionPeriod,
    FamilySettings,
    FixedCost,
    Fund,
    GiftReceivingPeriod,
    Household,
    HousingLoan,
    IdecoProfile,
    IncomePeriod,
    InsurancePolicy,
    PersonProfile,
    PortfolioAllocation,
)
from nisa_sim_jp.simulation import MAX_YEARS

DEFAULT_CONFIG_PATH = Path("config.toml")


class ConfigError(ValueError):
    """Raised for unreadable or malformed configuration."""


def load_config(path: Path | None = None) -> dict:
    """Load TOML config file. Returns empty dict if file doesn't exist."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        raise ConfigError(f"設定ファイルの読み込みに失敗: {path}: {e}") from e


def _shift_month(today: date, months: int) -> tuple[int, int]:
    index = today.year * 12 + (today.month - 1) + months
    return index // 12, index % 12 + 1


def default_household(today: date) -> Household:
    """Built-in sample household (夫32歳・妻30歳・子2人) relative to today."""
    year = today.year
    next_month = _shift_month(today, 1)
    nisa_end = (year + 20, 12)
    ideco_end = (year + 30, 12)

    def ideco() -> IdecoProfile:
        return IdecoProfile(
            asset_data_date=today,
            contribution_periods=[ContributionPeriod(next_month, ideco_end, 23_000)],
            portfolio=[PortfolioAllocation("emaxis-all-country", 100)],
        )

    husband = PersonProfile(
        name="夫",
        birth_date=date(year - 32, 1, 1),
        asset_data_date=today,
        withdrawal_start_age=65,
        pension_start_age=65,
        monthly_pension=150_000,
        monthly_withdrawal=200_000,
        income_periods=[
            IncomePeriod(25, 60, 6_000_000),
            IncomePeriod(61, 65, 3_000_000),
        ],
        furusato_amount=80_000,
        nisa_principal=1_000_000,
        nisa_profit=100_000,
        contribution_periods=[ContributionPeriod(next_month, nisa_end, 50_000)],
        portfolio=[PortfolioAllocation("emaxis-all-country", 100)],
        ideco=ideco(),
    )
    wife = PersonProfile(
        name="妻",
        birth_date=date(year - 30, 1, 1),
        asset_data_date=today,
        withdrawal_start_age=65,
        pension_start_age=65,
        monthly_pension=80_000,
        monthly_withdrawal=200_000,
        income_periods=[
            IncomePeriod(25, 55, 4_000_000),
            IncomePeriod(56, 65, 1_000_000),
        ],
        furusato_amount=30_000,
        nisa_principal=1_000_000,
        nisa_profit=100_000,
        contribution_periods=[ContributionPeriod(next_month, nisa_end, 30_000)],
        portfolio=[PortfolioAllocation("emaxis-all-country", 100)],
        ideco=ideco(),
    )
    family = FamilySettings(
        gift_annual_per_child=1_100_000,
        gift_start_age=60,
        gift_end_age=75,
        marriage_gift_per_child=3_000_000,
        child_marriage_age=30,
        children=[
            Child("長子", date(year - 5, 1, 1)),
            Child("次子", date(year - 3, 1, 1)),
        ],
        housing=HousingLoan(
            has_loan=False,
            balance=30_000_000,
            interest_rate=0.6,
            monthly_payment=100_000,
            bonus_payment=0,
            payment_end=(year + 25, 12),
            deduction_end=(year + 10, 12),
            deduction_rate=0.7,
            monthly_maintenance_fee=30_000,
        ),
        fixed_costs=[
            FixedCost("基本生活費 (食費・日用品)", 150_000, "monthly"),
            FixedCost("水道光熱費・通信費", 30_000, "monthly"),
            FixedCost("車両維持費 (保険・税金)", 100_000, "yearly"),
        ],
    )
    return Household(husband=husband, wife=wife, family=family)


# --- value parsers ---------------------------------------------------------


def _number(raw: dict, key: str, label: str, default: float | None = None) -> float:
    if key not in raw:
        if default is None:
            raise ConfigError(f"{label}.{key} がありません")
        return default
    v = raw[key]
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ConfigError(f"{label}.{key} は数値で指定してください: {v!r}")
    if not math.isfinite(v):
        raise ConfigError(f"{label}.{key} は有限の数値で指定してください: {v!r}")
    return float(v)


def _int(raw: dict, key: str, label: str, default: int | None = None) -> int:
    v = _number(raw, key, label, None if default is None else float(default))
    if v != int(v):
        raise ConfigError(f"{label}.{key} は整数で指定してください: {v!r}")
    return int(v)


def _date(value, label: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ConfigError(f"{label} の日付形式が不正です: {value!r}（YYYY-MM-DD）") from None


def _year_month(value, label: str) -> tuple[int, int]:
    try:
        return parse_year_month(value)
    except ValueError as e:
        raise ConfigError(f"{label}: {e}") from None


def _table_list(raw: dict, key: str, label: str) -> list[dict]:
    v = raw.get(key, [])
    if not isinstance(v, list) or not all(isinstance(item, dict) for item in v):
        name = f"{label}.{key}" if label else key
        raise ConfigError(f"{name} はテーブルの配列で指定してください")
    return v


def _parse_contribution_periods(raw: dict, label: str) -> list[ContributionPeriod]:
    periods = []
    for i, item in enumerate(_table_list(raw, "contribution_periods", label)):
        item_label = f"{label}.contribution_periods[{i}]"
        periods.append(ContributionPeriod(
            start=_year_month(item.get("start"), f"{item_label}.start"),
            end=_year_month(item.get("end"), f"{item_label}.end"),
            amount=_number(item, "amount", item_label),
        ))
    return periods


def _parse_age_periods(raw: dict, key: str, label: str, cls: type) -> list:
    periods = []
    for i, item in enumerate(_table_list(raw, key, label)):
        item_label = f"{label}.{key}[{i}]"
        periods.append(cls(
            start=_int(item, "start_age", item_label),
            end=_int(item, "end_age", item_label),
            amount=_number(item, "amount", item_label),
        ))
    return periods


def _parse_portfolio(raw: dict, label: str) -> list[PortfolioAllocation]:
    portfolio = []
    for i, item in enumerate(_table_list(raw, "portfolio", label)):
        item_label = f"{label}.portfolio[{i}]"
        if "fund" not in item:
            raise ConfigError(f"{item_label}.fund がありません")
        portfolio.append(PortfolioAllocation(
            fund_id=str(item["fund"]),
            percentage=_number(item, "percentage", item_label),
        ))
    return portfolio


def _parse_insurance(raw: dict, label: str) -> list[InsurancePolicy]:
    policies = []
    for i, item in enumerate(_table_list(raw, "insurance", label)):
        item_label = f"{label}.insurance[{i}]"
        name = str(item.get("name", f"保険{i + 1}"))
        if "recorded_date" not in item:
            raise ConfigError(f"{item_label}.recorded_date がありません")
        policies.append(InsurancePolicy(
            name=name,
            recorded_date=_date(item["recorded_date"], f"{item_label}.recorded_date"),
            monthly_premium=_number(item, "monthly_premium", item_label, 0.0),
            total_premiums_paid=_number(item, "total_premiums_paid", item_label, 0.0),
            cash_value=_number(item, "cash_value", item_label, 0.0),
            expected_return_rate=_number(
                item, "expected_return_rate", item_label, INSURANCE_PRESETS.get(name, 0.0),
            ),
            payment_end_age=_int(item, "payment_end_age", item_label, 65),
        ))
    return policies


_PERSON_SCALARS = {
    "withdrawal_start_age": _int,
    "pension_start_age": _int,
    "monthly_pension": _number,
    "monthly_withdrawal": _number,
    "furusato_amount": _number,
    "nisa_principal": _number,
    "nisa_profit": _number,
}


def _parse_person(raw: dict, base: PersonProfile, label: str) -> PersonProfile:
    if not isinstance(raw, dict):
        raise ConfigError(f"[{label}] はテーブルで指定してください")
    changes: dict = {}
    if "name" in raw:
        changes["name"] = str(raw["name"])
    if "birth_date" in raw:
        changes["birth_date"] = _date(raw["birth_date"], f"{label}.birth_date")
    if "asset_data_date" in raw:
        changes["asset_data_date"] = _date(raw["asset_data_date"], f"{label}.asset_data_date")
    for key, parse in _PERSON_SCALARS.items():
        if key in raw:
            changes[key] = parse(raw, key, label)
    if "income_periods" in raw:
        changes["income_periods"] = _parse_age_periods(raw, "income_periods", label, IncomePeriod)
    if "gift_receiving_periods" in raw:
        changes["gift_receiving_periods"] = _parse_age_periods(
            raw, "gift_receiving_periods", label, GiftReceivingPeriod,
        )
    if "contribution_periods" in raw:
        changes["contribution_periods"] = _parse_contribution_periods(raw, label)
    if "bonus_contributions" in raw:
        changes["bonus_contributions"] = [
            BonusContribution(
                age=_int(item, "age", f"{label}.bonus_contributions[{i}]"),
                amount=_number(item, "amount", f"{label}.bonus_contributions[{i}]"),
            )
            for i, item in enumerate(_table_list(raw, "bonus_contributions", label))
        ]
    if "portfolio" in raw:
        changes["portfolio"] = _parse_portfolio(raw, label)
    if "insurance" in raw:
        changes["insurance_policies"] = _parse_insurance(raw, label)
    if "ideco" in raw:
        changes["ideco"] = _parse_ideco(raw["ideco"], base.ideco, f"{label}.ideco")
    return dataclasses.replace(base, **changes)


def _parse_ideco(raw: dict, base: IdecoProfile, label: str) -> IdecoProfile:
    if not isinstance(raw, dict):
        raise ConfigError(f"[{label}] はテーブルで指定してください")
    changes: dict = {}
    if "asset_data_date" in raw:
        changes["asset_data_date"] = _date(raw["asset_data_date"], f"{label}.asset_data_date")
    for key in ("principal", "profit"):
        if key in raw:
            changes[key] = _number(raw, key, label)
    if "contribution_periods" in raw:
        changes["contribution_periods"] = _parse_contribution_periods(raw, label)
    if "portfolio" in raw:
        changes["portfolio"] = _parse_portfolio(raw, label)
    return dataclasses.replace(base, **changes)


def _parse_housing(raw: dict, base: HousingLoan, label: str) -> HousingLoan:
    if not isinstance(raw, dict):
        raise ConfigError(f"[{label}] はテーブルで指定してください")
    changes: dict = {}
    if "has_loan" in raw:
        if not isinstance(raw["has_loan"], bool):
            raise ConfigError(f"{label}.has_loan は true/false で指定してください")
        changes["has_loan"] = raw["has_loan"]
    for key in (
        "balance", "interest_rate", "monthly_payment", "bonus_payment",
        "deduction_rate", "monthly_maintenance_fee",
    ):
        if key in raw:
            changes[key] = _number(raw, key, label)
    for key in ("payment_end", "deduction_end"):
        if key in raw:
            changes[key] = _year_month(raw[key], f"{label}.{key}")
    return dataclasses.replace(base, **changes)


def _parse_family(raw: dict, base: FamilySettings) -> FamilySettings:
    label = "family"
    if not isinstance(raw, dict):
        raise ConfigError("[family] はテーブルで指定してください")
    changes: dict = {}
    for key in ("gift_annual_per_child", "marriage_gift_per_child"):
        if key in raw:
            changes[key] = _number(raw, key, label)
    for key in ("gift_start_age", "gift_end_age", "child_marriage_age"):
        if key in raw:
            changes[key] = _int(raw, key, label)
    if "children" in raw:
        children = []
        for i, item in enumerate(_table_list(raw, "children", label)):
            item_label = f"{label}.children[{i}]"
            if "birth_date" not in item:
                raise ConfigError(f"{item_label}.birth_date がありません")
            children.append(Child(
                name=str(item.get("name", f"子{i + 1}")),
                birth_date=_date(item["birth_date"], f"{item_label}.birth_date"),
            ))
        changes["children"] = children
    if "fixed_costs" in raw:
        costs = []
        for i, item in enumerate(_table_list(raw, "fixed_costs", label)):
            item_label = f"{label}.fixed_costs[{i}]"
            frequency = item.get("frequency", "monthly")
            if frequency not in FREQUENCIES:
                raise ConfigError(
                    f"{item_label}.frequency は monthly / yearly のいずれかです: {frequency!r}"
                )
            costs.append(FixedCost(
                name=str(item.get("name", f"固定費{i + 1}")),
                amount=_number(item, "amount", item_label),
                frequency=frequency,
            ))
        changes["fixed_costs"] = costs
    if "housing" in raw:
        changes["housing"] = _parse_housing(raw["housing"], base.housing, f"{label}.housing")
    return dataclasses.replace(base, **changes)


def _parse_funds(raw: dict) -> dict[str, Fund]:
    funds = {}
    for i, item in enumerate(_table_list(raw, "funds", "")):
        item_label = f"funds[{i}]"
        if "id" not in item:
            raise ConfigError(f"{item_label}.id がありません")
        fund_id = str(item["id"])
        funds[fund_id] = Fund(
            fund_id=fund_id,
            name=str(item.get("name", fund_id)),
            rate=_number(item, "rate", item_label),
            risk_level=str(item.get("risk_level", "Medium")),
        )
    return funds


def build_household(raw: dict, today: date | None = None) -> Household:
    """Merge a raw config dict onto the default household.

    Scalars override individually; any list given in the config replaces the
    default list. Raises ConfigError without returning a partial household.
    """
    base = default_household(today or date.today())
    return Household(
        husband=_parse_person(raw.get("husband", {}), base.husband, "husband"),
        wife=_parse_person(raw.get("wife", {}), base.wife, "wife"),
        family=_parse_family(raw.get("family", {}), base.family),
        funds=_parse_funds(raw),
    )


def _overlaps(ranges: list[tuple]) -> bool:
    ordered = sorted(ranges)
    return any(a[1] >= b[0] for a, b in zip(ordered, ordered[1:]))


def validate_household(household: Household) -> list[str]:
    """Return warnings that never change the projection (used by --strict)."""
    warnings = []
    for person in household.persons:
        who = person.name
        for label, portfolio in (
            ("NISA", person.portfolio), ("iDeCo", person.ideco.portfolio),
        ):
            total = allocation_total(portfolio)
            if portfolio and total != 100:
                warnings.append(f"{who}: {label}の配分合計が{total:g}%です（100%以外）")
        if _overlaps([(p.start, p.end) for p in person.income_periods]):
            warnings.append(f"{who}: 収入期間が重複しています（先頭の期間が優先）")
        if _overlaps([(p.start, p.end) for p in person.contribution_periods]):
            warnings.append(f"{who}: NISA積立期間が重複しています（先頭の期間が優先）")
        if _overlaps([(p.start, p.end) for p in person.ideco.contribution_periods]):
            warnings.append(f"{who}: iDeCo積立期間が重複しています（先頭の期間が優先）")
        if person.withdrawal_start_age < person.pension_start_age and person.monthly_withdrawal > 0:
            warnings.append(
                f"{who}: 取り崩し開始{person.withdrawal_start_age}歳が"
                f"年金開始{person.pension_start_age}歳より前です"
            )
    housing = household.family.housing
    if housing.has_loan and housing.deduction_end > housing.payment_end:
        warnings.append("住宅ローン控除の終了が返済終了より後です")
    return warnings


def create_parser(description: str) -> argparse.ArgumentParser:
    """Create argparse parser with shared simulation flags."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", type=Path, default=None, help="設定ファイルパス (default: config.toml)")
    parser.add_argument("--max-years", type=int, default=None, help=f"最大シミュレーション年数 (default: {MAX_YEARS})")
    parser.add_argument("--strict", action="store_true", help="設定の警告をエラーとして扱う")
    return parser


def parse_args(
    description: str,
    add_args_fn: Callable[[argparse.ArgumentParser], None] | None = None,
    argv: list[str] | None = None,
) -> tuple[Household, list[str], argparse.Namespace]:
    """Parse CLI args, load config, build the household.

    Returns (household, warnings, namespace). Config errors and, with
    --strict, warnings are printed to stderr and exit with status 1.
    """
    parser = create_parser(description)
    if add_args_fn:
        add_args_fn(parser)
    args = parser.parse_args(argv)
    try:
        household = build_household(load_config(args.config))
    except ConfigError as e:
        print(f"設定エラー: {e}", file=sys.stderr)
        raise SystemExit(1)
    warnings = validate_household(household)
    for w in warnings:
        print(f"警告: {w}", file=sys.stderr)
    if args.strict and warnings:
        print("--strict: 警告があるため中断します", file=sys.stderr)
        raise SystemExit(1)
    if args.max_years is None:
        args.max_years = MAX_YEARS
    return household, warnings, args
