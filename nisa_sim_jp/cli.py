"""CLI entry point for the household asset projection."""

import argparse
import json
import sys

from nisa_sim_jp.config import parse_args
from nisa_sim_jp.funds import FUND_PRESETS, weighted_return_rate
from nisa_sim_jp.params import Household
from nisa_sim_jp.simulation import simulate_household
from nisa_sim_jp.snapshot import YearSnapshot, find_depletion, find_peak


def _man(yen: float) -> float:
    """円 → 万円"""
    return yen / 10_000


def _add_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--every", type=int, default=5,
        help="年次表の表示間隔（年、最終年は常に表示）(default: 5)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="年次スナップショットをJSONで標準出力に書き出す",
    )


def _print_header(household: Household, snapshots: list[YearSnapshot]):
    funds = {**FUND_PRESETS, **household.funds}
    first = snapshots[0]
    print("=" * 80)
    print(
        f"NISA・iDeCo 資産推移シミュレーション（{first.calendar_year}年〜"
        f"{snapshots[-1].calendar_year}年、{len(snapshots) - 1}年間）"
    )
    for person, age in ((household.husband, first.husband_age), (household.wife, first.wife_age)):
        nisa_rate = weighted_return_rate(person.portfolio, funds)
        ideco_rate = weighted_return_rate(person.ideco.portfolio, funds)
        print(
            f"  {person.name}: {age}歳 / 取り崩し{person.withdrawal_start_age}歳〜"
            f"（{_man(person.monthly_withdrawal):.1f}万/月）"
            f" / 年金{person.pension_start_age}歳〜（{_man(person.monthly_pension):.1f}万/月）"
        )
        print(
            f"    想定利回り: NISA {nisa_rate:.2f}% / iDeCo {ideco_rate:.2f}%"
            f" / 保険{len(person.insurance_policies)}件"
        )
    family = household.family
    if family.children:
        print(
            f"  子{len(family.children)}人: 暦年贈与 {_man(family.gift_annual_per_child):.0f}万/人"
            f"（夫{family.gift_start_age}-{family.gift_end_age}歳）"
            f" / 結婚資金 {_man(family.marriage_gift_per_child):.0f}万/人（子{family.child_marriage_age}歳）"
        )
    loan = family.housing
    if loan.has_loan:
        print(
            f"  住宅ローン: 残高{_man(loan.balance):.0f}万 / 金利{loan.interest_rate:.2f}%"
            f" / 返済{_man(loan.monthly_payment):.1f}万/月（{loan.payment_end[0]}年{loan.payment_end[1]}月まで）"
        )
    print("=" * 80)
    print()


def _print_yearly_table(snapshots: list[YearSnapshot], every: int):
    print("【年次推移（万円）】")
    print("-" * 110)
    print(
        f"{'年':<6} {'夫':>4} {'妻':>4} {'NISA':>10} {'iDeCo':>10} {'保険':>10}"
        f" {'総資産':>10} {'元本':>10} {'ROI%':>7} {'贈与累計':>9} {'可処分':>9}"
    )
    print("-" * 110)
    last = len(snapshots) - 1
    for i, s in enumerate(snapshots):
        if i % every != 0 and i != last:
            continue
        h, w = s.husband, s.wife
        print(
            f"{s.calendar_year:<6} {s.husband_age:>4} {s.wife_age:>4}"
            f" {_man(h.nisa_assets + w.nisa_assets):>10.1f}"
            f" {_man(h.ideco_assets + w.ideco_assets):>10.1f}"
            f" {_man(h.insurance_assets + w.insurance_assets):>10.1f}"
            f" {_man(s.total_assets):>10.1f}"
            f" {_man(s.total_principal):>10.1f}"
            f" {s.total_roi:>7.1f}"
            f" {_man(s.cumulative_gifts):>9.0f}"
            f" {_man(s.cashflow.disposable):>9.1f}"
        )
    print("-" * 110)


def _print_summary(household: Household, snapshots: list[YearSnapshot]):
    final = snapshots[-1]
    print("\n" + "=" * 80)
    print("【サマリー】")
    print("=" * 80)
    print(
        f"  最終資産({final.calendar_year}年): {_man(final.total_assets):>10.1f}万円"
        f"（元本{_man(final.total_principal):.0f}万 / ROI {final.total_roi:.1f}%）"
    )
    peak = find_peak(snapshots)
    if peak is not None:
        print(
            f"  ピーク: {peak.calendar_year}年（夫{peak.husband_age}歳）"
            f" {_man(peak.total_assets):.1f}万円"
        )
    print(f"  贈与累計: {_man(final.cumulative_gifts):.0f}万円")
    spouses = (
        (household.husband, lambda s: s.husband, lambda s: s.husband_age),
        (household.wife, lambda s: s.wife, lambda s: s.wife_age),
    )
    for person, pick, age_of in spouses:
        label = person.name
        start = next(
            (s for s in snapshots if age_of(s) == person.withdrawal_start_age), None,
        )
        if start is not None:
            print(
                f"  {label}: 取り崩し開始時（{start.calendar_year}年・{person.withdrawal_start_age}歳）"
                f" 総資産{_man(pick(start).total_assets):.1f}万円"
                f" / NISA {_man(pick(start).nisa_assets):.1f}万円"
            )
        maxed = next((s for s in snapshots if pick(s).nisa_maxed), None)
        if maxed is not None:
            print(f"  {label}: NISA生涯枠を{maxed.calendar_year}年に使い切り")
        shortfall = sum(pick(s).shortfall for s in snapshots)
        if shortfall > 0:
            print(f"  {label}: 取り崩し不足 累計{_man(shortfall):.0f}万円")
    depletion = find_depletion(
        snapshots,
        household.husband.withdrawal_start_age,
        household.wife.withdrawal_start_age,
    )
    if depletion is not None:
        print(
            f"  ⚠ {depletion.calendar_year}年（夫{depletion.husband_age}歳・"
            f"妻{depletion.wife_age}歳）で資産枯渇"
        )


def main(argv: list[str] | None = None):
    """Run the projection and print the yearly report."""
    household, _, args = parse_args("NISA・iDeCo 資産推移シミュレーション", _add_args, argv)
    if args.every < 1:
        print("--every は1以上で指定してください", file=sys.stderr)
        raise SystemExit(1)

    print("シミュレーション実行中...", file=sys.stderr)
    snapshots = simulate_household(household, max_years=args.max_years)

    if args.json:
        json.dump([s.to_dict() for s in snapshots], sys.stdout, ensure_ascii=False, indent=2)
        print()
        return

    _print_header(household, snapshots)
    _print_yearly_table(snapshots, args.every)
    _print_summary(household, snapshots)


if __name__ == "__main__":
    main()
