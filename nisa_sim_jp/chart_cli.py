"""CLI entry point for chart generation."""

import argparse
import sys
from pathlib import Path

from nisa_sim_jp.charts import plot_assets, plot_cashflow
from nisa_sim_jp.config import parse_args
from nisa_sim_jp.simulation import simulate_household
from nisa_sim_jp.snapshot import find_depletion


def _add_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--output", type=Path, default=Path("reports/charts"),
        help="出力ディレクトリ (default: reports/charts)",
    )
    parser.add_argument(
        "--name", type=str, default="",
        help="出力ファイル名のサフィックス（例: a → assets-a.png）",
    )


def main(argv: list[str] | None = None):
    household, _, args = parse_args("NISA・iDeCo シミュレーション チャート生成", _add_args, argv)

    print("シミュレーション実行中...", file=sys.stderr)
    snapshots = simulate_household(household, max_years=args.max_years)
    depletion = find_depletion(
        snapshots,
        household.husband.withdrawal_start_age,
        household.wife.withdrawal_start_age,
    )

    path = plot_assets(
        snapshots, args.output, name=args.name,
        person_names=(household.husband.name, household.wife.name),
        depletion=depletion,
    )
    print(f"  → {path}", file=sys.stderr)

    if len(snapshots) > 1:
        path = plot_cashflow(snapshots, args.output, name=args.name)
        print(f"  → {path}", file=sys.stderr)
    else:
        print("  キャッシュフロー: 年次結果なし（スキップ）", file=sys.stderr)

    print("完了", file=sys.stderr)


if __name__ == "__main__":
    main()
