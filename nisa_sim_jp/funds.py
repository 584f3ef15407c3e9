"""Fund catalog and portfolio return rates."""

from typing import Iterable, Mapping

from nisa_sim_jp.params import Fund, PortfolioAllocation

# 楽天証券 主要銘柄（想定リターンは簡易固定値）
FUND_PRESETS: dict[str, Fund] = {
    f.fund_id: f
    for f in (
        Fund("emaxis-all-country", "eMAXIS Slim 全世界株式 (オール・カントリー)", 6.0, "Medium"),
        Fund("emaxis-sp500", "eMAXIS Slim 米国株式 (S&P500)", 7.5, "High"),
        Fund("rakuten-vti", "楽天・全米株式インデックス・ファンド (楽天VTI)", 7.2, "High"),
        Fund("rakuten-plus", "楽天・プラス (バランス型)", 3.5, "Low"),
        Fund("rakuten-nasdaq", "楽天・NASDAQ-100", 9.0, "High"),
        Fund("conservative", "国内債券・保守的運用", 1.5, "Low"),
    )
}

# 変額保険プリセット: 商品名 → 想定年率%
INSURANCE_PRESETS: dict[str, float] = {
    "ソニー生命 変額・世界株式型 (GQ)": 7.0,
    "ソニー生命 変額・世界コア株式 (GI)": 5.0,
    "ソニー生命 変額・債券型": 2.0,
    "その他・変額保険 (積極運用)": 6.0,
}


def weighted_return_rate(
    portfolio: Iterable[PortfolioAllocation],
    funds: Mapping[str, Fund] = FUND_PRESETS,
) -> float:
    """Annual return rate (%) weighted by allocation percentage.

    Weights are not normalised: a portfolio summing to 80% counts only 80% of
    the return. Unknown fund ids and negative weights contribute nothing.
    """
    total = 0.0
    for item in portfolio:
        fund = funds.get(item.fund_id)
        rate = fund.rate if fund is not None else 0.0
        total += rate * max(0.0, item.percentage) / 100
    return total


def monthly_rate(annual_rate_pct: float) -> float:
    """Annual % → simple monthly rate (年率/12)."""
    return annual_rate_pct / 100 / 12


def allocation_total(portfolio: Iterable[PortfolioAllocation]) -> float:
    return sum(item.percentage for item in portfolio)
