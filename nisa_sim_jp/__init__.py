"""Household NISA / iDeCo / insurance asset projection package."""

from nisa_sim_jp.params import (
    Household,
    PersonProfile,
    IdecoProfile,
    InsurancePolicy,
    FamilySettings,
    HousingLoan,
    FixedCost,
    Child,
    ContributionPeriod,
    IncomePeriod,
    GiftReceivingPeriod,
    BonusContribution,
    PortfolioAllocation,
    Fund,
)
from nisa_sim_jp.funds import FUND_PRESETS, INSURANCE_PRESETS, weighted_return_rate
from nisa_sim_jp.accounts import NISA_LIFETIME_LIMIT, IDECO_AGE_LIMIT
from nisa_sim_jp.simulation import simulate_household, MAX_YEARS, TERMINAL_AGE
from nisa_sim_jp.snapshot import YearSnapshot, PersonSnapshot, CashFlow, find_peak, find_depletion
from nisa_sim_jp.tax import calc_annual_tax, TaxResult
from nisa_sim_jp.config import ConfigError, load_config, build_household, default_household

__all__ = [
    "Household",
    "PersonProfile",
    "IdecoProfile",
    "InsurancePolicy",
    "FamilySettings",
    "HousingLoan",
    "FixedCost",
    "Child",
    "ContributionPeriod",
    "IncomePeriod",
    "GiftReceivingPeriod",
    "BonusContribution",
    "PortfolioAllocation",
    "Fund",
    "FUND_PRESETS",
    "INSURANCE_PRESETS",
    "weighted_return_rate",
    "NISA_LIFETIME_LIMIT",
    "IDECO_AGE_LIMIT",
    "simulate_household",
    "MAX_YEARS",
    "TERMINAL_AGE",
    "YearSnapshot",
    "PersonSnapshot",
    "CashFlow",
    "find_peak",
    "find_depletion",
    "calc_annual_tax",
    "TaxResult",
    "ConfigError",
    "load_config",
    "build_household",
    "default_household",
]
