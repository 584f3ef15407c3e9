"""Per-vehicle monthly steps and the withdrawal waterfall."""

import dataclasses
from dataclasses import dataclass, field

from nisa_sim_jp.dates import YearMonth, is_active

NISA_LIFETIME_LIMIT = 18_000_000  # 新NISA 生涯投資枠（円）
IDECO_AGE_LIMIT = 60  # iDeCo: 60歳未満は拠出のみ、60歳以上で取り崩し可


@dataclass(frozen=True)
class PolicyState:
    """Live state of one insurance policy inside a run."""

    name: str
    recorded: YearMonth
    monthly_premium: float
    principal: float
    cash_value: float
    monthly_rate: float
    payment_end_age: int


@dataclass(frozen=True)
class PersonState:
    """Live account balances of one person, owned by the projection loop."""

    nisa_principal: float = 0.0
    nisa_assets: float = 0.0
    ideco_principal: float = 0.0
    ideco_assets: float = 0.0
    policies: tuple[PolicyState, ...] = field(default_factory=tuple)

    @property
    def insurance_assets(self) -> float:
        return sum(p.cash_value for p in self.policies)

    @property
    def insurance_principal(self) -> float:
        return sum(p.principal for p in self.policies)

    @property
    def total_assets(self) -> float:
        return self.nisa_assets + self.ideco_assets + self.insurance_assets


def step_nisa(
    principal: float,
    assets: float,
    contribution: float,
    monthly_rate: float,
    limit: float = NISA_LIFETIME_LIMIT,
) -> tuple[float, float]:
    """Grow NISA assets one month, then add contribution truncated at the lifetime limit.

    Returns (principal, assets).
    """
    assets *= 1 + monthly_rate
    if principal < limit:
        actual = min(max(0.0, contribution), limit - principal)
        if actual > 0:
            principal += actual
            assets += actual
    return principal, assets


def add_lump_sum(
    principal: float, assets: float, amount: float, limit: float = NISA_LIFETIME_LIMIT,
) -> tuple[float, float, float]:
    """Add a lump sum to NISA without growth. Returns (principal, assets, actual_amount)."""
    actual = min(max(0.0, amount), max(0.0, limit - principal))
    return principal + actual, assets + actual, actual


def step_ideco(
    principal: float,
    assets: float,
    contribution: float,
    monthly_rate: float,
) -> tuple[float, float]:
    """Grow iDeCo assets one month, then add the full contribution. Returns (principal, assets)."""
    contribution = max(0.0, contribution)
    return principal + contribution, assets * (1 + monthly_rate) + contribution


def step_insurance(
    policies: tuple[PolicyState, ...],
    age: int,
    year: int,
    month: int,
) -> tuple[tuple[PolicyState, ...], float]:
    """Grow each policy; pay premium while age < payment_end_age and after the recorded month.

    Returns (policies, premiums_paid).
    """
    paid = 0.0
    updated = []
    for p in policies:
        cash_value = p.cash_value * (1 + p.monthly_rate)
        principal = p.principal
        if age < p.payment_end_age and is_active(p.recorded, year, month):
            premium = max(0.0, p.monthly_premium)
            cash_value += premium
            principal += premium
            paid += premium
        updated.append(dataclasses.replace(p, cash_value=cash_value, principal=principal))
    return tuple(updated), paid


def draw_proportional(
    principal: float, assets: float, need: float,
) -> tuple[float, float, float]:
    """Draw from one vehicle, rescaling principal by the retained fraction.

    Returns (principal, assets, remaining_need).
    """
    if need <= 0 or assets <= 0:
        return principal, assets, max(0.0, need)
    if assets >= need:
        remaining_assets = assets - need
        return principal * (remaining_assets / assets), remaining_assets, 0.0
    return 0.0, 0.0, need - assets


def draw_insurance(
    policies: tuple[PolicyState, ...], need: float,
) -> tuple[tuple[PolicyState, ...], float]:
    """Liquidate all policies by the same retained fraction. Returns (policies, remaining_need)."""
    total = sum(p.cash_value for p in policies)
    if need <= 0 or total <= 0:
        return policies, max(0.0, need)
    if total >= need:
        factor = (total - need) / total
        remaining = 0.0
    else:
        factor = 0.0
        remaining = need - total
    scaled = tuple(
        dataclasses.replace(p, cash_value=p.cash_value * factor, principal=p.principal * factor)
        for p in policies
    )
    return scaled, remaining


def withdraw(state: PersonState, need: float, age: int) -> tuple[PersonState, float]:
    """Withdrawal waterfall: insurance → iDeCo (age >= 60) → NISA.

    Returns (state, shortfall). A shortfall leaves the drained vehicles at zero.
    """
    policies, need = draw_insurance(state.policies, need)

    ideco_principal, ideco_assets = state.ideco_principal, state.ideco_assets
    if age >= IDECO_AGE_LIMIT:
        ideco_principal, ideco_assets, need = draw_proportional(ideco_principal, ideco_assets, need)

    nisa_principal, nisa_assets, need = draw_proportional(
        state.nisa_principal, state.nisa_assets, need,
    )

    state = dataclasses.replace(
        state,
        nisa_principal=nisa_principal,
        nisa_assets=nisa_assets,
        ideco_principal=ideco_principal,
        ideco_assets=ideco_assets,
        policies=policies,
    )
    return state, need
