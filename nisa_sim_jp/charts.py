"""Chart generation for household projection results."""

import platform
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from nisa_sim_jp.snapshot import YearSnapshot

# (snapshot field prefix, label, principal color, profit color)
VEHICLES = [
    ("nisa", "NISA", "#1f77b4", "#aec7e8"),
    ("ideco", "iDeCo", "#2ca02c", "#98df8a"),
    ("ins", "保険", "#ff7f0e", "#ffbb78"),
]

COLOR_GIFT = "#9467bd"
COLOR_INCOME = "#1f77b4"
COLOR_DISPOSABLE = "#d62728"


def _setup_japanese_font():
    """Configure matplotlib to use a Japanese font."""
    system = platform.system()
    if system == "Darwin":
        font_family = "Hiragino Sans"
    elif system == "Linux":
        font_family = "Noto Sans CJK JP"
    else:
        font_family = "sans-serif"
    plt.rcParams["font.family"] = font_family
    plt.rcParams["axes.unicode_minus"] = False


def _format_oku_axis(ax: plt.Axes):
    """Add 億円 labels on Y axis (secondary tick labels)."""
    ax.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"{x:,.0f}")
    )
    ax_right = ax.secondary_yaxis("right")
    ax_right.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"{x / 10000:.1f}億" if x != 0 else "0")
    )
    ax_right.set_ylabel("")


def _save(fig, output_path: Path, stem: str, name: str) -> Path:
    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"{stem}{suffix}.png"
    fig.tight_layout()
    fig.savefig(filepath, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return filepath


def plot_assets(
    snapshots: list[YearSnapshot],
    output_path: Path,
    name: str = "",
    person_names: tuple[str, str] = ("夫", "妻"),
    depletion: YearSnapshot | None = None,
) -> Path:
    """Stacked principal/profit per spouse and vehicle against the husband's age.

    Args:
        snapshots: simulate_household() result.
        output_path: directory to save the PNG.
        name: optional suffix for the output filename (e.g. "a" → "assets-a.png").
        person_names: legend labels for (husband, wife).
        depletion: snapshot marked as the depletion year, if any.

    Returns:
        Path to the generated PNG file.
    """
    _setup_japanese_font()

    if not snapshots:
        raise ValueError("No snapshots for asset chart")

    fig, ax = plt.subplots(figsize=(14, 8))
    ages = [s.husband_age for s in snapshots]

    series = []
    labels = []
    colors = []
    for attr, person_label in (("husband", person_names[0]), ("wife", person_names[1])):
        for prefix, vehicle, principal_color, profit_color in VEHICLES:
            for kind, color in (("principal", principal_color), ("profit", profit_color)):
                values = [getattr(getattr(s, attr), f"{prefix}_{kind}") / 10_000 for s in snapshots]
                if not any(values):
                    continue
                series.append(values)
                labels.append(f"{person_label} {vehicle}{'元本' if kind == 'principal' else '運用益'}")
                colors.append(color)

    if series:
        ax.stackplot(ages, *series, labels=labels, colors=colors, alpha=0.8,
                     edgecolor="white", linewidth=0.3)
    gifts = [s.cumulative_gifts / 10_000 for s in snapshots]
    if any(gifts):
        ax.plot(ages, gifts, color=COLOR_GIFT, linewidth=2, linestyle="--", label="贈与累計")

    if depletion is not None:
        ax.axvline(depletion.husband_age, color=COLOR_DISPOSABLE, linewidth=2, linestyle=":")
        ax.annotate(
            f"{depletion.calendar_year}年 資産枯渇",
            xy=(depletion.husband_age, ax.get_ylim()[1] * 0.85),
            fontsize=11, fontweight="bold", color=COLOR_DISPOSABLE,
            ha="right",
            bbox=dict(boxstyle="round,pad=0.3", fc="white", ec=COLOR_DISPOSABLE, alpha=0.9),
        )

    ax.set_xlabel("夫の年齢")
    ax.set_ylabel("資産残高（万円）")
    ax.set_title("資産推移（元本・運用益の内訳）")
    ax.legend(loc="upper left", fontsize=9, ncol=2)
    ax.grid(True, alpha=0.3)
    _format_oku_axis(ax)

    return _save(fig, output_path, "assets", name)


def plot_cashflow(
    snapshots: list[YearSnapshot],
    output_path: Path,
    name: str = "",
) -> Path:
    """Stacked annual outflows against take-home income and disposable income."""
    _setup_japanese_font()

    # index 0 is the starting state and carries no flows
    flows = snapshots[1:]
    if not flows:
        raise ValueError("No yearly results for cashflow chart")

    fig, ax = plt.subplots(figsize=(14, 8))
    ages = [s.husband_age for s in flows]

    def col(field: str) -> list[float]:
        return [getattr(s.cashflow, field) / 10_000 for s in flows]

    ax.stackplot(
        ages,
        col("housing_cost"),
        col("fixed_cost"),
        col("contributions"),
        col("furusato"),
        labels=["住居費", "固定費", "積立・保険料", "ふるさと納税"],
        colors=["#8da0cb", "#66c2a5", "#fc8d62", "#e78ac3"],
        alpha=0.75,
    )
    income = [
        (s.cashflow.take_home + s.cashflow.received_gift) / 10_000 for s in flows
    ]
    ax.plot(ages, income, color=COLOR_INCOME, linewidth=2, label="手取り+年金+受贈")
    ax.plot(ages, col("disposable"), color=COLOR_DISPOSABLE, linewidth=1.8,
            linestyle="--", label="可処分")
    ax.plot(ages, col("tax_and_social"), color="#7f7f7f", linewidth=1.2,
            linestyle=":", label="税・社会保険料")

    ax.set_xlabel("夫の年齢")
    ax.set_ylabel("年間キャッシュフロー（万円）")
    ax.set_title("キャッシュフロー積み上げ（年次）")
    ax.axhline(0, color="black", linewidth=2.0, linestyle="-", zorder=5)
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper left", fontsize=9)

    return _save(fig, output_path, "cashflow", name)
