# foodshare/services/stats.py
from datetime import datetime
from io import BytesIO
from typing import Iterable, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from foodshare.schemas import Category, Donation, DonationStats, DonationStatus, ImpactStats, MonthlyStat
from foodshare.services.units import people_fed, to_kg

TREND_MONTHS = 6

# environmental equivalents per kg of food kept out of landfill
CO2_KG_PER_KG = 2.5
WATER_L_PER_KG = 1000.0
LAND_M2_PER_KG = 0.1
ENERGY_KWH_PER_KG = 3.0


def trailing_months(now: datetime, count: int = TREND_MONTHS) -> List[Tuple[int, int]]:
    """(year, month) pairs for the ``count`` months ending with ``now``'s month, oldest first."""
    months = []
    y, m = now.year, now.month
    for _ in range(count):
        months.append((y, m))
        m -= 1
        if m == 0:
            y, m = y - 1, 12
    return list(reversed(months))


def monthly_trend(donations: Iterable[Donation], now: datetime) -> List[MonthlyStat]:
    buckets = {key: [0, 0.0, 0.0] for key in trailing_months(now)}
    for d in donations:
        key = (d.created_at.year, d.created_at.month)
        if key not in buckets:
            continue
        b = buckets[key]
        b[0] += 1
        b[1] += to_kg(d.quantity, d.unit)
        b[2] += people_fed(d.quantity, d.serving_size)
    return [
        MonthlyStat(
            month=datetime(y, m, 1).strftime("%b %Y"),
            donations=count,
            kg_saved=round(kg, 2),
            people_fed=round(fed),
        )
        for (y, m), (count, kg, fed) in buckets.items()
    ]


def compute_stats(donations: List[Donation], now: datetime) -> DonationStats:
    """
    Aggregate a full donation set. Deterministic: the same records and the
    same ``now`` always give the same result.
    """
    total_kg = sum(to_kg(d.quantity, d.unit) for d in donations)
    breakdown = {c.value: 0 for c in Category}
    for d in donations:
        breakdown[d.category.value] += 1

    return DonationStats(
        total_donations=len(donations),
        total_kg_saved=round(total_kg, 2),
        total_people_fed=round(sum(people_fed(d.quantity, d.serving_size) for d in donations)),
        active_donations=sum(
            1 for d in donations if d.status in (DonationStatus.AVAILABLE, DonationStatus.CLAIMED)
        ),
        completed_donations=sum(1 for d in donations if d.status == DonationStatus.COMPLETED),
        monthly_stats=monthly_trend(donations, now),
        category_breakdown=breakdown,
        impact=ImpactStats(
            co2_kg=round(total_kg * CO2_KG_PER_KG, 2),
            water_litres=round(total_kg * WATER_L_PER_KG, 2),
            land_m2=round(total_kg * LAND_M2_PER_KG, 2),
            energy_kwh=round(total_kg * ENERGY_KWH_PER_KG, 2),
        ),
    )


def plot_monthly_png(stats: DonationStats) -> BytesIO:
    """
    Bar chart of kg saved per month with donation counts as a line.
    Returns a BytesIO PNG buffer.
    """
    labels = [m.month for m in stats.monthly_stats]
    kg = [m.kg_saved for m in stats.monthly_stats]
    counts = [m.donations for m in stats.monthly_stats]

    fig, ax = plt.subplots()
    ax.bar(labels, kg, color="#10B981", label="kg saved")
    ax.set_ylabel("kg saved")
    ax2 = ax.twinx()
    ax2.plot(labels, counts, color="#3B82F6", marker="o", label="donations")
    ax2.set_ylabel("donations")
    ax.tick_params(axis="x", rotation=30)
    ax.set_title("Monthly Donations")
    fig.tight_layout()

    buf = BytesIO()
    fig.savefig(buf, format="png")
    plt.close(fig)
    buf.seek(0)
    return buf
