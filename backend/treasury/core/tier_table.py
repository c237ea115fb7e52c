"""Tier Table - ordered revenue bands mapping monthly revenue to an owner/agent split.

Invariants:
    - Bands are half-open [min, max): the first starts at 0, each max equals
      the next min, the last is unbounded (max is None)
    - owner_pct + agent_pct == 100 for every tier
    - resolve_tier is total over [0, inf) and pure

Design Decisions:
    - Half-open bands over inclusive integer bounds: a monthly total of
      2999.50 must still land in exactly one tier
    - Table validated once at construction, resolve stays a plain scan
"""

from dataclasses import dataclass
from decimal import Decimal

from treasury.core.errors import ErrorContext, InvalidAmountError, InvalidTierTableError


@dataclass(frozen=True)
class Tier:
    """One revenue band. `max` is exclusive, None means unbounded."""
    min: Decimal
    max: Decimal | None
    owner_pct: int
    agent_pct: int
    label: str

    def contains(self, monthly_revenue: Decimal) -> bool:
        if monthly_revenue < self.min:
            return False
        return self.max is None or monthly_revenue < self.max


def validate_tier_table(tiers: tuple[Tier, ...]) -> tuple[Tier, ...]:
    """Check that `tiers` partitions [0, inf). Returns the table unchanged."""
    if not tiers:
        raise InvalidTierTableError("table is empty")
    if tiers[0].min != 0:
        raise InvalidTierTableError(f"first tier starts at {tiers[0].min}, not 0")

    for tier in tiers:
        if tier.owner_pct + tier.agent_pct != 100:
            raise InvalidTierTableError(
                f"{tier.label}: {tier.owner_pct} + {tier.agent_pct} != 100",
            )
        if not (0 <= tier.owner_pct <= 100 and 0 <= tier.agent_pct <= 100):
            raise InvalidTierTableError(f"{tier.label}: percentage out of range")
        if tier.max is not None and tier.max <= tier.min:
            raise InvalidTierTableError(f"{tier.label}: empty band")

    for current, following in zip(tiers, tiers[1:]):
        if current.max is None:
            raise InvalidTierTableError(f"{current.label}: unbounded tier is not last")
        if current.max != following.min:
            raise InvalidTierTableError(
                f"{current.label} ends at {current.max} but "
                f"{following.label} starts at {following.min}",
            )

    if tiers[-1].max is not None:
        raise InvalidTierTableError(f"{tiers[-1].label}: last tier must be unbounded")
    return tiers


TIER_TABLE: tuple[Tier, ...] = validate_tier_table((
    Tier(Decimal("0"), Decimal("3000"), 60, 40, "Starter"),
    Tier(Decimal("3000"), Decimal("7000"), 65, 35, "Growing"),
    Tier(Decimal("7000"), Decimal("10000"), 70, 30, "Scaling"),
    Tier(Decimal("10000"), None, 70, 30, "10K Club"),
))


def resolve_tier(
    monthly_revenue: Decimal, tiers: tuple[Tier, ...] = TIER_TABLE,
) -> Tier:
    """Tier whose band contains `monthly_revenue`. Pure, O(len(tiers))."""
    if isinstance(monthly_revenue, int) and not isinstance(monthly_revenue, bool):
        monthly_revenue = Decimal(monthly_revenue)
    if (
        not isinstance(monthly_revenue, Decimal)
        or not monthly_revenue.is_finite()
        or monthly_revenue < 0
    ):
        raise InvalidAmountError(
            monthly_revenue, "monthly revenue must be a finite value >= 0",
            ErrorContext(operation="resolve_tier", amount=repr(monthly_revenue)),
        )
    for tier in tiers:
        if tier.contains(monthly_revenue):
            return tier
    # Unreachable for a validated table
    raise InvalidTierTableError(f"no tier contains {monthly_revenue}")
