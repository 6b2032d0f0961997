"""Distribution waterfall engine.

Walks a distribution amount through ordered tiers (return of capital,
preferred return, GP catch-up, carry split) and allocates each tier among
participants by the tier's weights.

Key functions:
    run_waterfall: Main entry point
    validate_waterfall_inputs: Cross-record checks, run before any allocation
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Dict, List, Optional

from ..errors import AllocationMismatch, InvalidTierConfiguration, InvalidTierOrder
from ..schemas.config import EngineCFG, WaterfallCFG
from ..schemas.waterfall import (
    ParticipantSummary,
    TierResult,
    WaterfallInputs,
    WaterfallPerformanceMetrics,
    WaterfallResults,
    WaterfallTier,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")

# Tiers that fall back to ownership weights when ``percentage`` is empty
OWNERSHIP_WEIGHTED_TIERS = ("return_of_capital", "preferred_return")

# Summary buckets, one per tier type
BUCKETS = ("return_of_capital", "preferred_return", "catch_up", "carry_split")


# =============================================================================
# Validation
# =============================================================================

def validate_waterfall_inputs(
    inputs: WaterfallInputs,
    cfg: Optional[WaterfallCFG] = None,
) -> List[Dict[str, Decimal]]:
    """Validate participants and tiers before anything is allocated.

    Args:
        inputs: WaterfallInputs
        cfg: Waterfall settings (defaults to WaterfallCFG())

    Returns:
        Effective weights for each tier, in tier order, rescaled to sum to 1.0

    Raises:
        AllocationMismatch: If ownership or a tier's weights do not sum to 1.0,
            or a tier names an unknown participant
        InvalidTierOrder: If tier orders are not strictly increasing
        InvalidTierConfiguration: If a tier is missing a threshold or a
            catch-up tier cannot reach its target
    """
    cfg = cfg or WaterfallCFG()
    tolerance = cfg.sum_tolerance

    ownership = {p.id: p.ownership_percentage for p in inputs.participants}
    total_ownership = sum(ownership.values(), ZERO)
    if abs(total_ownership - ONE) > tolerance:
        raise AllocationMismatch(
            f"Participant ownership must sum to 1.0, got {total_ownership}"
        )

    for previous, tier in zip(inputs.tiers, inputs.tiers[1:]):
        if tier.order == previous.order:
            raise InvalidTierOrder(f"Duplicate tier order {tier.order}")
        if tier.order < previous.order:
            raise InvalidTierOrder(
                f"Tier orders must be strictly increasing: {previous.order} followed by {tier.order}"
            )

    participant_types = {p.id: p.type for p in inputs.participants}
    weights = []
    for tier in inputs.tiers:
        tier_weights = _tier_weights(tier, ownership)

        unknown = sorted(set(tier_weights) - set(ownership))
        if unknown:
            raise AllocationMismatch(
                f"Tier {tier.order} ({tier.type}) names unknown participants: {unknown}"
            )

        total = sum(tier_weights.values(), ZERO)
        if abs(total - ONE) > tolerance:
            raise AllocationMismatch(
                f"Tier {tier.order} ({tier.type}) percentages must sum to 1.0, got {total}"
            )
        if total != ONE and total > 0:
            # Rescale sums accepted within tolerance to exactly 1.0
            tier_weights = {pid: w / total for pid, w in tier_weights.items()}

        if tier.type in ("preferred_return", "catch_up") and tier.threshold is None:
            raise InvalidTierConfiguration(
                f"Tier {tier.order} ({tier.type}) requires a threshold"
            )

        if tier.type == "catch_up":
            target = tier.threshold
            gp_weight = _gp_weight(tier_weights, participant_types)
            if not ZERO < target < ONE:
                raise InvalidTierConfiguration(
                    f"Tier {tier.order} catch-up target must be between 0 and 1, got {target}"
                )
            if gp_weight <= target:
                raise InvalidTierConfiguration(
                    f"Tier {tier.order} catch-up gives GP participants {gp_weight}, "
                    f"which cannot reach the {target} target"
                )

        weights.append(tier_weights)
    return weights


def _tier_weights(tier: WaterfallTier, ownership: Dict[str, Decimal]) -> Dict[str, Decimal]:
    if tier.percentage:
        return dict(tier.percentage)
    if tier.type in OWNERSHIP_WEIGHTED_TIERS:
        return dict(ownership)
    raise InvalidTierConfiguration(
        f"Tier {tier.order} ({tier.type}) requires explicit percentages"
    )


def _gp_weight(weights: Dict[str, Decimal], participant_types: Dict[str, str]) -> Decimal:
    return sum(
        (w for pid, w in weights.items() if participant_types.get(pid) == "GP"),
        ZERO,
    )


# =============================================================================
# Allocation helpers
# =============================================================================

def _round_down(amount: Decimal, unit: Decimal) -> Decimal:
    """Round a non-negative amount down to a multiple of unit."""
    return (amount / unit).to_integral_value(rounding=ROUND_DOWN) * unit


def _allocate_capped(
    amount: Decimal,
    weights: Dict[str, Decimal],
    caps: Dict[str, Decimal],
    cfg: WaterfallCFG,
) -> Dict[str, Decimal]:
    """Split amount by weight, never giving a participant more than its cap.

    Under the default policy the share a capped participant cannot take stays
    unallocated and rolls to the next tier. With redistribute_unclaimed it is
    re-split among the participants still below their cap.
    """
    unit = cfg.rounding_unit
    allocations = {}
    for pid, weight in weights.items():
        share = _round_down(amount * weight, unit)
        allocations[pid] = min(share, _round_down(caps.get(pid, ZERO), unit))

    if not cfg.redistribute_unclaimed:
        return _clamp_total(allocations, weights, amount)

    # Each pass either fills a cap or spends the pool down to rounding dust
    for _ in range(len(weights) + 1):
        pool = amount - sum(allocations.values(), ZERO)
        open_ids = [
            pid for pid, weight in weights.items()
            if weight > 0 and allocations[pid] < _round_down(caps.get(pid, ZERO), unit)
        ]
        if pool < unit or not open_ids:
            break

        open_weight = sum((weights[pid] for pid in open_ids), ZERO)
        progress = ZERO
        for pid in open_ids:
            headroom = _round_down(caps.get(pid, ZERO), unit) - allocations[pid]
            extra = min(_round_down(pool * weights[pid] / open_weight, unit), headroom)
            allocations[pid] += extra
            progress += extra
        if progress == 0:
            break

    return _clamp_total(allocations, weights, amount)


def _split_exhaustive(
    amount: Decimal,
    weights: Dict[str, Decimal],
    cfg: WaterfallCFG,
) -> Dict[str, Decimal]:
    """Split amount by weight; the rounding residue goes to the largest weight.

    A negative residue (weights summing above 1.0) is taken back the same way.
    """
    allocations = {
        pid: _round_down(amount * weight, cfg.rounding_unit)
        for pid, weight in weights.items()
    }
    residue = amount - sum(allocations.values(), ZERO)
    if residue > 0:
        largest = max(weights, key=lambda pid: weights[pid])
        allocations[largest] += residue
    return _clamp_total(allocations, weights, amount)


def _clamp_total(
    allocations: Dict[str, Decimal],
    weights: Dict[str, Decimal],
    amount: Decimal,
) -> Dict[str, Decimal]:
    """Take any excess over amount back, largest weight first."""
    excess = sum(allocations.values(), ZERO) - amount
    for pid in sorted(weights, key=lambda pid: weights[pid], reverse=True):
        if excess <= 0:
            break
        cut = min(excess, allocations[pid])
        allocations[pid] -= cut
        excess -= cut
    return allocations


def _preferred_return_hurdle(
    unreturned: Decimal,
    tier: WaterfallTier,
    hold_period_years: Decimal,
) -> Decimal:
    rate = tier.threshold
    if tier.compounding == "simple":
        return unreturned * rate * hold_period_years
    return unreturned * ((ONE + rate) ** hold_period_years - ONE)


def _catch_up_pool(
    remaining: Decimal,
    target: Decimal,
    gp_weight: Decimal,
    profit: Decimal,
    gp_profit: Decimal,
) -> Decimal:
    """Amount that brings the GP to ``target`` of total profit.

    Solves G + g*X = c * (P + X) for X, where P and G are the profit and GP
    profit distributed so far in this run.
    """
    needed = (target * profit - gp_profit) / (gp_weight - target)
    if needed <= 0:
        return ZERO
    return min(remaining, needed)


# =============================================================================
# Main entry point
# =============================================================================

def run_waterfall(inputs: WaterfallInputs, cfg: Optional[EngineCFG] = None) -> WaterfallResults:
    """Distribute cash through the waterfall tiers.

    Args:
        inputs: WaterfallInputs
        cfg: Engine configuration (defaults to EngineCFG())

    Returns:
        WaterfallResults with per-participant totals, per-tier results and
        fund-level metrics. total_distributed + remaining_amount always equals
        distribution_amount.

    Raises:
        AllocationMismatch, InvalidTierOrder, InvalidTierConfiguration:
            From validate_waterfall_inputs, before anything is allocated

    Example:
        LP 80% / GP 20%, 100 contributed, 150 distributed through
        return of capital -> 8% pref to the LP -> 100% GP catch-up to 20%
        -> 80/20 split:
            LP: 80 capital + 6.40 pref + 33.60 carry = 120
            GP: 20 capital + 1.60 catch-up + 8.40 carry = 30
        The GP ends with 10 of the 50 profit (20%).
    """
    inputs = inputs.model_copy(deep=True)
    cfg = cfg or EngineCFG()
    wcfg = cfg.waterfall
    tier_weights = validate_waterfall_inputs(inputs, wcfg)

    participants = inputs.participants
    participant_types = {p.id: p.type for p in participants}
    contributed = {p.id: inputs.contributed_capital(p) for p in participants}
    unreturned = {p.id: max(ZERO, contributed[p.id] - p.capital_returned) for p in participants}
    pref_paid = {p.id: p.preferred_return_paid for p in participants}

    buckets: Dict[str, Dict[str, Decimal]] = {
        p.id: {name: ZERO for name in BUCKETS} for p in participants
    }
    remaining = inputs.distribution_amount
    tier_results: List[TierResult] = []

    for tier, weights in zip(inputs.tiers, tier_weights):
        if remaining <= 0:
            break
        available = remaining

        if tier.type == "return_of_capital":
            allocations = _allocate_capped(remaining, weights, unreturned, wcfg)
            for pid, amount in allocations.items():
                unreturned[pid] -= amount

        elif tier.type == "preferred_return":
            owed = {}
            for p in participants:
                hurdle = _preferred_return_hurdle(
                    contributed[p.id] - p.capital_returned, tier, inputs.hold_period_years
                )
                owed[p.id] = max(ZERO, hurdle - pref_paid[p.id])
            allocations = _allocate_capped(remaining, weights, owed, wcfg)
            for pid, amount in allocations.items():
                pref_paid[pid] += amount

        elif tier.type == "catch_up":
            profit = sum(
                (b["preferred_return"] + b["catch_up"] + b["carry_split"] for b in buckets.values()),
                ZERO,
            )
            gp_profit = sum(
                (b["preferred_return"] + b["catch_up"] + b["carry_split"]
                 for pid, b in buckets.items() if participant_types[pid] == "GP"),
                ZERO,
            )
            pool = _catch_up_pool(
                remaining, tier.threshold, _gp_weight(weights, participant_types), profit, gp_profit
            )
            allocations = _split_exhaustive(pool, weights, wcfg) if pool > 0 else {}

        else:
            allocations = _split_exhaustive(remaining, weights, wcfg)

        distributed = sum(allocations.values(), ZERO)
        remaining -= distributed
        for pid, amount in allocations.items():
            buckets[pid][tier.type] += amount

        logger.debug(
            "Tier %s (%s): available=%s distributed=%s remaining=%s",
            tier.order, tier.type, available, distributed, remaining,
        )
        tier_results.append(TierResult(
            order=tier.order,
            type=tier.type,
            amount_available=available,
            amount_distributed=distributed,
            amount_remaining=remaining,
            allocations={pid: amount for pid, amount in allocations.items() if amount != 0},
        ))

    if remaining > 0:
        logger.info("Waterfall left %s undistributed after %d tiers", remaining, len(tier_results))

    # ---- SUMMARY ----
    summaries = []
    for p in participants:
        bucket = buckets[p.id]
        total = sum(bucket.values(), ZERO)
        summaries.append(ParticipantSummary(
            participant_id=p.id,
            name=p.name,
            type=p.type,
            contributed_capital=contributed[p.id],
            return_of_capital=bucket["return_of_capital"],
            preferred_return=bucket["preferred_return"],
            catch_up=bucket["catch_up"],
            carry_split=bucket["carry_split"],
            total_allocation=total,
            effective_return=total / contributed[p.id] if contributed[p.id] > 0 else None,
        ))

    total_distributed = sum((s.total_allocation for s in summaries), ZERO)
    metrics = _performance_metrics(inputs, summaries, total_distributed)

    return WaterfallResults(
        total_distributed=total_distributed,
        remaining_amount=inputs.distribution_amount - total_distributed,
        participant_summary=tuple(summaries),
        performance_metrics=metrics,
        tier_results=tuple(tier_results),
    )


def _performance_metrics(
    inputs: WaterfallInputs,
    summaries: List[ParticipantSummary],
    total_distributed: Decimal,
) -> WaterfallPerformanceMetrics:
    def distributed_to(participant_type):
        return sum(
            (s.total_allocation for s in summaries if s.type == participant_type), ZERO
        )

    def profit(s):
        return s.total_allocation - s.return_of_capital

    total_profit = sum((profit(s) for s in summaries), ZERO)
    gp_profit = sum((profit(s) for s in summaries if s.type == "GP"), ZERO)

    return WaterfallPerformanceMetrics(
        total_profit=total_profit,
        lp_distribution=distributed_to("LP"),
        gp_distribution=distributed_to("GP"),
        management_distribution=distributed_to("Management"),
        gp_profit_share=gp_profit / total_profit if total_profit > 0 else None,
        dpi=total_distributed / inputs.total_contributions if inputs.total_contributions > 0 else None,
        unfunded_commitment=max(ZERO, inputs.total_committed_capital - inputs.total_contributions),
    )
