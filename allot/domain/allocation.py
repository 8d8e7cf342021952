"""Pure functions for distributing money across categories.

This module contains the proration core shared by income allocation and
category rebalancing:
- No I/O operations
- No side effects
- Exact decimal arithmetic only

The last category in order always receives the remainder of the pool, so
the shares add up to the pool to the cent.
"""

from collections.abc import Sequence
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal

from allot.domain.models import RATIO_PLACES, ZERO, BudgetCategory, Money, to_money

_RATIO_QUANTUM = Decimal(1).scaleb(-RATIO_PLACES)


def calculate_share(pool: Money, percentage: int, denominator: int) -> Money:
    """Calculate one category's share of a pool.

    Args:
        pool: Amount being split.
        percentage: The category's percentage weight.
        denominator: Sum of all weights being prorated against.

    Returns:
        pool * percentage / denominator, with the ratio rounded half-up to
        six places and the share rounded half-up to cents.
    """
    if pool <= 0 or percentage <= 0 or denominator <= 0:
        return ZERO
    ratio = (Decimal(percentage) / Decimal(denominator)).quantize(_RATIO_QUANTUM, rounding=ROUND_HALF_UP)
    return to_money(pool * ratio)


def prorate(pool: Money, percentages: Sequence[int]) -> list[Money]:
    """Split a pool proportionally to percentage weights.

    Every entry except the last gets its rounded share, capped at what is
    still undistributed; the last entry gets whatever is left so that
    sum(result) == pool exactly and no share is negative.

    Args:
        pool: Amount to split (non-positive pools yield zero shares).
        percentages: Weights in iteration order.

    Returns:
        List of shares, one per weight, in the same order.
    """
    if not percentages:
        return []

    total = sum(percentages)
    pool = to_money(pool)
    if pool <= 0 or total <= 0:
        return [ZERO for _ in percentages]

    shares: list[Money] = []
    remainder = pool
    last = len(percentages) - 1
    for index, percentage in enumerate(percentages):
        if index == last:
            shares.append(remainder)
        else:
            # Half-up rounding of tiny pools can overshoot what is left
            share = min(calculate_share(pool, percentage, total), remainder)
            remainder = to_money(remainder - share)
            shares.append(share)
    return shares


def reallocate(categories: Sequence[BudgetCategory], pool: Money) -> tuple[BudgetCategory, ...]:
    """Re-derive every category's allocation from a pool.

    Prior spend progress is discarded: remaining is reset to allocated.

    Args:
        categories: Categories in order.
        pool: Available-for-allocation amount.

    Returns:
        New tuple of categories with fresh allocations.
    """
    shares = prorate(pool, [c.percentage for c in categories])
    return tuple(
        replace(category, allocated_amount=share, remaining_amount=share)
        for category, share in zip(categories, shares)
    )


def distribute_increment(categories: Sequence[BudgetCategory], amount: Money) -> tuple[BudgetCategory, ...]:
    """Add a new amount's shares on top of existing allocations.

    Spend history is preserved: both allocated and remaining grow by the
    category's share.

    Args:
        categories: Categories in order.
        amount: Newly received amount.

    Returns:
        New tuple of categories (the input unchanged if nothing to add).
    """
    if not categories or amount <= 0:
        return tuple(categories)

    shares = prorate(amount, [c.percentage for c in categories])
    return tuple(
        replace(
            category,
            allocated_amount=to_money(category.allocated_amount + share),
            remaining_amount=to_money(category.remaining_amount + share),
        )
        for category, share in zip(categories, shares)
    )
