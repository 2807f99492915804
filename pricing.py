"""
Pricing engine for Bundle Builder Discounts
Resolves the best volume tier for a cart and builds the discount lines
"""
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from models import (
    BASELINE_TIER, BundleConfig, Cart, CartLine, Discount, DiscountCandidate,
    DiscountType, FixedAmountValue, FunctionResult, PercentageValue, Target, Tier,
)
from utils import format_currency, format_number, group_by, round_money
from validators import parse_bundle_config, parse_cart

logger = logging.getLogger(__name__)


def is_line_eligible(line: CartLine, config: BundleConfig) -> bool:
    """
    Check whether a cart line takes part in the bundle

    Subscription lines never qualify. With a product list configured the
    line's product must be listed, otherwise its variant must belong to one
    of the configured collections.
    """
    if line.has_selling_plan or line.variant is None:
        return False
    if config.products:
        return line.variant.product_id in config.products
    return line.variant.in_any_collection


def filter_eligible_lines(lines: Iterable[CartLine], config: BundleConfig) -> List[CartLine]:
    return [line for line in lines if is_line_eligible(line, config)]


def expand_units(lines: Iterable[CartLine]) -> List[CartLine]:
    """
    Split every line into quantity-1 copies

    Args:
        lines: Eligible cart lines

    Returns:
        One line per unit, each keeping the original line id, cost and variant
    """
    return [replace(line, quantity=1) for line in lines for _ in range(line.quantity)]


def regroup_units(unit_lines: Iterable[CartLine]) -> List[CartLine]:
    """Merge unit lines back into one line per original line id"""
    return [
        replace(group[0], quantity=sum(line.quantity for line in group))
        for group in group_by(unit_lines, lambda line: line.id).values()
    ]


def order_tiers(tiers: Iterable[Tier]) -> List[Tier]:
    """Sort tiers by quantity, then by amount from most to least generous"""
    by_quantity = sorted(tiers, key=lambda tier: tier.quantity)
    return sorted(by_quantity, key=lambda tier: tier.amount, reverse=True)


def resolve_tier(unit_count: int, tiers: Iterable[Tier]) -> Optional[Tier]:
    """
    Find the tier with the highest quantity threshold met by unit_count

    When several tiers share that threshold the one with the highest amount
    wins.

    Args:
        unit_count: Total number of eligible units in the cart
        tiers: Configured tiers, in any order

    Returns:
        The applied Tier, or None when no configured tier is reached
    """
    ordered = order_tiers(tiers)
    applied_quantity = max(
        tier.quantity for tier in [BASELINE_TIER] + ordered if tier.quantity <= unit_count
    )

    for tier in ordered:
        if tier.quantity == applied_quantity:
            return tier
    return None


def combine_targets(targets: Iterable[Target]) -> List[Target]:
    """
    Merge targets pointing at the same variant, summing their quantities

    Missing quantities count as 0. Output keeps first-occurrence order.
    """
    totals: Dict[str, int] = {}
    for target in targets:
        totals[target.variant_id] = totals.get(target.variant_id, 0) + (target.quantity or 0)
    return [Target(variant_id, quantity) for variant_id, quantity in totals.items()]


def value_discount(tier: Tier, unit_lines: Sequence[CartLine], config: BundleConfig) -> DiscountCandidate:
    """
    Turn the applied tier into a discount for the expanded cart units

    PERCENTAGE and FIXED_AMOUNT use the tier amount directly. For
    FIXED_BUNDLE_PRICE the tier amount is the target price of the bundle and
    the discount is whatever brings the current total down to it; the result
    may be negative when the cart already costs less.
    """
    if config.discount_type == DiscountType.PERCENTAGE:
        value = PercentageValue(tier.amount)
    elif config.discount_type == DiscountType.FIXED_AMOUNT:
        value = FixedAmountValue(tier.amount)
    elif config.discount_type == DiscountType.FIXED_BUNDLE_PRICE:
        total_price = sum((line.cost * line.quantity for line in unit_lines), Decimal("0"))
        value = FixedAmountValue(round_money(total_price - tier.amount), two_decimals=True)
    else:
        raise ValueError(f"Unsupported discount type: {config.discount_type}")

    return DiscountCandidate(
        message=tier.title or config.title,
        value=value,
        lines=tuple(regroup_units(unit_lines)),
    )


def _candidate_discount_amount(candidate: DiscountCandidate) -> Decimal:
    total = Decimal("0")
    for line in candidate.lines:
        if isinstance(candidate.value, PercentageValue):
            total += line.cost * line.quantity * candidate.value.value / 100
        elif isinstance(candidate.value, FixedAmountValue):
            total += candidate.value.amount
        else:
            raise TypeError(f"Unknown discount value: {candidate.value!r}")
    return total


def combine_discounts(candidates: Sequence[DiscountCandidate], fallback_title: str) -> List[Discount]:
    """
    Collapse computed discounts into at most one discount line

    A single candidate keeps its message and value. Several candidates are
    merged into one fixed amount titled with fallback_title.

    Args:
        candidates: Discounts computed for the cart
        fallback_title: Message for a merged discount

    Returns:
        List with zero or one Discount
    """
    if not candidates:
        return []

    if len(candidates) == 1:
        candidate = candidates[0]
        return [Discount(
            message=candidate.message,
            value=candidate.value,
            targets=tuple(combine_targets(candidate.targets())),
        )]

    total = sum((_candidate_discount_amount(candidate) for candidate in candidates), Decimal("0"))
    targets = combine_targets(target for candidate in candidates for target in candidate.targets())

    return [Discount(
        message=fallback_title,
        value=FixedAmountValue(round_money(total), two_decimals=True),
        targets=tuple(targets),
    )]


class BundlePricingEngine:
    """Evaluate one bundle configuration against carts"""

    def __init__(self, config: BundleConfig, allow_negative_discount: bool = True):
        self.config = config
        self.allow_negative_discount = allow_negative_discount

    def calculate_best_discount(self, lines: Sequence[CartLine]) -> List[DiscountCandidate]:
        """
        Find the best tier for the eligible lines and value it

        Args:
            lines: Eligible cart lines

        Returns:
            Zero or one discount candidates
        """
        unit_lines = expand_units(lines)
        tier = resolve_tier(len(unit_lines), self.config.tiers)
        if tier is None:
            logger.debug(f"No tier reached with {len(unit_lines)} eligible units")
            return []

        candidate = value_discount(tier, unit_lines, self.config)

        if isinstance(candidate.value, FixedAmountValue) and candidate.value.amount < 0:
            if not self.allow_negative_discount:
                logger.warning(
                    f"Bundle price {tier.amount} for {tier.quantity} items exceeds the cart total; "
                    f"discount rejected"
                )
                return []
            logger.warning(
                f"Bundle price {tier.amount} for {tier.quantity} items exceeds the cart total; "
                f"emitting negative discount {candidate.value.amount}"
            )

        return [candidate]

    def evaluate(self, cart: Cart) -> FunctionResult:
        """
        Compute the discount result for a cart

        Args:
            cart: Parsed cart

        Returns:
            FunctionResult, the canonical empty result when nothing applies
        """
        if cart.is_business_purchase:
            logger.debug("Business purchaser, bundle discounts do not apply")
            return FunctionResult.empty()

        eligible_lines = filter_eligible_lines(cart.lines, self.config)
        candidates = self.calculate_best_discount(eligible_lines)
        return FunctionResult.of(combine_discounts(candidates, self.config.title))

    def get_tier_summary(self) -> str:
        """
        Describe the configured tiers for merchants

        Returns:
            Formatted string listing every tier, or empty if none
        """
        if not self.config.tiers:
            return ""

        lines = [f"{self.config.title or 'Bundle'} ({self.config.discount_type.value})"]
        for tier in sorted(self.config.tiers, key=lambda t: (t.quantity, -t.amount)):
            if self.config.discount_type == DiscountType.PERCENTAGE:
                offer = f"{format_number(tier.amount)}% off"
            elif self.config.discount_type == DiscountType.FIXED_AMOUNT:
                offer = f"{format_currency(tier.amount)} off"
            else:
                offer = f"bundle price {format_currency(tier.amount)}"
            label = f" ({tier.title})" if tier.title else ""
            lines.append(f"• {tier.quantity}+ items: {offer}{label}")

        return "\n".join(lines)


def run(payload: Any, allow_negative_discount: bool = True, default_title: str = "") -> FunctionResult:
    """
    Evaluate a platform input document

    Args:
        payload: Dict with 'cart' and 'discountNode.metafield.value'
        allow_negative_discount: Emit negative bundle-price discounts
        default_title: Message used when the configuration has no title

    Returns:
        FunctionResult (never raises)
    """
    if not isinstance(payload, dict):
        logger.warning(f"Evaluation input must be an object, got {type(payload).__name__}")
        return FunctionResult.empty()

    node = payload.get("discountNode")
    metafield = node.get("metafield") if isinstance(node, dict) else None
    raw_config = metafield.get("value") if isinstance(metafield, dict) else None
    config = parse_bundle_config(raw_config, default_title=default_title)

    try:
        cart = parse_cart(payload.get("cart"))
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Ignoring malformed cart: {e}")
        return FunctionResult.empty()

    engine = BundlePricingEngine(config, allow_negative_discount=allow_negative_discount)
    return engine.evaluate(cart)
