"""
Input validation for Bundle Builder Discounts
Validates and parses the bundle configuration payload and cart input
"""
import json
import logging
from collections import Counter
from typing import Any, List, Optional, Tuple

from models import BundleConfig, Cart, CartLine, DiscountType, Tier, Variant
from utils import to_decimal

logger = logging.getLogger(__name__)


def validate_discount_type(value: Any) -> Tuple[bool, Any]:
    """
    Validate discount type

    Args:
        value: Raw discount type from the configuration

    Returns:
        Tuple of (is_valid: bool, result: DiscountType or error_message: str)
    """
    try:
        return True, DiscountType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DiscountType)
        return False, f"Unknown discount type {value!r} (expected one of {allowed})"


def validate_tier_quantity(value: Any) -> Tuple[bool, Any]:
    """
    Validate tier quantity threshold (whole number, at least 1)

    Returns:
        Tuple of (is_valid: bool, result: int or error_message: str)
    """
    if isinstance(value, bool):
        return False, f"Tier quantity must be a whole number, got {value!r}"
    try:
        number = to_decimal(value)
    except ValueError:
        return False, f"Tier quantity must be a whole number, got {value!r}"

    if number != number.to_integral_value():
        return False, f"Tier quantity must be a whole number, got {value!r}"

    if number < 1:
        return False, f"Tier quantity must be at least 1, got {value!r}"

    return True, int(number)


def validate_tier_amount(value: Any) -> Tuple[bool, Any]:
    """
    Validate tier amount (non-negative number)

    Returns:
        Tuple of (is_valid: bool, result: Decimal or error_message: str)
    """
    try:
        amount = to_decimal(value)
    except ValueError:
        return False, f"Tier amount must be a number, got {value!r}"

    if amount < 0:
        return False, f"Tier amount must not be negative, got {value!r}"

    return True, amount


def validate_tier(raw: Any) -> Tuple[bool, Any]:
    """
    Validate a single tier entry

    Args:
        raw: Tier dict with quantity, amount and optional title

    Returns:
        Tuple of (is_valid: bool, result: Tier or error_message: str)
    """
    if not isinstance(raw, dict):
        return False, f"Tier must be an object, got {type(raw).__name__}"

    is_valid, quantity = validate_tier_quantity(raw.get("quantity"))
    if not is_valid:
        return False, quantity

    is_valid, amount = validate_tier_amount(raw.get("amount"))
    if not is_valid:
        return False, amount

    title = raw.get("title")
    if title is not None and not isinstance(title, str):
        return False, f"Tier title must be text, got {title!r}"

    return True, Tier(quantity=quantity, amount=amount, title=title or None)


def _load_payload(raw: Any) -> Tuple[bool, Any]:
    """Decode a JSON string payload; dicts pass through"""
    if raw is None:
        return False, "Configuration is missing"

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return False, f"Configuration is not valid JSON: {e}"

    if not isinstance(raw, dict):
        return False, f"Configuration must be an object, got {type(raw).__name__}"

    return True, raw


def _string_list(raw: Any, field_name: str) -> Tuple[bool, Any]:
    if raw is None:
        return True, ()
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        return False, f"'{field_name}' must be a list of ids"
    return True, tuple(raw)


def parse_bundle_config(raw: Any, default_title: str = "") -> BundleConfig:
    """
    Parse the configuration payload into a BundleConfig

    Absent or malformed payloads produce an empty configuration, which
    evaluates to no discount. Invalid tiers are dropped individually.

    Args:
        raw: JSON string, dict or None
        default_title: Title used when the payload has none

    Returns:
        BundleConfig (never raises)
    """
    is_valid, payload = _load_payload(raw)
    if not is_valid:
        logger.warning(f"Ignoring bundle configuration: {payload}")
        return BundleConfig.empty(default_title)

    is_valid, discount_type = validate_discount_type(payload.get("discountType"))
    if not is_valid:
        logger.warning(f"Ignoring bundle configuration: {discount_type}")
        return BundleConfig.empty(default_title)

    is_valid, products = _string_list(payload.get("products"), "products")
    if not is_valid:
        logger.warning(f"Ignoring bundle configuration: {products}")
        return BundleConfig.empty(default_title)

    is_valid, collections = _string_list(payload.get("collections"), "collections")
    if not is_valid:
        logger.warning(f"Ignoring bundle configuration: {collections}")
        return BundleConfig.empty(default_title)

    raw_tiers = payload.get("tiers") or []
    if not isinstance(raw_tiers, list):
        logger.warning("Ignoring bundle configuration: 'tiers' must be a list")
        return BundleConfig.empty(default_title)

    tiers = []
    for index, raw_tier in enumerate(raw_tiers):
        is_valid, tier = validate_tier(raw_tier)
        if is_valid:
            tiers.append(tier)
        else:
            logger.warning(f"Skipping tier #{index + 1}: {tier}")

    title = payload.get("title")
    if not isinstance(title, str) or not title:
        title = default_title

    return BundleConfig(
        discount_type=discount_type,
        products=products,
        collections=collections,
        tiers=tuple(tiers),
        title=title,
    )


def validate_bundle_config(raw: Any) -> List[str]:
    """
    Collect merchant-facing problems with a configuration payload

    Args:
        raw: JSON string, dict or None

    Returns:
        List of human-readable issues (empty when the configuration is usable)
    """
    is_valid, payload = _load_payload(raw)
    if not is_valid:
        return [payload]

    issues = []

    is_valid, discount_type = validate_discount_type(payload.get("discountType"))
    if not is_valid:
        issues.append(discount_type)
        discount_type = None

    is_valid, products = _string_list(payload.get("products"), "products")
    if not is_valid:
        issues.append(products)
        products = ()

    is_valid, collections = _string_list(payload.get("collections"), "collections")
    if not is_valid:
        issues.append(collections)
        collections = ()

    if not products and not collections:
        issues.append("No products or collections are eligible for the bundle")

    raw_tiers = payload.get("tiers") or []
    if not isinstance(raw_tiers, list):
        issues.append("'tiers' must be a list")
        raw_tiers = []

    tiers = []
    for index, raw_tier in enumerate(raw_tiers):
        is_valid, tier = validate_tier(raw_tier)
        if is_valid:
            tiers.append(tier)
        else:
            issues.append(f"Tier #{index + 1}: {tier}")

    if not tiers:
        issues.append("No valid tiers configured")

    duplicates = sorted(q for q, count in Counter(t.quantity for t in tiers).items() if count > 1)
    for quantity in duplicates:
        issues.append(f"Several tiers share the quantity {quantity}; the highest amount wins")

    if discount_type == DiscountType.PERCENTAGE:
        for tier in tiers:
            if tier.amount > 100:
                issues.append(f"Tier for {tier.quantity} items takes more than 100% off")

    return issues


def _variant_from_merchandise(raw: Any) -> Optional[Variant]:
    """Only product variants can be bundled; other merchandise yields None"""
    if not isinstance(raw, dict):
        return None

    typename = raw.get("__typename", "ProductVariant")
    product = raw.get("product")
    if typename != "ProductVariant" or not isinstance(product, dict) or not raw.get("id"):
        return None

    return Variant(
        id=str(raw["id"]),
        product_id=str(product.get("id", "")),
        in_any_collection=bool(product.get("inAnyCollection")),
    )


def parse_cart_line(raw: Any) -> CartLine:
    """
    Parse one cart line

    Raises:
        ValueError: if the line is malformed
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Cart line must be an object, got {type(raw).__name__}")

    quantity = raw.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"Cart line {raw.get('id')!r} has invalid quantity {quantity!r}")

    cost = raw.get("cost") or {}
    amount_per_quantity = cost.get("amountPerQuantity") if isinstance(cost, dict) else None
    if not isinstance(amount_per_quantity, dict):
        raise ValueError(f"Cart line {raw.get('id')!r} has no unit cost")
    unit_cost = to_decimal(amount_per_quantity.get("amount"))

    return CartLine(
        id=str(raw.get("id", "")),
        quantity=quantity,
        cost=unit_cost,
        variant=_variant_from_merchandise(raw.get("merchandise")),
        has_selling_plan=bool(raw.get("sellingPlanAllocation")),
    )


def parse_cart(raw: Any) -> Cart:
    """
    Parse the cart section of the evaluation input

    Raises:
        ValueError: if the cart or one of its lines is malformed
    """
    if not isinstance(raw, dict):
        raise ValueError("Cart must be an object")

    raw_lines = raw.get("lines") or []
    if not isinstance(raw_lines, list):
        raise ValueError("Cart lines must be a list")

    buyer = raw.get("buyerIdentity") or {}
    if not isinstance(buyer, dict):
        raise ValueError("Buyer identity must be an object")
    company = ((buyer.get("purchasingCompany") or {}).get("company") or {})

    return Cart(
        lines=tuple(parse_cart_line(line) for line in raw_lines),
        purchasing_company_id=company.get("id") or None,
    )
