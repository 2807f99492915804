"""
Domain types for Bundle Builder Discounts
Cart input, bundle configuration and discount output shapes
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from utils import format_number, format_money


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FIXED_BUNDLE_PRICE = "FIXED_BUNDLE_PRICE"


class ApplicationStrategy(str, Enum):
    """How the platform applies the returned discounts"""
    FIRST = "FIRST"
    MAXIMUM = "MAXIMUM"


# ---- Cart input ----

@dataclass(frozen=True)
class Variant:
    id: str
    product_id: str
    in_any_collection: bool = False


@dataclass(frozen=True)
class CartLine:
    id: str
    quantity: int
    cost: Decimal  # per unit
    variant: Optional[Variant] = None
    has_selling_plan: bool = False


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = ()
    purchasing_company_id: Optional[str] = None

    @property
    def is_business_purchase(self) -> bool:
        return bool(self.purchasing_company_id)


# ---- Configuration ----

@dataclass(frozen=True)
class Tier:
    quantity: int
    amount: Optional[Decimal]
    title: Optional[str] = None


# Zero-threshold floor for tier resolution; carries no discount
BASELINE_TIER = Tier(quantity=0, amount=None)


@dataclass(frozen=True)
class BundleConfig:
    discount_type: DiscountType = DiscountType.PERCENTAGE
    products: Tuple[str, ...] = ()
    collections: Tuple[str, ...] = ()
    tiers: Tuple[Tier, ...] = ()
    title: str = ""

    @classmethod
    def empty(cls, title: str = "") -> "BundleConfig":
        """Configuration with no tiers; always evaluates to no discount"""
        return cls(title=title)


# ---- Discount output ----

@dataclass(frozen=True)
class PercentageValue:
    value: Decimal

    def to_dict(self) -> Dict:
        return {"percentage": {"value": format_number(self.value)}}


@dataclass(frozen=True)
class FixedAmountValue:
    amount: Decimal
    two_decimals: bool = False

    def to_dict(self) -> Dict:
        amount = format_money(self.amount) if self.two_decimals else format_number(self.amount)
        return {"fixedAmount": {"amount": amount}}


DiscountValue = Union[PercentageValue, FixedAmountValue]


@dataclass(frozen=True)
class Target:
    variant_id: str
    quantity: Optional[int] = None

    def to_dict(self) -> Dict:
        return {"productVariant": {"id": self.variant_id, "quantity": self.quantity}}


@dataclass(frozen=True)
class DiscountCandidate:
    """A computed discount whose targets are still full cart lines"""
    message: str
    value: DiscountValue
    lines: Tuple[CartLine, ...]

    def targets(self) -> Tuple[Target, ...]:
        return tuple(Target(line.variant.id, line.quantity) for line in self.lines)


@dataclass(frozen=True)
class Discount:
    message: str
    value: DiscountValue
    targets: Tuple[Target, ...]

    def to_dict(self) -> Dict:
        return {
            "message": self.message,
            "value": self.value.to_dict(),
            "targets": [target.to_dict() for target in self.targets],
        }


@dataclass(frozen=True)
class FunctionResult:
    strategy: ApplicationStrategy
    discounts: Tuple[Discount, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "FunctionResult":
        """Canonical no-discount result"""
        return cls(strategy=ApplicationStrategy.FIRST, discounts=())

    @classmethod
    def of(cls, discounts) -> "FunctionResult":
        discounts = tuple(discounts)
        if not discounts:
            return cls.empty()
        return cls(strategy=ApplicationStrategy.MAXIMUM, discounts=discounts)

    @property
    def is_empty(self) -> bool:
        return not self.discounts

    def to_dict(self) -> Dict:
        return {
            "discountApplicationStrategy": self.strategy.value,
            "discounts": [discount.to_dict() for discount in self.discounts],
        }
