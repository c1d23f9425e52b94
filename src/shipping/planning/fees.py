"""Delivery fee calculation.

A fee is the base fee of the matched route or carrier plus one cash-on-delivery
surcharge. The surcharge is read from a tiered policy table, except for a
carrier that prices COD itself, whose handling charge takes its place. Both functions are pure: the same
inputs always give the same fee.
"""

from dataclasses import dataclass
from typing import Protocol

from protean.exceptions import ValidationError


class FeeBasis(Protocol):
    base_fee: float


@dataclass(frozen=True)
class CodSurchargeTier:
    """Surcharge for COD amounts up to ``up_to`` THB (``None`` means no ceiling)."""

    up_to: float | None
    flat: float = 0.0
    percent: float = 0.0


COD_SURCHARGE_TIERS = (
    CodSurchargeTier(up_to=0.0),
    CodSurchargeTier(up_to=1000.0, flat=20.0),
    CodSurchargeTier(up_to=3000.0, flat=35.0),
    CodSurchargeTier(up_to=5000.0, flat=50.0),
    CodSurchargeTier(up_to=None, percent=1.0),
)


@dataclass(frozen=True)
class CarrierQuote:
    """Fee basis for a carrier option: the carrier's quote for one province."""

    carrier_code: str
    province: str
    base_fee: float
    cod_handling: float | None = None  # Replaces the table surcharge when set


def cod_surcharge(cod_amount: float, tiers: tuple[CodSurchargeTier, ...] = COD_SURCHARGE_TIERS) -> float:
    if cod_amount < 0:
        raise ValidationError({"cod_amount": ["COD amount cannot be negative"]})
    for tier in tiers:
        if tier.up_to is None or cod_amount <= tier.up_to:
            return round(tier.flat + cod_amount * tier.percent / 100, 2)
    raise ValidationError({"cod_amount": [f"No surcharge tier covers {cod_amount}"]})


def calculate_delivery_fee(entry: FeeBasis, cod_amount: float) -> float:
    """Base fee of ``entry`` plus the COD surcharge for ``cod_amount``."""
    surcharge = cod_surcharge(cod_amount)
    handling = getattr(entry, "cod_handling", None)
    if handling is not None:
        surcharge = handling
    return round(entry.base_fee + surcharge, 2)
