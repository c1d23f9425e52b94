"""Carrier pricing rules.

Carriers keep their pricing as a JSON blob tagged by ``type``. The blob is
parsed into one of the frozen variants below when the carrier is registered
and again when it is loaded into a registry snapshot, so a malformed rule is
rejected at load time instead of surfacing in the middle of a quote.

    {"type": "flat", "fee": 45}
    {"type": "zoned", "zones": {"Bangkok": 40, "Chiang Mai": 70}, "default_fee": 90}
    {"type": "cod_percentage", "base_fee": 50, "cod_rate_percent": 2.5, "min_cod_fee": 15}

``fee_for`` is the fee before cash on delivery. ``cod_handling`` is the
carrier's own COD charge, or None when the carrier leaves COD to the policy
table in ``planning/fees.py``.
"""

import json
from dataclasses import dataclass

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class FlatRatePricing:
    fee: float

    kind = "flat"

    def fee_for(self, province: str) -> float:
        return self.fee

    def cod_handling(self, cod_amount: float) -> float | None:
        return None

    def quote(self, province: str, cod_amount: float = 0.0) -> float:
        return self.fee

    def to_dict(self) -> dict:
        return {"type": self.kind, "fee": self.fee}


@dataclass(frozen=True)
class ZonedPricing:
    zones: tuple[tuple[str, float], ...]
    default_fee: float

    kind = "zoned"

    def fee_for(self, province: str) -> float:
        key = province.strip().casefold()
        for zone, fee in self.zones:
            if zone.casefold() == key:
                return fee
        return self.default_fee

    def cod_handling(self, cod_amount: float) -> float | None:
        return None

    def quote(self, province: str, cod_amount: float = 0.0) -> float:
        return self.fee_for(province)

    def to_dict(self) -> dict:
        return {"type": self.kind, "zones": dict(self.zones), "default_fee": self.default_fee}


@dataclass(frozen=True)
class CodPercentagePricing:
    """Base fee plus the carrier's own COD handling charge."""

    base_fee: float
    cod_rate_percent: float
    min_cod_fee: float = 0.0

    kind = "cod_percentage"

    def fee_for(self, province: str) -> float:
        return self.base_fee

    def cod_handling(self, cod_amount: float) -> float | None:
        if cod_amount <= 0:
            return 0.0
        return round(max(cod_amount * self.cod_rate_percent / 100, self.min_cod_fee), 2)

    def quote(self, province: str, cod_amount: float = 0.0) -> float:
        return round(self.base_fee + self.cod_handling(cod_amount), 2)

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "base_fee": self.base_fee,
            "cod_rate_percent": self.cod_rate_percent,
            "min_cod_fee": self.min_cod_fee,
        }


PricingRule = FlatRatePricing | ZonedPricing | CodPercentagePricing


def _non_negative(value, name: str) -> float:
    amount = float(value)
    if amount < 0:
        raise ValueError(f"{name} cannot be negative")
    return amount


def parse_pricing_rule(blob: str | dict | None) -> PricingRule:
    """Validate a pricing blob and return its typed variant."""
    try:
        data = json.loads(blob) if isinstance(blob, str) else blob
    except ValueError as exc:
        raise ValidationError({"pricing_rules": [f"Pricing rule is not valid JSON: {exc}"]}) from exc
    if not isinstance(data, dict):
        raise ValidationError({"pricing_rules": ["Pricing rule must be a JSON object"]})

    kind = data.get("type")
    try:
        if kind == FlatRatePricing.kind:
            return FlatRatePricing(fee=_non_negative(data["fee"], "fee"))
        if kind == ZonedPricing.kind:
            zones = data.get("zones") or {}
            if not isinstance(zones, dict):
                raise ValueError("zones must map province to fee")
            return ZonedPricing(
                zones=tuple(sorted((str(name), _non_negative(fee, name)) for name, fee in zones.items())),
                default_fee=_non_negative(data["default_fee"], "default_fee"),
            )
        if kind == CodPercentagePricing.kind:
            return CodPercentagePricing(
                base_fee=_non_negative(data["base_fee"], "base_fee"),
                cod_rate_percent=_non_negative(data["cod_rate_percent"], "cod_rate_percent"),
                min_cod_fee=_non_negative(data.get("min_cod_fee", 0.0), "min_cod_fee"),
            )
    except KeyError as exc:
        raise ValidationError({"pricing_rules": [f"{kind} pricing rule is missing {exc.args[0]}"]}) from exc
    except (TypeError, ValueError) as exc:
        raise ValidationError({"pricing_rules": [f"Invalid {kind} pricing rule: {exc}"]}) from exc

    raise ValidationError({"pricing_rules": [f"Unknown pricing rule type: {kind}"]})
