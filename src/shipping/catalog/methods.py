"""Delivery methods: the own fleet or one of the integrated carriers."""

from enum import Enum


class DeliveryMethod(Enum):
    SELF_DELIVERY = "self_delivery"
    GRAB = "grab"
    LINEMAN = "lineman"
    LALAMOVE = "lalamove"
    INTER_EXPRESS = "inter_express"
    NIM_EXPRESS = "nim_express"
    FLASH = "flash"
    ROT_RAO = "rot_rao"


CARRIER_METHODS = frozenset(m for m in DeliveryMethod if m is not DeliveryMethod.SELF_DELIVERY)


def is_carrier_method(method: str) -> bool:
    return method != DeliveryMethod.SELF_DELIVERY.value
