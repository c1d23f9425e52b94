"""Third-party carrier integration.

``get_carrier()`` hands out the process-wide ``CarrierPort``. The adapter is
picked by ``CARRIER_ADAPTER`` the first time it is asked for; only the
in-process ``fake`` adapter ships with the service. ``CARRIER_WEBHOOK_SECRET``
turns on HMAC checks for carrier status webhooks.
"""

import os

from shipping.carrier.port import CarrierPort


def _fake() -> CarrierPort:
    from shipping.carrier.fake_adapter import FakeCarrier

    return FakeCarrier(webhook_secret=os.environ.get("CARRIER_WEBHOOK_SECRET") or None)


_FACTORIES = {"fake": _fake}

_active: CarrierPort | None = None


def get_carrier() -> CarrierPort:
    global _active
    if _active is None:
        name = os.environ.get("CARRIER_ADAPTER", "fake")
        if name not in _FACTORIES:
            raise ValueError(f"Unknown carrier adapter {name!r}, expected one of {sorted(_FACTORIES)}")
        _active = _FACTORIES[name]()
    return _active


def reset_carrier() -> None:
    """Drop the active adapter so the next call rebuilds it from the environment."""
    global _active
    _active = None
