"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the domain's validation rules
(weekday names, pricing rule variants, non-negative COD amounts) and match
the exact field names expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()

# ---------- Reference data ----------

SEED_ROUTES = [
    {
        "code": "BKK-N",
        "name": "Bangkok North",
        "delivery_days": ["tuesday", "friday"],
        "base_fee": 40.0,
        "districts": ["Chatuchak", "Bang Kapi", "Lat Phrao"],
    },
    {
        "code": "BKK-C",
        "name": "Bangkok Central",
        "delivery_days": ["monday", "wednesday", "friday"],
        "base_fee": 35.0,
        "districts": ["Watthana", "Khlong Toei", "Pathum Wan"],
    },
    {
        "code": "NBI",
        "name": "Nonthaburi",
        "delivery_days": ["thursday"],
        "base_fee": 50.0,
        "provinces": ["Nonthaburi"],
    },
]

SEED_CARRIERS = [
    {
        "code": "flash",
        "display_name": "Flash Express",
        "pricing_rules": {"type": "zoned", "zones": {"Bangkok": 45, "Nonthaburi": 50}, "default_fee": 70},
        "cod_available": True,
        "priority": 10,
        "tracking_url_template": "https://www.flashexpress.co.th/tracking/?se={tracking_number}",
    },
    {
        "code": "lalamove",
        "display_name": "Lalamove",
        "pricing_rules": {"type": "flat", "fee": 90},
        "carrier_type": "on_demand",
        "provinces": ["Bangkok"],
        "transit_days": 0,
        "cutoff_time": "18:00",
        "priority": 20,
    },
    {
        "code": "inter_express",
        "display_name": "Inter Express",
        "pricing_rules": {"type": "cod_percentage", "base_fee": 55, "cod_rate_percent": 2.5, "min_cod_fee": 15},
        "transit_days": 2,
        "cod_available": True,
        "priority": 30,
    },
]

SEED_VEHICLES = [
    {"license_plate": f"1KK-{n:03d}", "driver_id": f"drv-{n:03d}", "capacity": 25, "route_codes": []}
    for n in range(1, 6)
]

# ---------- Addresses ----------

_AREAS = [
    ("Bangkok", "Chatuchak", ["Chatuchak", "Lat Yao", "Sena Nikhom"], "10900"),
    ("Bangkok", "Bang Kapi", ["Hua Mak", "Khlong Chan"], "10240"),
    ("Bangkok", "Watthana", ["Lumphini", "Khlong Tan Nuea"], "10330"),
    ("Bangkok", "Khlong Toei", ["Khlong Toei", "Phra Khanong"], "10110"),
    ("Nonthaburi", "Mueang Nonthaburi", ["Suan Yai", "Talat Khwan"], "11000"),
    ("Nonthaburi", "Pak Kret", ["Pak Kret", "Bang Talat"], "11120"),
    ("Chiang Mai", "Mueang Chiang Mai", ["Si Phum", "Chang Khlan"], "50200"),
]


def address_data() -> dict:
    """A customer address somewhere in the seeded coverage (or just outside it)."""
    province, district, subdistricts, postal_code = random.choice(_AREAS)
    return {
        "address_id": f"addr-lt-{uuid.uuid4().hex[:10]}",
        "province": province,
        "district": district,
        "subdistrict": random.choice(subdistricts),
        "postal_code": postal_code,
    }


# ---------- Delivery tasks ----------


def order_id() -> str:
    """Order ids like 'ord-lt-a1b2c3d4'."""
    return f"ord-lt-{uuid.uuid4().hex[:8]}"


def cod_amount() -> float:
    """About a third of orders are cash on delivery, across every surcharge tier."""
    if random.random() > 0.35:
        return 0.0
    return float(random.choice([fake.random_int(100, 1000), fake.random_int(1001, 3000), fake.random_int(3001, 9000)]))


def failure_reason() -> str:
    return random.choice(
        [
            "Customer not home",
            "Address not found",
            "Customer refused parcel",
            f"Rescheduled by customer: {fake.sentence(nb_words=4)}",
        ]
    )
