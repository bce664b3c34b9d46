"""
Deterministic placeholder records for exports.

When a collection is empty, exports are filled with synthetic records so
the produced file is never empty. Records come from a seeded generator:
the same seed always yields the same records, independent of call order.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

DEFAULT_SEED = 20250905

# Synthetic timeline starts here
BASE_TIME = datetime(2025, 9, 5, 8, 30, tzinfo=timezone.utc)

PLATE_PREFIXES = ("京A", "沪B", "粤B", "浙A", "苏E", "川A")
VEHICLE_MODELS = (
    ("Mercedes-Benz", "C200L"),
    ("BMW", "X5"),
    ("Audi", "A6L"),
    ("Toyota", "Camry"),
    ("Volkswagen", "Passat"),
    ("Honda", "Accord"),
)
COLORS = ("White", "Black", "Silver", "Grey", "Blue", "Red")
OWNERS = ("Mr. Zhang", "Mr. Li", "Ms. Wang", "Ms. Chen", "Mr. Liu", "Ms. Zhao")
SERVICE_TYPES = ("maintenance", "insurance", "other")
PARTS = (
    ("Oil filter", 85.00),
    ("Air filter", 120.00),
    ("Synthetic engine oil", 135.00),
    ("Brake pads", 420.00),
    ("Spark plug", 65.00),
)
MAINTENANCE_TYPES = ("maintenance", "accident", "breakdown")
MAINTENANCE_STATUSES = ("completed", "in-progress", "pending")

LABOR_COST = 300.00


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class FallbackGenerator:
    """
    Seeded source of synthetic vehicles, invoices and maintenance records.

    Records carry ``"fallback": True`` so they can be told apart from real
    data. Synthetic maintenance records and invoices refer to the synthetic
    vehicles by id and license plate.

    Usage:
        generator = FallbackGenerator()
        vehicles = generator.vehicles()
        record = generator.single_record("invoice", "inv-42")
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        self.seed = seed

    def _rng(self, section: str) -> random.Random:
        # One stream per section keeps sections independent of call order
        return random.Random(f"{self.seed}:{section}")

    def vehicles(self, count: int = 2) -> list[dict[str, Any]]:
        rng = self._rng("vehicles")
        records = []
        for index in range(count):
            brand, model = rng.choice(VEHICLE_MODELS)
            entry = BASE_TIME + timedelta(days=index, minutes=45 * index)
            exit_time = entry + timedelta(hours=rng.randint(4, 56))
            records.append(
                {
                    "id": f"fallback-vehicle-{index + 1}",
                    "licensePlate": (
                        f"{PLATE_PREFIXES[index % len(PLATE_PREFIXES)]}"
                        f"{rng.randint(10000, 99999)}"
                    ),
                    "brand": brand,
                    "model": model,
                    "color": rng.choice(COLORS),
                    "ownerName": rng.choice(OWNERS),
                    "contact": f"139{rng.randint(10000000, 99999999)}",
                    "entryTime": _iso(entry),
                    "exitTime": _iso(exit_time),
                    "serviceType": rng.choice(SERVICE_TYPES),
                    "fallback": True,
                }
            )
        return records

    def _parts(self, rng: random.Random) -> list[dict[str, Any]]:
        parts = []
        for index, (name, price) in enumerate(rng.sample(PARTS, 3)):
            quantity = rng.randint(1, 5)
            parts.append(
                {
                    "id": str(index + 1),
                    "name": name,
                    "quantity": quantity,
                    "price": price,
                    "totalPrice": round(price * quantity, 2),
                }
            )
        return parts

    def invoices(self, count: int = 1) -> list[dict[str, Any]]:
        rng = self._rng("invoices")
        vehicles = self.vehicles(max(count, 1))
        records = []
        for index in range(count):
            vehicle = vehicles[index % len(vehicles)]
            parts = self._parts(rng)
            amount = round(sum(p["totalPrice"] for p in parts) + LABOR_COST, 2)
            issued = BASE_TIME + timedelta(days=index + 1, hours=8, minutes=15)
            records.append(
                {
                    "id": f"fallback-invoice-{index + 1}",
                    "invoiceNumber": f"FP-{issued:%Y%m%d}-{index + 1:03d}",
                    "date": _iso(issued),
                    "vehicleId": vehicle["id"],
                    "vehicleLicensePlate": vehicle["licensePlate"],
                    "amount": amount,
                    "type": rng.choice(("vat", "normal")),
                    "status": rng.choice(("paid", "pending")),
                    "items": [
                        {
                            "id": part["id"],
                            "description": part["name"],
                            "quantity": part["quantity"],
                            "unitPrice": part["price"],
                            "totalPrice": part["totalPrice"],
                        }
                        for part in parts
                    ],
                    "fallback": True,
                }
            )
        return records

    def maintenance(self, count: int = 1) -> list[dict[str, Any]]:
        rng = self._rng("maintenance")
        vehicles = self.vehicles(max(count, 1))
        records = []
        for index in range(count):
            vehicle = vehicles[index % len(vehicles)]
            parts = self._parts(rng)
            parts_cost = round(sum(p["totalPrice"] for p in parts), 2)
            records.append(
                {
                    "id": f"fallback-maintenance-{index + 1}",
                    "vehicleId": vehicle["id"],
                    "type": rng.choice(MAINTENANCE_TYPES),
                    "status": rng.choice(MAINTENANCE_STATUSES),
                    "entryTime": vehicle["entryTime"],
                    "exitTime": vehicle["exitTime"],
                    "parts": parts,
                    "laborCost": LABOR_COST,
                    "totalCost": round(parts_cost + LABOR_COST, 2),
                    "fallback": True,
                }
            )
        return records

    def section(self, name: str) -> list[dict[str, Any]]:
        """Synthetic records for a collection name."""
        if name == "vehicles":
            return self.vehicles()
        if name == "invoices":
            return self.invoices()
        if name == "maintenance":
            return self.maintenance()
        raise ValueError(f"No fallback records for section '{name}'")

    def single_record(self, record_type: str, record_id: str) -> dict[str, Any]:
        """Synthetic record of the given type carrying the requested id."""
        sections = {
            "vehicle": "vehicles",
            "invoice": "invoices",
            "maintenance": "maintenance",
        }
        if record_type not in sections:
            raise ValueError(f"Unknown record type '{record_type}'")

        record = self.section(sections[record_type])[0]
        record["id"] = record_id
        return record
