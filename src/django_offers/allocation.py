"""Vehicle allocation for transport lines.

Assignment is greedy and not optimal: lines are served in order and each
takes the first free vehicle of its category, internally owned vehicles
before rented-in ones. An early line can take a vehicle that a later
line needed even when another assignment would have served both.
Vehicles named explicitly on any line of the run are held back from
category matching so they are never handed out twice.
"""

import logging
from typing import Optional

from django_offers.models import Vehicle

logger = logging.getLogger(__name__)


def load_vehicle_pool(company) -> list[Vehicle]:
    """Active, non-deleted vehicles of a company in a stable order."""
    return list(
        Vehicle.objects.filter(company=company, active=True).order_by('name', 'created_at')
    )


class VehicleAllocator:
    """
    Picks vehicles from a fixed pool for one materialization run.

    The used set is passed in by the caller and mutated on success, so a
    vehicle is never handed to two lines that share the set. Vehicles in
    ``reserved_ids`` are only given out when a line names them.

    Usage:
        allocator = VehicleAllocator(load_vehicle_pool(company), reserved_ids={named.pk})
        used = set()
        vehicle = allocator.allocate('van_big', used)
    """

    def __init__(self, pool, reserved_ids=()):
        self.pool = list(pool)
        self.reserved_ids = set(reserved_ids)

    def candidates(self, category: str, used_ids) -> list[Vehicle]:
        """Free vehicles of a category, internal first, pool order within each group."""
        matching = [
            v for v in self.pool
            if v.vehicle_category == category
            and v.pk not in used_ids
            and v.pk not in self.reserved_ids
        ]
        internal = [v for v in matching if v.is_internal]
        external = [v for v in matching if not v.is_internal]
        return internal + external

    def allocate(
        self,
        category: str,
        used_ids: set,
        explicit_vehicle: Optional[Vehicle] = None,
    ) -> Optional[Vehicle]:
        """
        Resolve a vehicle for a line.

        Args:
            category: Vehicle category the line asks for
            used_ids: Vehicle ids taken earlier in this run (mutated)
            explicit_vehicle: Vehicle named on the line; used outright,
                even when it is not in the pool

        Returns:
            The vehicle, or None when nothing is free
        """
        if explicit_vehicle is not None:
            used_ids.add(explicit_vehicle.pk)
            return explicit_vehicle

        if not category:
            return None

        for vehicle in self.candidates(category, used_ids):
            used_ids.add(vehicle.pk)
            return vehicle

        logger.debug(f"No free vehicle in category {category}")
        return None
