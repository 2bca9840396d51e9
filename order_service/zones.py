"""Delivery zone lookup and delivery fee resolution."""

from collections import defaultdict

from .errors import DuplicateKey, NotServiceable
from .logger import logger
from .schemas import DeliveryZone, FeeQuote, ZoneCreate, ZoneUpdate
from .store import RecordCollection


def _serves(zone: DeliveryZone, city: str, neighborhood: str) -> bool:
    """Check a single neighborhood entry matches city, name and availability together."""
    return any(
        n.city == city and n.name == neighborhood and n.available for n in zone.neighborhoods
    )


def find_overlaps(zones: list[DeliveryZone]) -> dict[tuple[str, str], list[str]]:
    """Find (city, neighborhood) pairs claimed by more than one zone.

    Args:
        zones: Zones to inspect.

    Returns:
        dict: Maps each contested (city, neighborhood) pair to the zone names claiming it.
    """
    claims: dict[tuple[str, str], list[str]] = defaultdict(list)
    for zone in zones:
        for pair in {(n.city, n.name) for n in zone.neighborhoods}:
            claims[pair].append(zone.name)
    return {pair: names for pair, names in claims.items() if len(names) > 1}


class ZoneRepository:
    """Zone collaborator: queries and administration over the zone collection."""

    def __init__(self, zones: RecordCollection[DeliveryZone]):
        self._zones = zones

    def find_zones_containing_city(self, city: str) -> list[DeliveryZone]:
        return self._zones.find(lambda z: z.available and city in z.cities)

    def find_zone_by_city_and_neighborhood(self, city: str, neighborhood: str) -> DeliveryZone | None:
        """Return the first available zone serving the exact (city, neighborhood) pair.

        When several zones claim the pair the first one in store order wins.
        """
        for zone in self.find_zones_containing_city(city):
            if _serves(zone, city, neighborhood):
                return zone
        return None

    def list_available(self) -> list[DeliveryZone]:
        return self._zones.find(lambda z: z.available)

    def list_all(self) -> list[DeliveryZone]:
        return sorted(self._zones.find(), key=lambda z: z.name)

    def create(self, payload: ZoneCreate) -> DeliveryZone:
        """Create a zone; names must be unique.

        Raises:
            DuplicateKey: If a zone with the same name exists.
        """
        if self._zones.find(lambda z: z.name == payload.name):
            raise DuplicateKey("Delivery zone with this name already exists", field="name")
        zone = self._zones.create(DeliveryZone(**payload.model_dump()))
        logger.info(f"Delivery zone created | zone={zone.name} | cities={zone.cities} | fee={zone.delivery_fee}")
        self._warn_overlaps(zone)
        return zone

    def update(self, zone_id: str, payload: ZoneUpdate) -> DeliveryZone:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "neighborhoods" in changes:
            changes["neighborhoods"] = payload.neighborhoods
        zone = self._zones.update(zone_id, **changes)
        logger.info(f"Delivery zone updated | zone={zone.name} | fields={sorted(changes)}")
        self._warn_overlaps(zone)
        return zone

    def delete(self, zone_id: str) -> DeliveryZone:
        zone = self._zones.delete(zone_id)
        logger.info(f"Delivery zone deleted | zone={zone.name}")
        return zone

    def _warn_overlaps(self, zone: DeliveryZone) -> None:
        # Overlaps are tolerated; resolution falls back to first match.
        for (city, neighborhood), names in find_overlaps(self._zones.find()).items():
            if zone.name in names:
                logger.warning(
                    f"Overlapping delivery zones | city={city} | neighborhood={neighborhood} | zones={names}"
                )


class ZoneResolver:
    """Maps a delivery address to its zone, fee and estimated time."""

    def __init__(self, repository: ZoneRepository):
        self._repository = repository

    def resolve_fee(self, city: str, neighborhood: str) -> FeeQuote:
        """Resolve the delivery fee for a (city, neighborhood) pair.

        Lookup is exact and case-sensitive. The city alone never decides the
        zone: a city shared by several zones is disambiguated by the
        neighborhood entry.

        Args:
            city: City of the delivery address.
            neighborhood: Neighborhood of the delivery address.

        Returns:
            FeeQuote: Fee, estimated minutes and zone name.

        Raises:
            NotServiceable: If no available zone serves the pair.
        """
        zone = self._repository.find_zone_by_city_and_neighborhood(city, neighborhood)
        if zone is None:
            logger.info(f"Address not serviceable | city={city} | neighborhood={neighborhood}")
            raise NotServiceable(
                f"Delivery not available for {neighborhood}, {city}",
                city=city,
                neighborhood=neighborhood,
            )
        return FeeQuote(delivery_fee=zone.delivery_fee, estimated_time=zone.estimated_time, zone_name=zone.name)

    def list_cities(self) -> list[str]:
        """Distinct cities across available zones, sorted."""
        return sorted({city for zone in self._repository.list_available() for city in zone.cities})

    def list_neighborhoods(self, city: str) -> list[str]:
        """Distinct available neighborhoods of a city, unioned across every zone containing it."""
        names = {
            n.name
            for zone in self._repository.find_zones_containing_city(city)
            for n in zone.neighborhoods
            if n.city == city and n.available
        }
        return sorted(names)

    def list_zones(self) -> list[DeliveryZone]:
        return self._repository.list_available()

    def find_overlaps(self) -> dict[tuple[str, str], list[str]]:
        return find_overlaps(self._repository.list_available())
