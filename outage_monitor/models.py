"""Records produced by the scraper and kept by the store."""

from dataclasses import dataclass, field
from datetime import datetime

from outage_monitor.errors import ParseError, ParseFailure


@dataclass(frozen=True)
class Location:
    id: str
    title_native: str
    title_latin: str
    # Coordinates are kept as the source formats them.
    lat: str
    lng: str


@dataclass(frozen=True)
class OutageRecord:
    location: Location
    start: datetime
    end: datetime
    affected_customers: int
    addresses_native: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "location_id": self.location.id,
            "title_native": self.location.title_native,
            "title_latin": self.location.title_latin,
            "lat": self.location.lat,
            "lng": self.location.lng,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "affected_customers": self.affected_customers,
            "addresses_native": list(self.addresses_native),
        }


@dataclass(frozen=True)
class MapMarker:
    """One entry of the ``markers`` array embedded in the map page."""

    problem: bool
    id: str
    title: str
    lat: str
    lng: str

    @classmethod
    def from_json(cls, raw: dict) -> "MapMarker":
        """Decode one marker; a field of the wrong JSON type fails the map."""
        problem = raw.get("problem")
        if problem is None:
            problem = False
        if not isinstance(problem, bool):
            raise ParseError(ParseFailure.MAP_MALFORMED, f"problem must be a boolean, got {problem!r}")
        fields = {}
        for name in ("id", "title", "lat", "lng"):
            value = raw.get(name)
            if value is None:
                value = ""
            elif not isinstance(value, str):
                raise ParseError(ParseFailure.MAP_MALFORMED, f"{name} must be a string, got {value!r}")
            fields[name] = value
        return cls(problem=problem, **fields)
