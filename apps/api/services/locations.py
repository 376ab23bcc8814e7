"""
Location dedupe.

Locations are keyed by (city, municipality). A run points at the existing
row when there is one; otherwise a row is created. Coordinates sent with a
new run refresh the stored ones.
"""
from typing import Optional

from sqlalchemy.orm import Session

from models import Location


def find_location(db: Session, city: str, municipality: str) -> Optional[Location]:
    return (
        db.query(Location)
        .filter(Location.city == city, Location.municipality == municipality)
        .first()
    )


def get_or_create_location(
    db: Session,
    city: str,
    municipality: str,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
) -> Location:
    """Find or insert the location. Flushes but does not commit."""
    location = find_location(db, city, municipality)
    if location is None:
        location = Location(city=city, municipality=municipality, lat=lat, lng=lng)
        db.add(location)
    elif lat is not None and lng is not None:
        location.lat = lat
        location.lng = lng
    db.flush()
    return location
