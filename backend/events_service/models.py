"""
Event record shape and validation.

Validation here is independent of storage: each function returns the full
list of violated fields so the caller can report all of them at once.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from backend import config

EVENT_CATEGORIES = (
    "Conference",
    "Workshop",
    "Seminar",
    "Concert",
    "Sports",
    "Cultural",
    "Networking",
    "Other",
)

TITLE_MAX_LENGTH = 200

# Upper bound of the INTEGER capacity column
CAPACITY_MAX = 2147483647

# (field, label) in the order errors are reported
REQUIRED_FIELDS = (
    ("title", "Title"),
    ("description", "Description"),
    ("date", "Date"),
    ("time", "Time"),
    ("category", "Category"),
    ("venue", "Venue"),
    ("lat", "Latitude"),
    ("lng", "Longitude"),
)

# Free-text fields; anything other than a string is rejected
TEXT_FIELDS = (
    ("title", "Title"),
    ("description", "Description"),
    ("time", "Time"),
    ("venue", "Venue"),
    ("image", "Image"),
    ("address", "Address"),
)


def is_blank(val: Any) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if val is None:
        return True
    if isinstance(val, str):
        return not val.strip()
    return False


def parse_date(val: Any) -> Optional[date]:
    """
    Parse an ISO-8601 date or datetime string to a date.

    Args:
        val: A date, datetime or string such as '2025-01-05' or '2025-01-05T10:00:00Z'.

    Returns:
        date: The parsed calendar date, or None if invalid.
    """
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if not isinstance(val, str) or not val.strip():
        return None
    val = val.strip()
    try:
        if len(val) == 10:
            return date.fromisoformat(val)
        if val.endswith("Z"):
            val = val[:-1] + "+00:00"
        return datetime.fromisoformat(val).date()
    except ValueError:
        return None


def parse_coordinate(val: Any) -> Optional[float]:
    if isinstance(val, bool):
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def parse_capacity(val: Any) -> Optional[int]:
    """Positive integer capacity, or None if the value is not one."""
    if isinstance(val, bool):
        return None
    try:
        capacity = int(val)
    except (TypeError, ValueError):
        return None
    if isinstance(val, float) and capacity != val:
        return None
    return capacity if 0 < capacity <= CAPACITY_MAX else None


def location_input(data: Dict[str, Any]) -> Tuple[Any, Any, Any]:
    """
    Pull lat/lng/address from a request body.

    Flat keys win; a nested "location" object is accepted as well.
    """
    nested = data.get("location") if isinstance(data.get("location"), dict) else {}
    lat = data.get("lat", nested.get("lat"))
    lng = data.get("lng", nested.get("lng"))
    address = data.get("address", nested.get("address"))
    return lat, lng, address


def _check_coordinates(lat: Any, lng: Any, errors: List[Dict[str, str]]) -> None:
    for field, label, raw, bound in (("lat", "Latitude", lat, 90), ("lng", "Longitude", lng, 180)):
        if is_blank(raw):
            continue
        value = parse_coordinate(raw)
        if value is None:
            errors.append({"field": field, "message": f"{label} must be a number"})
        elif not -bound <= value <= bound:
            errors.append({"field": field, "message": f"{label} must be between -{bound} and {bound}"})


def _check_text(values: Dict[str, Any], errors: List[Dict[str, str]]) -> None:
    for field, label in TEXT_FIELDS:
        val = values.get(field)
        if not is_blank(val) and not isinstance(val, str):
            errors.append({"field": field, "message": f"{label} must be a string"})


def validate_event(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate a full event record for creation.

    Args:
        data (dict): Raw request body.

    Returns:
        list: One {"field", "message"} entry per violation; empty when valid.
    """
    errors: List[Dict[str, str]] = []
    lat, lng, address = location_input(data)
    values = dict(data, lat=lat, lng=lng, address=address)

    for field, label in REQUIRED_FIELDS:
        if is_blank(values.get(field)):
            errors.append({"field": field, "message": f"{label} is required"})

    _check_text(values, errors)

    title = data.get("title")
    if isinstance(title, str) and len(title.strip()) > TITLE_MAX_LENGTH:
        errors.append({"field": "title", "message": f"Title must be {TITLE_MAX_LENGTH} characters or less"})

    category = data.get("category")
    if not is_blank(category) and category not in EVENT_CATEGORIES:
        errors.append({"field": "category", "message": f"Category must be one of: {', '.join(EVENT_CATEGORIES)}"})

    if not is_blank(data.get("date")) and parse_date(data.get("date")) is None:
        errors.append({"field": "date", "message": "Date must be a valid ISO-8601 date"})

    _check_coordinates(lat, lng, errors)

    capacity = data.get("capacity")
    if capacity and parse_capacity(capacity) is None:
        errors.append({"field": "capacity", "message": "Capacity must be a positive integer"})

    return errors


def build_event(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a validated creation body into a storable event record.
    Capacity falls back to the default when omitted or falsy.
    """
    lat, lng, address = location_input(data)
    capacity = data.get("capacity")
    image = data.get("image")
    return {
        "title": data["title"].strip(),
        "description": data["description"].strip(),
        "date": parse_date(data["date"]),
        "time": data["time"].strip(),
        "category": data["category"],
        "venue": data["venue"].strip(),
        "location": {
            "lat": parse_coordinate(lat),
            "lng": parse_coordinate(lng),
            "address": None if is_blank(address) else address.strip(),
        },
        "image": config.DEFAULT_EVENT_IMAGE if is_blank(image) else image.strip(),
        "capacity": parse_capacity(capacity) if capacity else config.DEFAULT_EVENT_CAPACITY,
    }


def build_event_changes(data: Dict[str, Any], current: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Dict[str, str]]]:
    """
    Sparse merge for updates.

    Omitted or empty fields keep their stored value. The location is only
    replaced when both lat and lng are supplied; otherwise it is kept whole.

    Args:
        data (dict): Raw request body.
        current (dict): The stored event.

    Returns:
        tuple: (changes, errors). `changes` holds only the fields to write.
    """
    changes: Dict[str, Any] = {}
    errors: List[Dict[str, str]] = []
    lat, lng, address = location_input(data)

    _check_text(dict(data, address=address), errors)

    for field in ("title", "description", "time", "venue", "image"):
        if isinstance(data.get(field), str) and data[field].strip():
            changes[field] = data[field].strip()

    if "title" in changes and len(changes["title"]) > TITLE_MAX_LENGTH:
        errors.append({"field": "title", "message": f"Title must be {TITLE_MAX_LENGTH} characters or less"})

    category = data.get("category")
    if not is_blank(category):
        if category in EVENT_CATEGORIES:
            changes["category"] = category
        else:
            errors.append({"field": "category", "message": f"Category must be one of: {', '.join(EVENT_CATEGORIES)}"})

    if not is_blank(data.get("date")):
        parsed = parse_date(data["date"])
        if parsed is None:
            errors.append({"field": "date", "message": "Date must be a valid ISO-8601 date"})
        else:
            changes["date"] = parsed

    capacity = data.get("capacity")
    if capacity:
        parsed_capacity = parse_capacity(capacity)
        if parsed_capacity is None:
            errors.append({"field": "capacity", "message": "Capacity must be a positive integer"})
        else:
            changes["capacity"] = parsed_capacity

    if not is_blank(lat) and not is_blank(lng):
        before = len(errors)
        _check_coordinates(lat, lng, errors)
        if len(errors) == before:
            changes["location"] = {
                "lat": parse_coordinate(lat),
                "lng": parse_coordinate(lng),
                "address": address.strip() if isinstance(address, str) and address.strip()
                else current["location"].get("address"),
            }

    return changes, errors
