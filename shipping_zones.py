"""
Shipping zones based on the estimated distance from the Asheville, NC warehouse.

Distances are coarse: a ship-to address resolves to its state's centroid (or a
zip-prefix region), never to a geocoded point. Zones are advisory; they drive
filtering and sorting only.
"""
import math
import re

from order_models import ShippingZone

# Warehouse location (Asheville, NC)
ORIGIN_LAT = 35.5951
ORIGIN_LON = -82.5515

EARTH_RADIUS_MILES = 3959

# Further zones need to ship sooner, so they get a lower priority number
SHIPPING_ZONES = [
    {'id': 'local', 'name': 'Local (0-50 mi)', 'max_distance': 50, 'priority': 4},
    {'id': 'regional', 'name': 'Regional (50-499 mi)', 'max_distance': 499, 'priority': 3},
    {'id': 'national', 'name': 'National (500-1000 mi)', 'max_distance': 1000, 'priority': 2},
    {'id': 'distant', 'name': 'Distant (1000+ mi)', 'max_distance': math.inf, 'priority': 1},
]

# Used when the address has no recognisable zip code
DEFAULT_ZONE_ID = 'national'

ZIP_PATTERN = re.compile(r"\b(\d{5})(?:[-\s]?\d{4})?\b")
STATE_PATTERN = re.compile(r"\b([A-Z]{2})\s+\d{5}")
CITY_PATTERN = re.compile(r"^(.+?),?\s+[A-Z]{2}\s+\d{5}")

# Approximate geographic centres
STATE_CENTERS = {
    'NC': (35.5, -80.0),
    'SC': (33.8, -80.9),
    'GA': (32.6, -83.4),
    'TN': (35.7, -86.8),
    'VA': (37.5, -78.2),
    'FL': (27.8, -81.8),
    'AL': (32.8, -86.8),
    'MS': (32.7, -89.7),
    'KY': (37.7, -85.3),
    'WV': (38.3, -80.9),
    'OH': (40.4, -82.8),
    'PA': (40.6, -77.2),
    'NY': (42.2, -74.8),
    'MA': (42.2, -71.5),
    'CT': (41.6, -72.7),
    'NJ': (40.2, -74.5),
    'MD': (39.0, -76.5),
    'DE': (39.2, -75.5),
    'TX': (31.0, -99.9),
    'CA': (36.1, -119.4),
    'WA': (47.0, -120.7),
    'OR': (44.0, -120.5),
    'AZ': (34.0, -111.5),
    'NV': (39.3, -116.6),
    'UT': (39.3, -111.6),
    'CO': (39.0, -105.5),
    'NM': (34.5, -106.2),
    'OK': (35.5, -97.5),
    'AR': (34.7, -92.3),
    'LA': (30.4, -91.2),
    'MO': (38.5, -92.2),
    'IA': (41.9, -93.6),
    'MN': (46.7, -94.7),
    'WI': (44.3, -89.6),
    'IL': (40.3, -89.1),
    'IN': (39.8, -86.1),
    'MI': (43.3, -84.5),
    'ME': (44.3, -69.8),
    'NH': (43.4, -71.6),
    'VT': (44.2, -72.6),
    'RI': (41.8, -71.4),
    'HI': (21.3, -157.8),
    'AK': (61.2, -149.9),
}

# (first, last) 3-digit zip prefix -> rough regional centre
ZIP_PREFIX_REGIONS = [
    ((280, 289), (35.5, -80.0)),   # NC
    ((290, 299), (33.8, -80.9)),   # SC
    ((300, 319), (33.7, -84.4)),   # GA
    ((370, 385), (35.7, -86.8)),   # TN
    ((220, 246), (37.5, -78.2)),   # VA
]


def parse_shipping_address(address):
    """
    Find the city/state/zip line of a ship-to block.
    Lines are scanned bottom-up and a trailing country line is skipped.
    Returns a dict with optional 'zip_code', 'state' and 'city' keys.
    """
    if not address:
        return {}

    lines = [line.strip() for line in address.splitlines() if line.strip()]

    for line in reversed(lines):
        if 'united states' in line.lower():
            continue

        zip_match = ZIP_PATTERN.search(line)
        if not zip_match:
            continue

        parsed = {'zip_code': zip_match.group(1)}
        state_match = STATE_PATTERN.search(line)
        if state_match:
            parsed['state'] = state_match.group(1)
        city_match = CITY_PATTERN.search(line)
        if city_match:
            parsed['city'] = city_match.group(1).strip()
        return parsed

    return {}


def haversine_miles(lat1, lon1, lat2, lon2):
    """Great-circle distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def resolve_coordinates(zip_code, state=None):
    """
    State centroid first, then the zip-prefix regions.
    Anything else resolves to the origin itself.
    """
    if state and state.upper() in STATE_CENTERS:
        return STATE_CENTERS[state.upper()]

    try:
        prefix = int(zip_code[:3])
    except (TypeError, ValueError):
        prefix = None

    if prefix is not None:
        for (first, last), coords in ZIP_PREFIX_REGIONS:
            if first <= prefix <= last:
                return coords

    return ORIGIN_LAT, ORIGIN_LON


def distance_from_origin(address):
    """Distance in miles from the warehouse, or None when the address has no zip code."""
    parsed = parse_shipping_address(address)
    if not parsed.get('zip_code'):
        return None

    lat, lon = resolve_coordinates(parsed['zip_code'], parsed.get('state'))
    return haversine_miles(ORIGIN_LAT, ORIGIN_LON, lat, lon)


def zone_by_id(zone_id):
    for zone in SHIPPING_ZONES:
        if zone['id'] == zone_id:
            return zone
    raise KeyError(zone_id)


def assign_shipping_zone(address):
    """
    Bucket a ship-to address into one of the four distance bands.
    Unresolvable addresses land in the national band with no distance.
    """
    distance = distance_from_origin(address)

    if distance is None:
        zone = zone_by_id(DEFAULT_ZONE_ID)
        return ShippingZone(zone['id'], zone['name'], zone['priority'], None)

    for zone in SHIPPING_ZONES:
        if distance <= zone['max_distance']:
            return ShippingZone(zone['id'], zone['name'], zone['priority'], distance)
