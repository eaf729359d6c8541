"""
Shipping Zone Tests
===================

Verifies:
- The city/state/zip line is found even with a trailing country line.
- Coordinates resolve by state first, then by zip prefix.
- Distances fall into the right band; missing zips land in the default band.
"""
import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from shipping_zones import (
    DEFAULT_ZONE_ID,
    ORIGIN_LAT,
    ORIGIN_LON,
    assign_shipping_zone,
    distance_from_origin,
    haversine_miles,
    parse_shipping_address,
    resolve_coordinates,
)


class TestParseShippingAddress(unittest.TestCase):

    def test_country_line_skipped(self):
        parsed = parse_shipping_address("Jane Doe\n1 Elm St\nDenver, CO 80202-1234\nUnited States")
        self.assertEqual(parsed, {'zip_code': '80202', 'state': 'CO', 'city': 'Denver'})

    def test_no_zip(self):
        self.assertEqual(parse_shipping_address("Jane Doe\nGeneral Delivery"), {})
        self.assertEqual(parse_shipping_address(""), {})
        self.assertEqual(parse_shipping_address(None), {})


class TestDistances(unittest.TestCase):

    def test_haversine_zero(self):
        self.assertAlmostEqual(haversine_miles(ORIGIN_LAT, ORIGIN_LON, ORIGIN_LAT, ORIGIN_LON), 0.0)

    def test_haversine_known_distance(self):
        # One degree of latitude is roughly 69 miles
        self.assertAlmostEqual(haversine_miles(35.0, -82.0, 36.0, -82.0), 69.1, delta=0.5)

    def test_state_beats_zip_prefix(self):
        self.assertEqual(resolve_coordinates("28801", "CA"), (36.1, -119.4))

    def test_zip_prefix_region(self):
        self.assertEqual(resolve_coordinates("29401"), (33.8, -80.9))

    def test_unknown_location_resolves_to_origin(self):
        self.assertEqual(resolve_coordinates("99999"), (ORIGIN_LAT, ORIGIN_LON))

    def test_distance_requires_zip(self):
        self.assertIsNone(distance_from_origin("Somewhere without a zip"))


class TestAssignShippingZone(unittest.TestCase):

    def test_bands(self):
        cases = [
            ("A\nWarehouse pickup 99999", 'local'),
            ("A\nCharleston, SC 29401", 'regional'),
            ("A\nAlbany, NY 12207", 'national'),
            ("A\nLos Angeles, CA 90001", 'distant'),
        ]
        for address, expected in cases:
            with self.subTest(address=address):
                self.assertEqual(assign_shipping_zone(address).zone_id, expected)

    def test_further_zones_have_lower_priority(self):
        local = assign_shipping_zone("A\nWarehouse pickup 99999")
        distant = assign_shipping_zone("A\nSeattle, WA 98101")
        self.assertLess(distant.priority, local.priority)

    def test_default_zone_without_zip(self):
        zone = assign_shipping_zone("Pickup at warehouse")
        self.assertEqual(zone.zone_id, DEFAULT_ZONE_ID)
        self.assertIsNone(zone.distance)

    def test_distance_is_recorded(self):
        zone = assign_shipping_zone("A\nLos Angeles, CA 90001")
        self.assertGreater(zone.distance, 1000)


if __name__ == "__main__":
    unittest.main()
