"""
Great-circle distance helpers used for proximity filtering
"""

import math

EARTH_RADIUS_MILES = 3958.8


def calculate_distance(lat1, lon1, lat2, lon2):
    """
    Distance between two coordinates using the Haversine formula

    Args:
        lat1, lon1: First point in decimal degrees
        lat2, lon2: Second point in decimal degrees

    Returns:
        float: Distance in miles
    """
    lat_rad1 = math.radians(lat1)
    lat_rad2 = math.radians(lat2)
    d_lat = lat_rad2 - lat_rad1
    d_lon = math.radians(lon2) - math.radians(lon1)

    a = (math.sin(d_lat / 2) * math.sin(d_lat / 2) +
         math.cos(lat_rad1) * math.cos(lat_rad2) * math.sin(d_lon / 2) * math.sin(d_lon / 2))
    a = min(a, 1.0)  # rounding can push antipodal points just past 1
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def is_within_distance(lat1, lon1, lat2, lon2, max_distance):
    """Check if two coordinates are at most max_distance miles apart"""
    return calculate_distance(lat1, lon1, lat2, lon2) <= max_distance
