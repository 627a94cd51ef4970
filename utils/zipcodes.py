"""
Zipcode to state derivation

Uses the three-digit ZIP prefix ranges assigned to each state. Prefixes that
are unassigned or belong to military/territory mail fall back to a coarse
first-digit table, which is only an approximation (several states share a
leading digit).
"""

# (first prefix, last prefix, state), inclusive
ZIP_PREFIX_RANGES = [
    (5, 5, 'NY'),
    (6, 7, 'PR'),
    (8, 8, 'VI'),
    (9, 9, 'PR'),
    (10, 27, 'MA'),
    (28, 29, 'RI'),
    (30, 38, 'NH'),
    (39, 49, 'ME'),
    (50, 54, 'VT'),
    (55, 55, 'MA'),
    (56, 59, 'VT'),
    (60, 69, 'CT'),
    (70, 89, 'NJ'),
    (100, 149, 'NY'),
    (150, 196, 'PA'),
    (197, 199, 'DE'),
    (200, 200, 'DC'),
    (201, 201, 'VA'),
    (202, 205, 'DC'),
    (206, 219, 'MD'),
    (220, 246, 'VA'),
    (247, 268, 'WV'),
    (270, 289, 'NC'),
    (290, 299, 'SC'),
    (300, 319, 'GA'),
    (320, 339, 'FL'),
    (341, 349, 'FL'),
    (350, 369, 'AL'),
    (370, 385, 'TN'),
    (386, 397, 'MS'),
    (398, 399, 'GA'),
    (400, 427, 'KY'),
    (430, 459, 'OH'),
    (460, 479, 'IN'),
    (480, 499, 'MI'),
    (500, 528, 'IA'),
    (530, 549, 'WI'),
    (550, 567, 'MN'),
    (569, 569, 'DC'),
    (570, 577, 'SD'),
    (580, 588, 'ND'),
    (590, 599, 'MT'),
    (600, 629, 'IL'),
    (630, 658, 'MO'),
    (660, 679, 'KS'),
    (680, 693, 'NE'),
    (700, 714, 'LA'),
    (716, 729, 'AR'),
    (730, 732, 'OK'),
    (733, 733, 'TX'),
    (734, 749, 'OK'),
    (750, 799, 'TX'),
    (800, 816, 'CO'),
    (820, 831, 'WY'),
    (832, 838, 'ID'),
    (840, 847, 'UT'),
    (850, 865, 'AZ'),
    (870, 884, 'NM'),
    (885, 885, 'TX'),
    (889, 898, 'NV'),
    (900, 961, 'CA'),
    (967, 968, 'HI'),
    (969, 969, 'GU'),
    (970, 979, 'OR'),
    (980, 994, 'WA'),
    (995, 999, 'AK'),
]

FIRST_DIGIT_STATE = {
    '0': 'NY',
    '1': 'NY',
    '2': 'VA',
    '3': 'FL',
    '4': 'MI',
    '5': 'TX',
    '6': 'IL',
    '7': 'TX',
    '8': 'CO',
    '9': 'CA',
}


def normalize_zipcode(zipcode):
    """Strip whitespace and any ZIP+4 suffix"""
    if not zipcode:
        return ''
    return str(zipcode).strip().split('-')[0]


def state_from_zip_prefix(zipcode):
    zipcode = normalize_zipcode(zipcode)
    if len(zipcode) < 3 or not zipcode[:3].isdigit():
        return None
    prefix = int(zipcode[:3])
    for low, high, state in ZIP_PREFIX_RANGES:
        if low <= prefix <= high:
            return state
    return None


def state_from_first_digit(zipcode):
    zipcode = normalize_zipcode(zipcode)
    if not zipcode:
        return None
    return FIRST_DIGIT_STATE.get(zipcode[0])


def derive_state(zipcode):
    """
    Best-effort state for a zipcode

    Returns:
        Two-letter state code, or None when the zipcode has no leading digit
    """
    return state_from_zip_prefix(zipcode) or state_from_first_digit(zipcode)
