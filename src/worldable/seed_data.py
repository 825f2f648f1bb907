"""
Static seed data: continents, subregions and a curated timezone list.

These components have no remote source; their rows ship with the package.
"""

# (name, code)
CONTINENTS: list[tuple[str, str]] = [
    ("Africa", "AF"),
    ("Antarctica", "AN"),
    ("Asia", "AS"),
    ("Europe", "EU"),
    ("North America", "NA"),
    ("Oceania", "OC"),
    ("South America", "SA"),
]

# (name, code, continent name)
SUBREGIONS: list[tuple[str, str, str]] = [
    # Africa
    ("Northern Africa", "NAF", "Africa"),
    ("Western Africa", "WAF", "Africa"),
    ("Middle Africa", "MAF", "Africa"),
    ("Eastern Africa", "EAF", "Africa"),
    ("Southern Africa", "SAF", "Africa"),
    # Asia
    ("Central Asia", "CAS", "Asia"),
    ("Eastern Asia", "EAS", "Asia"),
    ("South-eastern Asia", "SEA", "Asia"),
    ("Southern Asia", "SAS", "Asia"),
    ("Western Asia", "WAS", "Asia"),
    # Europe
    ("Eastern Europe", "EEU", "Europe"),
    ("Northern Europe", "NEU", "Europe"),
    ("Southern Europe", "SEU", "Europe"),
    ("Western Europe", "WEU", "Europe"),
    # Americas
    ("Caribbean", "CAR", "North America"),
    ("Central America", "CAM", "North America"),
    ("Northern America", "NAM", "North America"),
    ("South America", "SAM", "South America"),
    # Oceania
    ("Australia and New Zealand", "ANZ", "Oceania"),
    ("Melanesia", "MEL", "Oceania"),
    ("Micronesia", "MIC", "Oceania"),
    ("Polynesia", "POL", "Oceania"),
    ("Antarctica", "ANT", "Antarctica"),
]

# (name, zone_name, gmt_offset seconds, gmt_offset_name, abbreviation)
TIMEZONES: list[tuple[str, str, int, str, str]] = [
    # Africa
    ("West Africa Time", "Africa/Lagos", 3600, "UTC+01:00", "WAT"),
    ("Central Africa Time", "Africa/Maputo", 7200, "UTC+02:00", "CAT"),
    ("Eastern European Time", "Africa/Cairo", 7200, "UTC+02:00", "EET"),
    ("South Africa Standard Time", "Africa/Johannesburg", 7200, "UTC+02:00", "SAST"),
    ("East Africa Time", "Africa/Nairobi", 10800, "UTC+03:00", "EAT"),
    ("West Africa Time", "Africa/Accra", 0, "UTC+00:00", "GMT"),
    ("Morocco Standard Time", "Africa/Casablanca", 3600, "UTC+01:00", "WEST"),
    # America - North America
    ("Eastern Standard Time", "America/New_York", -18000, "UTC-05:00", "EST"),
    ("Central Standard Time", "America/Chicago", -21600, "UTC-06:00", "CST"),
    ("Mountain Standard Time", "America/Denver", -25200, "UTC-07:00", "MST"),
    ("Pacific Standard Time", "America/Los_Angeles", -28800, "UTC-08:00", "PST"),
    ("Alaska Standard Time", "America/Anchorage", -32400, "UTC-09:00", "AKST"),
    ("Hawaii-Aleutian Standard Time", "Pacific/Honolulu", -36000, "UTC-10:00", "HST"),
    ("Atlantic Standard Time", "America/Halifax", -14400, "UTC-04:00", "AST"),
    ("Newfoundland Standard Time", "America/St_Johns", -12600, "UTC-03:30", "NST"),
    # America - Central & South America
    ("Mexico City Time", "America/Mexico_City", -21600, "UTC-06:00", "CST"),
    ("Colombia Time", "America/Bogota", -18000, "UTC-05:00", "COT"),
    ("Peru Time", "America/Lima", -18000, "UTC-05:00", "PET"),
    ("Argentina Time", "America/Argentina/Buenos_Aires", -10800, "UTC-03:00", "ART"),
    ("Brasilia Time", "America/Sao_Paulo", -10800, "UTC-03:00", "BRT"),
    ("Chile Standard Time", "America/Santiago", -10800, "UTC-03:00", "CLT"),
    ("Venezuela Time", "America/Caracas", -14400, "UTC-04:00", "VET"),
    # Asia - Middle East
    ("Arabia Standard Time", "Asia/Riyadh", 10800, "UTC+03:00", "AST"),
    ("Gulf Standard Time", "Asia/Dubai", 14400, "UTC+04:00", "GST"),
    ("Iran Standard Time", "Asia/Tehran", 12600, "UTC+03:30", "IRST"),
    ("Israel Standard Time", "Asia/Jerusalem", 7200, "UTC+02:00", "IST"),
    ("Turkey Time", "Europe/Istanbul", 10800, "UTC+03:00", "TRT"),
    # Asia - South & Southeast Asia
    ("Pakistan Standard Time", "Asia/Karachi", 18000, "UTC+05:00", "PKT"),
    ("India Standard Time", "Asia/Kolkata", 19800, "UTC+05:30", "IST"),
    ("Nepal Time", "Asia/Kathmandu", 20700, "UTC+05:45", "NPT"),
    ("Bangladesh Standard Time", "Asia/Dhaka", 21600, "UTC+06:00", "BST"),
    ("Myanmar Time", "Asia/Yangon", 23400, "UTC+06:30", "MMT"),
    ("Indochina Time", "Asia/Bangkok", 25200, "UTC+07:00", "ICT"),
    ("Vietnam Standard Time", "Asia/Ho_Chi_Minh", 25200, "UTC+07:00", "ICT"),
    ("Indonesia Western Time", "Asia/Jakarta", 25200, "UTC+07:00", "WIB"),
    # Asia - East Asia
    ("China Standard Time", "Asia/Shanghai", 28800, "UTC+08:00", "CST"),
    ("Hong Kong Time", "Asia/Hong_Kong", 28800, "UTC+08:00", "HKT"),
    ("Singapore Standard Time", "Asia/Singapore", 28800, "UTC+08:00", "SGT"),
    ("Philippine Time", "Asia/Manila", 28800, "UTC+08:00", "PHT"),
    ("Malaysia Time", "Asia/Kuala_Lumpur", 28800, "UTC+08:00", "MYT"),
    ("Taiwan Standard Time", "Asia/Taipei", 28800, "UTC+08:00", "CST"),
    ("Japan Standard Time", "Asia/Tokyo", 32400, "UTC+09:00", "JST"),
    ("Korea Standard Time", "Asia/Seoul", 32400, "UTC+09:00", "KST"),
    # Europe - Western Europe
    ("Greenwich Mean Time", "Europe/London", 0, "UTC+00:00", "GMT"),
    ("Irish Standard Time", "Europe/Dublin", 0, "UTC+00:00", "GMT"),
    ("Western European Time", "Europe/Lisbon", 0, "UTC+00:00", "WET"),
    # Europe - Central Europe
    ("Central European Time", "Europe/Paris", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Berlin", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Rome", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Madrid", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Amsterdam", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Brussels", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Zurich", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Vienna", 3600, "UTC+01:00", "CET"),
    ("Central European Time", "Europe/Warsaw", 3600, "UTC+01:00", "CET"),
    # Europe - Eastern Europe
    ("Eastern European Time", "Europe/Athens", 7200, "UTC+02:00", "EET"),
    ("Eastern European Time", "Europe/Bucharest", 7200, "UTC+02:00", "EET"),
    ("Eastern European Time", "Europe/Helsinki", 7200, "UTC+02:00", "EET"),
    ("Moscow Standard Time", "Europe/Moscow", 10800, "UTC+03:00", "MSK"),
    # Oceania
    ("Australian Western Standard Time", "Australia/Perth", 28800, "UTC+08:00", "AWST"),
    ("Australian Central Standard Time", "Australia/Adelaide", 37800, "UTC+10:30", "ACST"),
    ("Australian Eastern Standard Time", "Australia/Sydney", 39600, "UTC+11:00", "AEST"),
    ("Australian Eastern Standard Time", "Australia/Melbourne", 39600, "UTC+11:00", "AEST"),
    ("Australian Eastern Standard Time", "Australia/Brisbane", 36000, "UTC+10:00", "AEST"),
    ("New Zealand Standard Time", "Pacific/Auckland", 46800, "UTC+13:00", "NZST"),
    ("Fiji Time", "Pacific/Fiji", 43200, "UTC+12:00", "FJT"),
    # UTC & Special
    ("Coordinated Universal Time", "UTC", 0, "UTC+00:00", "UTC"),
]


def continent_rows() -> list[dict]:
    return [{"name": name, "code": code} for name, code in CONTINENTS]


def timezone_rows() -> list[dict]:
    return [
        {
            "name": name,
            "zone_name": zone_name,
            "gmt_offset": gmt_offset,
            "gmt_offset_name": gmt_offset_name,
            "abbreviation": abbreviation,
        }
        for name, zone_name, gmt_offset, gmt_offset_name, abbreviation in TIMEZONES
    ]
