"""Location input cleaning, including UK postcode to city mapping."""
from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

MIN_LENGTH = 2
MAX_LENGTH = 100

POSTCODE_RE = re.compile(r"^[A-Z]{1,2}[0-9R][0-9A-Z]? [0-9][ABD-HJLNP-UW-Z]{2}$", re.IGNORECASE)
ALLOWED_RE = re.compile(r"^[a-zA-Z0-9\s,.-]+$")
POSTCODE_AREA_RE = re.compile(r"^([A-Z]{1,2})")

POSTCODE_AREAS = {
    "E": "London", "EC": "London", "N": "London", "NW": "London",
    "SE": "London", "SW": "London", "W": "London", "WC": "London",
    "B": "Birmingham", "M": "Manchester", "L": "Liverpool", "LS": "Leeds",
    "S": "Sheffield", "NG": "Nottingham", "LE": "Leicester", "CV": "Coventry",
    "DE": "Derby", "DN": "Doncaster", "HD": "Huddersfield", "HU": "Hull",
    "NE": "Newcastle", "SR": "Sunderland", "TS": "Middlesbrough", "YO": "York",
    "BD": "Bradford", "HG": "Harrogate", "WF": "Wakefield", "OL": "Oldham",
    "SK": "Stockport", "WA": "Warrington", "WN": "Wigan", "BL": "Bolton",
    "BB": "Blackburn", "PR": "Preston", "FY": "Blackpool", "LA": "Lancaster",
    "CA": "Carlisle", "DL": "Darlington", "DH": "Durham", "NR": "Norwich",
    "IP": "Ipswich", "CB": "Cambridge", "PE": "Peterborough", "NN": "Northampton",
    "MK": "Milton Keynes", "LU": "Luton", "AL": "St Albans", "HP": "Hemel Hempstead",
    "SL": "Slough", "RG": "Reading", "OX": "Oxford", "SN": "Swindon",
    "BA": "Bath", "BS": "Bristol", "GL": "Gloucester", "HR": "Hereford",
    "WR": "Worcester", "DY": "Dudley", "WV": "Wolverhampton", "WS": "Walsall",
    "ST": "Stoke-on-Trent", "TF": "Telford", "SY": "Shrewsbury", "CH": "Chester",
    "CW": "Crewe", "CF": "Cardiff", "NP": "Newport", "SA": "Swansea",
    "LD": "Llandrindod Wells", "LL": "Llandudno", "AB": "Aberdeen", "DD": "Dundee",
    "EH": "Edinburgh", "FK": "Falkirk", "G": "Glasgow", "IV": "Inverness",
    "KA": "Kilmarnock", "KY": "Kirkcaldy", "ML": "Motherwell", "PA": "Paisley",
    "PH": "Perth", "BT": "Belfast",
}


class InvalidLocation(ValueError):
    """Raised before any provider is called when the location is unusable."""


def is_postcode(value: str) -> bool:
    return bool(POSTCODE_RE.match(value))


def city_for_postcode(postcode: str) -> str:
    match = POSTCODE_AREA_RE.match(postcode.upper())
    if match and match.group(1) in POSTCODE_AREAS:
        return POSTCODE_AREAS[match.group(1)]
    return "United Kingdom"


def clean_location(raw: str | None) -> str:
    if raw is None or not raw.strip():
        raise InvalidLocation("Location is required")

    cleaned = " ".join(raw.split())
    if is_postcode(cleaned):
        postcode = cleaned.upper()
        city = city_for_postcode(postcode)
        logger.info("Postcode %s mapped to %s", postcode, city)
        return city

    cleaned = cleaned[:MAX_LENGTH]
    if len(cleaned) < MIN_LENGTH:
        raise InvalidLocation(f"Location must be at least {MIN_LENGTH} characters long")
    if not ALLOWED_RE.match(cleaned):
        raise InvalidLocation("Location contains invalid characters")
    return cleaned


__all__ = ["InvalidLocation", "clean_location", "city_for_postcode", "is_postcode"]
