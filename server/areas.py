"""
AI飲食店エリア分析 - Area Resolver
Maps a free-text Japanese address to a (prefecture, municipality) market area.
"""

import re

from config import DESIGNATED_CITIES
from models import MarketArea

PREFECTURE_PATTERN = re.compile(r'(北海道|東京都|大阪府|京都府|.{2,3}県)')
WARD_PATTERN = re.compile(r'^(.+?区)')
CITY_PATTERN = re.compile(r'^(.+?市)(.+?区)?')
DISTRICT_PATTERN = re.compile(r'^(.+?郡)(.+?[町村])')


def _municipality(rest, prefecture):
    """Leading municipality of the text that follows the prefecture."""
    if prefecture == '東京都':
        ward = WARD_PATTERN.match(rest)
        return ward.group(1) if ward else ''

    m = CITY_PATTERN.match(rest) or DISTRICT_PATTERN.match(rest)
    if m:
        return m.group(1) + (m.group(2) or '')
    ward = WARD_PATTERN.match(rest)
    return ward.group(1) if ward else ''


def resolve_area(address):
    """Return the MarketArea of an address, or None when no prefecture or known city is found."""
    if not address:
        return None

    pref_match = PREFECTURE_PATTERN.search(address)
    if pref_match:
        prefecture = pref_match.group(1)
        rest = address[pref_match.end():]
        return MarketArea.build(prefecture, _municipality(rest, prefecture))

    for city, prefecture in DESIGNATED_CITIES.items():
        idx = address.find(city)
        if idx < 0:
            continue
        m = CITY_PATTERN.match(address[idx:])
        municipality = m.group(1) + (m.group(2) or '') if m else city
        return MarketArea.build(prefecture, municipality)

    return None


def unique_areas(hq_location, addresses):
    """Deduplicated market areas: the headquarters first, then one per new store area."""
    areas = []
    seen = set()

    hq_location = hq_location or {}
    if hq_location.get('prefecture'):
        hq = MarketArea.build(hq_location['prefecture'], hq_location.get('city') or '', is_headquarters=True)
        seen.add(hq.label)
        areas.append(hq)

    for addr in addresses:
        area = resolve_area(addr.address)
        if area and area.label not in seen:
            seen.add(area.label)
            areas.append(area)
    return areas
