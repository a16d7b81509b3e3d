"""
AI飲食店エリア分析 - Address Extraction
Scans raw HTML for 〒-anchored Japanese addresses and the phone number printed
next to them. Matching is deliberately loose; the analyzer asks the AI to weed
out addresses that are not the company's own stores.
"""

import re

from models import ExtractedAddress

TAG_PATTERN = re.compile(r'<[^>]+>')
ADDRESS_PATTERN = re.compile(r'〒([0-9]{3}-?[0-9]{4})\s*([^〒]{5,120})')
CONTACT_LABEL = re.compile(r'^(.+?)(?:\s*(?:TEL|FAX|電話))', re.IGNORECASE)
LABELED_PHONE = re.compile(r'(?:TEL|電話)[\s:：]*([0-9][0-9\-]+[0-9])', re.IGNORECASE)
BARE_PHONE = re.compile(r'([0-9]{2,4}-[0-9]{2,4}-[0-9]{3,4})')
ADMIN_UNIT = re.compile(r'[都道府県市区町村郡]')

MIN_ADDRESS = 5
MAX_ADDRESS = 100
CONTEXT_CHARS = 40


def html_to_plain(html):
    text = TAG_PATTERN.sub(' ', html)
    return text.replace('&nbsp;', ' ').replace('&amp;', '&')


def _split_phone(raw):
    """Separate the address proper from a trailing TEL/FAX block and find the phone number."""
    label = CONTACT_LABEL.match(raw)
    address = label.group(1).strip() if label else raw

    phone = ''
    labeled = LABELED_PHONE.search(raw)
    if labeled:
        phone = labeled.group(1)
    else:
        bare = BARE_PHONE.search(raw)
        if bare and bare.group(1) not in address:
            phone = bare.group(1)
    return address, phone


def extract_addresses(html, page_name=''):
    """Return the addresses found in one page, at most one per postal code."""
    if not html:
        return []

    plain = html_to_plain(html)
    results = []
    seen = set()

    for m in ADDRESS_PATTERN.finditer(plain):
        zip_code = m.group(1).strip()
        if zip_code in seen:
            continue
        seen.add(zip_code)

        address, phone = _split_phone(m.group(2).strip())
        address = re.sub(r'\s+', ' ', address).strip()
        if len(address) < MIN_ADDRESS or len(address) > MAX_ADDRESS:
            continue
        if not ADMIN_UNIT.search(address):
            continue

        start = max(0, m.start() - CONTEXT_CHARS)
        end = min(len(plain), m.end() + CONTEXT_CHARS)
        context = re.sub(r'\s+', ' ', plain[start:end]).strip()

        results.append(ExtractedAddress(
            postal_code='〒' + zip_code,
            address=address,
            phone=phone,
            page=page_name or '',
            context=context
        ))

    return results


def merge_addresses(*address_lists):
    """Merge per-page address lists, keeping the first entry for each postal code."""
    merged = []
    seen = set()
    for addresses in address_lists:
        for addr in addresses:
            if addr.postal_code in seen:
                continue
            seen.add(addr.postal_code)
            merged.append(addr)
    return merged
