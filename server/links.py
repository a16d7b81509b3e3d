"""
AI飲食店エリア分析 - Link Extraction & Scoring
Finds same-site links in raw markup and ranks them by how likely they lead to
company, store or menu information.
"""

import re
from urllib.parse import urljoin, urlparse

from config import (
    IMPORTANT_PATH_KEYWORDS, PATH_KEYWORD_SCORE, TEXT_KEYWORD_SCORE,
    LINK_TEXT_BONUSES, DEEP_PATH_SLASHES, DEEP_PATH_PENALTY, NON_HTML_EXTENSIONS
)
from models import CrawlTarget

# Regex over raw markup so broken HTML still yields its anchors
LINK_PATTERN = re.compile(
    r'<a\s[^>]*href\s*=\s*["\']([^"\']+)["\'][^>]*>(.*?)</a>',
    re.IGNORECASE | re.DOTALL
)
TAG_PATTERN = re.compile(r'<[^>]+>')
MAX_LINK_TEXT = 50


def _is_non_html(path):
    return any(path.endswith(ext) for ext in NON_HTML_EXTENSIONS)


def extract_links(html, base_url):
    """Extract same-host links, deduplicated by origin + path."""
    base = urlparse(base_url)
    if not base.scheme or not base.hostname:
        return []

    links = []
    seen = set()
    for match in LINK_PATTERN.finditer(html or ''):
        href = match.group(1).strip()
        if not href or href.startswith('#') or href.startswith('mailto:') or href.startswith('tel:'):
            continue
        try:
            resolved = urlparse(urljoin(base_url, href))
            hostname = resolved.hostname
        except ValueError:
            continue
        if hostname != base.hostname:
            continue

        raw_path = resolved.path or '/'
        path = raw_path.lower()
        if _is_non_html(path):
            continue

        key = f"{resolved.scheme}://{resolved.netloc}{raw_path}"
        if key in seen:
            continue
        seen.add(key)

        text = TAG_PATTERN.sub('', match.group(2)).strip()
        links.append(CrawlTarget(url=key, path=path, link_text=text[:MAX_LINK_TEXT]))
    return links


def score_link(link):
    """Additive relevance score from the link path and link text."""
    score = 0
    path = link.path
    text = link.link_text

    for keyword in IMPORTANT_PATH_KEYWORDS:
        if keyword in path:
            score += PATH_KEYWORD_SCORE
        if keyword in text:
            score += TEXT_KEYWORD_SCORE

    for phrases, bonus in LINK_TEXT_BONUSES:
        if any(phrase in text for phrase in phrases):
            score += bonus

    if path.count('/') > DEEP_PATH_SLASHES:
        score -= DEEP_PATH_PENALTY

    return score


def rank_links(links):
    """Score every link and sort best first; ties keep discovery order."""
    for link in links:
        link.score = score_link(link)
    return sorted(links, key=lambda link: link.score, reverse=True)
