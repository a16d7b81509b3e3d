"""
AI飲食店エリア分析 - Page Fetcher
Fetches pages through a chain of third-party relays. The relay that last
worked is remembered and tried first on the next page.
"""

from functools import partial

import requests

from config import (
    RELAYS, RELAY_TIMEOUT, STICKY_RELAY_TIMEOUT, MIN_PAGE_LENGTH, USER_AGENT,
    build_relay_url
)
from fallback import try_in_order
from models import FetchedPage, STATUS_OK, STATUS_FAILED

NO_RELAY = -1


def _decode(resp):
    # Relays often drop the charset; requests then assumes ISO-8859-1
    if (resp.encoding or '').lower() in ('', 'iso-8859-1'):
        resp.encoding = resp.apparent_encoding or 'utf-8'
    return resp.text


class CrawlState:
    """Mutable crawl state owned by one analysis run."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.sticky_relay = NO_RELAY
        self.active_relay = ''
        self.debug_pages = []

    def record(self, url, status, size, text=''):
        self.debug_pages.append({'url': url, 'status': status, 'size': size, 'text': text})


class PageFetcher:
    def __init__(self, state=None, relays=None, session=None, progress=None):
        self.state = state or CrawlState()
        self.relays = relays or RELAYS
        self.progress = progress
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})

    def relay_order(self):
        """Indices of the relays to try, sticky relay first."""
        order = list(range(len(self.relays)))
        sticky = self.state.sticky_relay
        if sticky != NO_RELAY:
            order.remove(sticky)
            order.insert(0, sticky)
        return order

    def fetch(self, url):
        """Return the page HTML, or None when every relay failed."""
        sticky = self.state.sticky_relay
        attempts = [
            partial(self._attempt, url, idx, idx == sticky and pos == 0)
            for pos, idx in enumerate(self.relay_order())
        ]
        html = try_in_order(attempts)
        if html is None:
            print(f"[Fetcher] All relays failed for: {url}")
        return html

    def fetch_page(self, url):
        html = self.fetch(url)
        if html is None:
            return FetchedPage(url=url, html=None, status=STATUS_FAILED)
        return FetchedPage(url=url, html=html, status=STATUS_OK, relay=self.state.active_relay)

    def _attempt(self, url, idx, is_sticky):
        name, template = self.relays[idx]
        timeout = STICKY_RELAY_TIMEOUT if is_sticky else RELAY_TIMEOUT
        try:
            resp = self.session.get(build_relay_url(template, url), timeout=timeout)
            if not resp.ok:
                raise requests.HTTPError(f"HTTP {resp.status_code}")
            html = _decode(resp)
            if html and len(html) > MIN_PAGE_LENGTH:
                self.state.sticky_relay = idx
                self.state.active_relay = name
                return html
        except requests.RequestException as e:
            print(f"[Fetcher/{name}] Failed: {url} - {e}")
            if is_sticky:
                self._drop_sticky(name)
            return None

        print(f"[Fetcher/{name}] Empty response: {url}")
        if is_sticky:
            self._drop_sticky(name)
        return None

    def _drop_sticky(self, name):
        self.state.sticky_relay = NO_RELAY
        if self.progress:
            self.progress.add(f"  プロキシ {name} 失敗、代替を試行...", 'info')
