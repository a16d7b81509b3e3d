"""
AI飲食店エリア分析 - Web Crawler
Crawls the top page of a restaurant site and its highest-ranked internal links,
collecting a text corpus and every 〒 address printed on the site.
"""

from addresses import extract_addresses, merge_addresses
from config import (
    MAX_SUB_PAGES, MIN_PAGE_TEXT, TOP_PAGE_EXCERPT, SUB_PAGE_EXCERPT,
    MAX_CORPUS_LENGTH, CORPUS_SEPARATOR, TOP_PAGE_NAME
)
from fetcher import CrawlState, PageFetcher
from html_text import extract_text, extract_summary
from links import extract_links, rank_links
from models import CrawlResult, CrawledPage, STATUS_OK, STATUS_FAILED
from progress import ProgressLog


class WebCrawler:
    def __init__(self, fetcher=None, state=None, progress=None, max_pages=MAX_SUB_PAGES):
        self.state = state or (fetcher.state if fetcher else CrawlState())
        self.progress = progress or ProgressLog(echo=False)
        self.fetcher = fetcher or PageFetcher(state=self.state, progress=self.progress)
        self.max_pages = max_pages

    def crawl(self, start_url):
        """Crawl starting from the given URL. Returns None when the top page cannot be fetched."""
        self.state.reset()
        self.progress.add('トップページを取得中...', 'info')

        top = self.fetcher.fetch_page(start_url)
        if not top.ok:
            self.state.record(start_url, 'FAILED (timeout/error)', 0, TOP_PAGE_NAME)
            self.progress.add('トップページの取得に失敗しました', 'info')
            return None

        top_text = extract_text(top.html)
        self.progress.add(f"トップページ取得完了 ({len(top_text)}文字)", 'success')
        self.state.record(start_url, f"OK ({top.relay})", len(top.html), TOP_PAGE_NAME)

        targets = self._select_targets(top.html, start_url)

        excerpts = [f"【{TOP_PAGE_NAME}】\n{top_text[:TOP_PAGE_EXCERPT]}"]
        pages = [CrawledPage(TOP_PAGE_NAME, start_url, len(top_text), STATUS_OK)]
        address_lists = [extract_addresses(top.html, TOP_PAGE_NAME)]

        for i, target in enumerate(targets):
            self.progress.add(f"[{i + 1}/{len(targets)}] {target.name}")
            page = self.fetcher.fetch_page(target.url)
            if not page.ok:
                pages.append(CrawledPage(target.name, target.url, 0, STATUS_FAILED))
                self.state.record(target.url, STATUS_FAILED, 0, target.link_text)
                continue

            self.state.record(target.url, STATUS_OK, len(page.html), target.link_text)
            address_lists.append(extract_addresses(page.html, target.name))

            text = extract_text(page.html)
            if len(text) > MIN_PAGE_TEXT:
                excerpts.append(f"【{target.name}】\n{text[:SUB_PAGE_EXCERPT]}")
                pages.append(CrawledPage(target.name, target.url, len(text), STATUS_OK,
                                         extract_summary(page.html)))

        ok_count = sum(1 for p in pages if p.status == STATUS_OK)
        self.progress.add(f"合計 {ok_count}/{len(targets) + 1} ページ取得完了", 'success')

        addresses = merge_addresses(*address_lists)
        self.progress.add(f"HTMLソースから住所 {len(addresses)}件を直接検出",
                          'success' if addresses else 'info')

        corpus = CORPUS_SEPARATOR.join(excerpts)[:MAX_CORPUS_LENGTH]
        return CrawlResult(corpus=corpus, addresses=addresses, pages=pages, scored_links=targets)

    def _select_targets(self, html, start_url):
        """Rank the top page's internal links and keep the best max_pages."""
        links = extract_links(html, start_url)
        self.progress.add(f"内部リンク {len(links)}件を検出", 'info')

        links = [link for link in links if link.url not in (start_url, start_url + '/')]
        ranked = rank_links(links)
        targets = ranked[:self.max_pages]
        self.progress.add(f"巡回対象: {len(targets)}ページ（全 {len(ranked)}リンク中）", 'info')
        return targets
