"""
AI飲食店エリア分析 - HTML Text Extraction
Turns a fetched page into plain text and a short lead summary.
"""

import re
from bs4 import BeautifulSoup

NON_CONTENT_TAGS = ['script', 'style', 'noscript', 'iframe', 'svg']

CHROME_TAGS = ['header', 'nav', 'footer', 'aside', 'form']
CHROME_SELECTORS = '.header, .footer, .nav, .sidebar, .menu, #header, #footer, #nav'
MAIN_SELECTORS = 'main, article, .main, .content, #main, #content, .entry-content'

BOILERPLATE = re.compile(r'^(TOP|HOME|MENU|Cookie|©|Copyright|All Rights Reserved)')
MIN_SUMMARY_LINE = 20
SUMMARY_LINES = 2
SUMMARY_LENGTH = 200


def _drop(elements):
    for el in elements:
        if not el.decomposed:
            el.decompose()


def extract_text(html):
    """Extract the visible body text of a page."""
    soup = BeautifulSoup(html or '', 'html.parser')
    _drop(soup.find_all(NON_CONTENT_TAGS))

    root = soup.body or soup
    text = root.get_text()
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n\s*\n', '\n', text)
    return text.strip()


def extract_summary(html):
    """Return the first meaningful lines of the main content, up to 200 characters."""
    try:
        soup = BeautifulSoup(html or '', 'html.parser')
        _drop(soup.find_all(NON_CONTENT_TAGS + CHROME_TAGS))
        _drop(soup.select(CHROME_SELECTORS))

        main = soup.select_one(MAIN_SELECTORS)
        text = (main or soup.body or soup).get_text()
    except Exception as e:
        print(f"[HtmlText] Summary error: {e}")
        return ''

    meaningful = []
    for line in re.split(r'[\n\r]+', text):
        line = re.sub(r'\s+', ' ', line).strip()
        if len(line) < MIN_SUMMARY_LINE:
            continue
        if BOILERPLATE.match(line):
            continue
        meaningful.append(line)
        if len(meaningful) >= SUMMARY_LINES:
            break
    return ' '.join(meaningful)[:SUMMARY_LENGTH]
