"""
AI飲食店エリア分析 - Business Analyzer
Runs one full analysis: crawl the site, let the AI read the company profile,
keep only the store addresses, then build per-area and cross-area market data.
"""

import json
import re
import time
from datetime import datetime, timezone

import requests

from ai_client import AIClient, AnalysisError, parse_json
from areas import unique_areas
from config import RESTAURANT_CONFIG
from crawler import WebCrawler
from fallback import try_in_order
from fetcher import CrawlState, PageFetcher
from market_data import MarketDataFetcher
from models import AnalysisReport
from progress import ProgressLog

INDEX_ARRAY = re.compile(r'\[[\d\s,]+\]')
CONTEXT_IN_PROMPT = 80


# =========================================
# PROMPTS
# =========================================
def build_analysis_prompt(url, content):
    if content:
        content_section = f"\n以下はWebサイトから取得したテキストの一部です:\n---\n{content}\n---"
    else:
        content_section = '\nWebサイトの内容は取得できませんでしたが、URLから推測してください。'

    return f"""あなたは飲食業界の企業分析と市場調査の専門家です。
以下のURLの飲食店・飲食企業について分析してください。

URL: {url}
{content_section}

重要: 住所は必ずWebサイトの情報から特定してください。店舗情報ページやフッターに記載があります。
複数の店舗がある場合、本店の住所を"address"に、他の店舗は"branches"にリストしてください。

以下のJSON形式で回答してください。マークダウンのコードブロックで囲まず、純粋JSONのみ返してください:
{{
  "company": {{
    "name": "店舗名・企業名",
    "address": "本店の住所（〒XXX-XXXX 都道府県市区町村以降）",
    "branches": [
      {{"name": "支店名", "address": "住所"}}
    ],
    "business_type": "飲食業態（例: イタリアン、居酒屋、カフェ、ラーメン等）",
    "main_services": "主力メニュー・サービス",
    "cuisine_type": "料理ジャンル",
    "price_range": "客単価帯（例: ランチ1000-1500円、ディナー3000-5000円）",
    "strengths": "強み・特徴（100文字以内）",
    "weaknesses": "改善余地・課題（100文字以内）",
    "keywords": ["キーワード1", "キーワード2", "キーワード3"]
  }},
  "location": {{
    "prefecture": "本店の都道府県",
    "city": "本店の市区町村"
  }}
}}"""


def build_filter_prompt(company, addresses):
    lines = []
    for i, a in enumerate(addresses, 1):
        tel = f" TEL:{a.phone}" if a.phone else ''
        lines.append(f"{i}. {a.postal_code} {a.address}{tel}\n"
                     f"   出現ページ: {a.page or '不明'}\n"
                     f"   前後テキスト: 「{(a.context or '')[:CONTEXT_IN_PROMPT]}」")
    address_list = '\n\n'.join(lines)

    return f"""■ 企業名: {company.get('name') or ''}
■ 業種: 飲食店 {company.get('business_type') or ''}

以下はこの飲食店のWebサイトの各ページから抽出された住所一覧です。
各住所には「出現ページ名」と「前後テキスト」を付記しています。

{address_list}

【判定基準】
✅ 店舗・事業所として採用する住所:
- 本店・支店・直営店・FC店の住所
- 本社・事務所の住所
- 「店舗一覧」「アクセス」ページに記載された住所
- ヘッダー/フッターに記載された企業住所

❌ 除外すべき住所:
- 仕入先・納入業者・取引先の住所
- 求人サイトの勤務地（自社以外）
- イベント会場・出店先の住所
- 免許の登録先（保健所等）の住所

以下のJSON形式で回答してください:
{{"offices":[{{"no":1,"is_office":true,"reason":"本店住所（店舗情報ページ）"}},{{"no":2,"is_office":false,"reason":"仕入先の住所"}},...]}}"""


def build_cross_area_prompt(summaries):
    return f"""以下は飲食企業の各エリアの商圏データです。経営層向けに出店戦略を分析してください。
特に以下の観点で分析してください:
- ランチ需要 vs ディナー需要のバランス
- 競合飲食店の密度と差別化余地
- テイクアウト・デリバリー展開の可能性
- 客層（オフィスワーカー、学生、ファミリー、観光客）

{json.dumps(summaries, ensure_ascii=False, indent=2)}

以下のJSON形式で回答してください:
{{
  "opportunity_ranking": [{{"rank":1,"area":"エリア名","reason":"理由(50字以内)","score":85}},...],
  "strategic_summary": "全体の出店戦略サマリー(200字以内)",
  "sales_advice": "営業・マーケティングチームへのアドバイス(200字以内)",
  "risk_areas": "リスクのあるエリアと理由(100字以内)",
  "growth_areas": "成長が見込めるエリアと理由(100字以内)"
}}"""


def summarize_market(record):
    """Flatten one market record into the row sent to the cross-area analysis."""
    data = record.data or {}
    population = data.get('population') or {}
    summary = {
        'area': record.area.label,
        'isHQ': record.area.is_headquarters,
        'population': population.get('total_population') or 0,
        'households': population.get('households') or 0,
    }
    for key, section in data.items():
        if key in ('area_name', 'population') or not isinstance(section, dict):
            continue
        for sub_key, value in section.items():
            summary[f"{key}_{sub_key}"] = value
    return summary


# =========================================
# ADDRESS FILTER RESPONSES
# =========================================
def _pick(addresses, number):
    """1-based lookup that ignores out-of-range numbers."""
    try:
        idx = int(number) - 1
    except (TypeError, ValueError):
        return None
    if 0 <= idx < len(addresses):
        return addresses[idx]
    return None


def verdicts_from_offices(raw, addresses):
    """Structured answer: {"offices": [{"no", "is_office", "reason"}, ...]}."""
    try:
        result = parse_json(raw)
    except AnalysisError:
        return None
    offices = result.get('offices') if isinstance(result, dict) else None
    if not offices:
        return None

    verdicts = []
    for item in offices:
        if not isinstance(item, dict):
            continue
        addr = _pick(addresses, item.get('no'))
        if addr is not None:
            verdicts.append((addr, bool(item.get('is_office')), item.get('reason') or ''))
    return verdicts


def verdicts_from_index_array(raw, addresses):
    """Bare answer such as "[1, 3]". Assumes the numbers follow the submitted order."""
    match = INDEX_ARRAY.search(raw or '')
    if not match:
        return None
    try:
        numbers = json.loads(match.group(0))
    except ValueError:
        return None
    kept = [_pick(addresses, n) for n in numbers]
    return [(addr, True, '') for addr in kept if addr is not None]


class BusinessAnalyzer:
    """Sequences crawl, AI profile, address filtering and market synthesis for one URL."""

    def __init__(self, ai_backend, stats, session=None, sleep=time.sleep, clock=time.monotonic,
                 echo=True):
        self.ai_backend = ai_backend
        self.stats = stats
        self.session = session
        self.sleep = sleep
        self.clock = clock
        self.echo = echo

        self.progress = None
        self.state = None
        self.ai = None
        self.crawl_result = None

    def _start_run(self):
        self.progress = ProgressLog(echo=self.echo)
        self.state = CrawlState()
        self.ai = AIClient(self.ai_backend, progress=self.progress, sleep=self.sleep, clock=self.clock)
        self.stats.progress = self.progress
        self.crawl_result = None

    def _log(self, message, level='normal'):
        self.progress.add(message, level)

    def analyze(self, url):
        """Run every phase and return the AnalysisReport. Raises AnalysisError on fatal failures."""
        self._start_run()
        self._log('飲食店エリア分析を開始します...', 'info')

        try:
            content, raw_addresses = self._crawl(url)
            analysis = self._extract_profile(url, content)
            company = analysis['company']
            locations = self._filter_addresses(company, raw_addresses)
            markets = self._build_markets(analysis, locations)
            insight = self._cross_area(markets)
        except AnalysisError as e:
            self._log(f"エラー: {e}", 'error')
            raise

        report = AnalysisReport(
            url=url,
            company=company,
            location=analysis['location'],
            locations=locations,
            markets=markets,
            cross_area_insight=insight,
            industry={'id': RESTAURANT_CONFIG['id'], 'name': RESTAURANT_CONFIG['name'], 'confidence': 1.0},
            timestamp=datetime.now(timezone.utc).isoformat(),
            data_source=f"e-Stat + {self.ai_backend.provider}"
        )
        self._log('飲食業分析レポート作成完了！', 'success')
        return report

    # ① Crawl
    def _crawl(self, url):
        self._log(f"Webサイトを巡回中: {url}")
        fetcher = PageFetcher(state=self.state, session=self.session, progress=self.progress)
        crawler = WebCrawler(fetcher=fetcher, state=self.state, progress=self.progress)
        self.crawl_result = crawler.crawl(url)

        if self.crawl_result is None:
            self._log('プロキシ経由の取得に失敗。URLのみでAI分析を実行します。', 'info')
            return '', []
        self._log(f"サイト内容の取得完了 (合計 {len(self.crawl_result.corpus)}文字)", 'success')
        return self.crawl_result.corpus, self.crawl_result.addresses

    # ② Company profile
    def _extract_profile(self, url, content):
        self._log('AIで店舗情報を分析中...')
        analysis = self.ai.complete_json(build_analysis_prompt(url, content))
        if not isinstance(analysis, dict):
            analysis = {}
        for key in ('company', 'location'):
            if not isinstance(analysis.get(key), dict):
                analysis[key] = {}
        name = analysis['company'].get('name')
        self._log(f"分析完了: {name or '店舗情報取得'}", 'success')
        return analysis

    # ③ Address filtering
    def _filter_addresses(self, company, addresses):
        if len(addresses) <= 1:
            return list(addresses)

        self._log(f"抽出住所 {len(addresses)}件をAIで店舗判定中...")
        try:
            raw = self.ai.complete(build_filter_prompt(company, addresses))
        except (AnalysisError, requests.RequestException) as e:
            self._log(f"AI店舗判定スキップ: {e}", 'info')
            return list(addresses)

        verdicts = try_in_order([verdicts_from_offices, verdicts_from_index_array], raw, addresses)
        if verdicts is None:
            self._log('AI判定のパースに失敗 → 全住所を使用', 'info')
            return list(addresses)

        kept = []
        for addr, is_office, reason in verdicts:
            if is_office:
                kept.append(addr)
                self._log(f"  ✅ {addr.address} → {reason or '店舗'}", 'success')
            else:
                self._log(f"  ❌ {addr.address} → {reason or '除外'}", 'info')

        removed = len(addresses) - len(kept)
        if removed > 0:
            self._log(f"AI判定: {removed}件の非店舗住所を除外 → 店舗 {len(kept)}件", 'success')
        else:
            self._log(f"AI判定: 全 {len(addresses)}件が店舗と確認", 'success')
        return kept

    # ④ Per-area markets
    def _build_markets(self, analysis, locations):
        self._log(f"サイトから店舗住所 {len(locations)}件を確認済み", 'info')
        areas = unique_areas(analysis.get('location'), locations)
        self._log(f"分析対象エリア: {len(areas)}件", 'info')

        fetcher = MarketDataFetcher(self.ai, self.stats, progress=self.progress)
        company = analysis['company']
        markets = []
        for i, area in enumerate(areas, 1):
            self._log(f"[{i}/{len(areas)}] 飲食市場データ取得: {area.label}")
            markets.append(fetcher.fetch_area(company, area))
            self._log(f"  → {area.label} 完了", 'success')

        self._log(f"全 {len(markets)} エリアの飲食市場データ収集完了", 'success')
        return markets

    # ⑤ Cross-area insight
    def _cross_area(self, markets):
        if len(markets) < 2:
            return None

        self._log('全エリア横断分析（飲食業向け）を実行中...')
        summaries = [summarize_market(m) for m in markets]
        try:
            insight = self.ai.complete_json(build_cross_area_prompt(summaries))
        except (AnalysisError, requests.RequestException) as e:
            self._log(f"横断分析スキップ: {e}", 'info')
            return None
        self._log('横断分析完了', 'success')
        return insight
