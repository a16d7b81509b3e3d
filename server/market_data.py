"""
AI飲食店エリア分析 - Market Data Fetcher
Fetches e-Stat open data for an area and asks the AI to estimate the rest of
the restaurant market picture around it.
"""

from functools import partial

import requests

from config import (
    ESTAT_API_URL, POPULATION_STATS_ID, ESTAT_TIMEOUT, PERSONS_PER_HOUSEHOLD,
    PREFECTURE_CODES, RESTAURANT_CONFIG
)
from fallback import try_in_order
from models import MarketRecord

POPULATION_SOURCE = 'e-Stat 国勢調査'
PLAUSIBLE_MIN = 100


class StatsClient:
    """e-Stat queries, either direct (appId) or through the worker proxy."""

    def __init__(self, estat_key='', worker_base='', session=None, progress=None):
        self.estat_key = estat_key
        self.worker_base = (worker_base or '').rstrip('/')
        self.session = session or requests.Session()
        self.progress = progress

    @property
    def available(self):
        return bool(self.estat_key or self.worker_base)

    def _log(self, message, level='info'):
        if self.progress:
            self.progress.add(message, level)

    def _query(self, kind, stats_data_id, area_code, limit=100):
        """Run one getStatsData query; returns the VALUE list or None."""
        params = {'statsDataId': stats_data_id, 'cdArea': area_code or '', 'limit': limit}
        if self.estat_key:
            url = ESTAT_API_URL
            params['appId'] = self.estat_key
        elif self.worker_base:
            url = f"{self.worker_base}/api/estat/{kind}"
        else:
            return None

        try:
            resp = self.session.get(url, params=params, timeout=ESTAT_TIMEOUT)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            print(f"[MarketData] e-Stat error ({stats_data_id}/{area_code}): {e}")
            return None
        return extract_values(data)

    # =========================================
    # ① POPULATION & HOUSEHOLDS
    # =========================================
    def fetch_population(self, prefecture):
        """Total population and households for a prefecture, or None."""
        pref_code = PREFECTURE_CODES.get(prefecture)
        if not pref_code or not self.available:
            return None

        self._log('e-Stat APIから人口データを取得中...')
        attempts = [
            partial(self._query, 'population', POPULATION_STATS_ID, pref_code + '000'),
            partial(self._query, 'population', POPULATION_STATS_ID, pref_code),
        ]
        values = try_in_order(attempts)
        if not values:
            self._log('e-Stat: 該当データがありません。AI推計に切り替えます。')
            return None

        population, households = pick_population(values)
        if not population:
            self._log('e-Stat: 人口データを特定できません。AI推計に切り替えます。')
            return None

        self._log(f"e-Stat: 人口データ取得成功 ({population:,}人)", 'success')
        return {
            'total_population': population,
            'households': households or round(population / PERSONS_PER_HOUSEHOLD),
            'source': POPULATION_SOURCE,
            'from_estat': True
        }

    # =========================================
    # ② GENERIC DATASETS
    # =========================================
    def fetch_generic(self, stats_data_id, area_code, limit=100):
        if not stats_data_id:
            return None
        return self._query('query', stats_data_id, area_code, limit)

    def fetch_for_restaurant(self, pref_code, city=''):
        """Population plus every restaurant dataset for one prefecture."""
        results = {}
        prefecture = next((p for p, code in PREFECTURE_CODES.items() if code == pref_code), None)
        if prefecture:
            results['population'] = self.fetch_population(prefecture)

        for dataset in RESTAURANT_CONFIG['estat_datasets']:
            self._log(f"  e-Stat: {dataset['name']} を取得中...")
            values = self.fetch_generic(dataset['id'], pref_code + '000')
            if values:
                results[dataset['key']] = values
                self._log(f"  e-Stat: {dataset['name']} 取得成功 ({len(values)}件)", 'success')
            else:
                self._log(f"  e-Stat: {dataset['name']} データなし")
        return results


def extract_values(data):
    """GET_STATS_DATA.STATISTICAL_DATA.DATA_INF.VALUE as a list, or None."""
    try:
        values = data['GET_STATS_DATA']['STATISTICAL_DATA']['DATA_INF']['VALUE']
    except (KeyError, TypeError):
        return None
    if isinstance(values, dict):
        values = [values]
    return values or None


def pick_population(values):
    """Pick (population, households) from tabulated census values."""
    population = None
    households = None
    for v in values:
        try:
            val = int(str(v.get('$', '')).replace(',', ''))
        except (ValueError, AttributeError):
            continue
        tab = v.get('@tab', '')
        cat01 = v.get('@cat01', '')
        if tab == '020' or '0010' in cat01:
            if not population or val > PLAUSIBLE_MIN:
                population = val
        if tab == '040' or '0020' in cat01:
            if not households or val > PLAUSIBLE_MIN:
                households = val
    return population, households


def merge_population(market_data, estat_population):
    """Overwrite AI-estimated population fields with e-Stat figures when available."""
    if not estat_population or not estat_population.get('from_estat'):
        return market_data
    population = market_data.get('population')
    if not isinstance(population, dict):
        population = market_data['population'] = {}
    population['total_population'] = estat_population['total_population']
    population['households'] = estat_population['households']
    population['source'] = estat_population['source']
    return market_data


def build_market_prompt(company, estat_data, area):
    """Restaurant market estimation prompt for one area."""
    pref = area.prefecture or '不明'
    city = area.municipality or ''

    estat_info = ''
    population = (estat_data or {}).get('population')
    if population and population.get('from_estat'):
        estat_info = ('\n\n【参考: e-Stat政府統計データ】\n'
                      f"・総人口: {population['total_population']:,}人\n"
                      f"・世帯数: {population['households']:,}世帯\n")
        for key, value in estat_data.items():
            if key != 'population' and value:
                estat_info += f"・{key}: データあり\n"
        estat_info += 'これらの実データを基準にして、他の項目も整合性のある値を推定してください。\n'

    return f"""あなたは日本の飲食業界・商圏分析の専門家です。
以下の地域の飲食業市場データを推定・提供してください。

対象エリア: {pref} {city}
企業の事業: {company.get('business_type') or '飲食業'}
主力メニュー: {company.get('main_services') or '不明'}
料理ジャンル: {company.get('cuisine_type') or '不明'}
客単価帯: {company.get('price_range') or '不明'}
{estat_info}

重要KPI: {', '.join(RESTAURANT_CONFIG['kpis'])}, ランチ需要, ディナー需要
できる限り正確な数値を提供してください。不明な場合は合理的な推計値を提供してください。

以下のJSON形式で回答してください。マークダウンのコードブロックで囲まず、純粋JSONのみ返してください:
{{
  "area_name": "{pref} {city}",
  "population": {{ "total_population": 0, "households": 0, "age_20_50_pct": 0, "elderly_pct": 0, "source": "" }},
  "dining_market": {{
    "monthly_dining_spend": 0, "annual_dining_spend": 0, "food_spend_ratio": 0,
    "avg_lunch_price": 0, "avg_dinner_price": 0, "delivery_demand_index": 0,
    "takeout_ratio_pct": 0, "source": "推計"
  }},
  "competition": {{
    "restaurant_count": 0, "per_10k_population": 0, "chain_ratio_pct": 0,
    "same_genre_count": 0, "new_openings_1yr": 0, "closure_rate_pct": 0
  }},
  "consumer_profile": {{
    "avg_household_income": 0, "single_household_pct": 0, "office_worker_density": 0,
    "student_population": 0, "tourist_visitors_annual": 0
  }},
  "potential": {{
    "target_population": 0, "daily_foot_traffic": 0, "lunch_demand": 0, "dinner_demand": 0,
    "weekend_demand_index": 0, "seat_turnover_potential": 0,
    "ai_insight": "このエリアでの飲食店出店・経営戦略に関する提言(200字)"
  }}
}}"""


class MarketDataFetcher:
    """Builds one MarketRecord per area from e-Stat data and an AI estimate."""

    def __init__(self, ai, stats, progress=None):
        self.ai = ai
        self.stats = stats
        self.progress = progress

    def fetch_area(self, company, area):
        pref_code = PREFECTURE_CODES.get(area.prefecture)
        estat_data = self.stats.fetch_for_restaurant(pref_code, area.municipality) if pref_code else {}

        data = self.ai.complete_json(build_market_prompt(company, estat_data, area))
        if not isinstance(data, dict):
            data = {}
        merge_population(data, estat_data.get('population'))
        return MarketRecord(area=area, data=data)
