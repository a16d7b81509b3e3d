import requests

from market_data import (
    StatsClient, MarketDataFetcher, pick_population, merge_population,
    extract_values, build_market_prompt
)
from models import MarketArea


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _stats_payload(values):
    return {"GET_STATS_DATA": {"STATISTICAL_DATA": {"DATA_INF": {"VALUE": values}}}}


TOKYO_VALUES = [
    {"@tab": "020", "@cat01": "A", "$": "13960236"},
    {"@tab": "040", "@cat01": "B", "$": "7227180"},
    {"@tab": "020", "@cat01": "A", "$": "-"},
]


def test_pick_population_uses_tab_codes():
    assert pick_population(TOKYO_VALUES) == (13960236, 7227180)


def test_pick_population_uses_category_codes():
    values = [{"@cat01": "00100", "$": "50"}, {"@cat01": "00100", "$": "820000"}, {"@cat01": "00200", "$": "390000"}]
    assert pick_population(values) == (820000, 390000)


def test_extract_values_handles_single_and_missing():
    assert extract_values(_stats_payload({"$": "1"})) == [{"$": "1"}]
    assert extract_values({"GET_STATS_DATA": {}}) is None
    assert extract_values(None) is None


def test_fetch_population_retries_without_suffix():
    session = FakeSession(FakeResponse(_stats_payload([])), FakeResponse(_stats_payload(TOKYO_VALUES)))
    stats = StatsClient(estat_key="app-id", session=session)

    population = stats.fetch_population("東京都")
    assert population == {
        "total_population": 13960236,
        "households": 7227180,
        "source": "e-Stat 国勢調査",
        "from_estat": True,
    }
    assert [c[1]["cdArea"] for c in session.calls] == ["13000", "13"]
    assert all(c[1]["appId"] == "app-id" for c in session.calls)
    assert all(c[2] == 15 for c in session.calls)


def test_fetch_population_estimates_households():
    session = FakeSession(FakeResponse(_stats_payload([{"@tab": "020", "$": "230000"}])))
    stats = StatsClient(worker_base="https://worker.example", session=session)

    population = stats.fetch_population("大阪府")
    assert population["households"] == 100000
    assert session.calls[0][0] == "https://worker.example/api/estat/population"


def test_fetch_population_degrades_to_none():
    session = FakeSession(requests.ConnectionError("down"), FakeResponse({}, status_code=500))
    stats = StatsClient(estat_key="app-id", session=session)
    assert stats.fetch_population("東京都") is None


def test_unconfigured_stats_client_makes_no_requests():
    session = FakeSession()
    stats = StatsClient(session=session)
    assert stats.fetch_population("東京都") is None
    assert stats.fetch_generic("0003348239", "13000") is None
    assert session.calls == []


def test_fetch_for_restaurant_collects_dining_dataset():
    session = FakeSession(
        FakeResponse(_stats_payload(TOKYO_VALUES)),
        FakeResponse(_stats_payload([{"$": "15000"}, {"$": "16000"}])),
    )
    stats = StatsClient(estat_key="app-id", session=session)
    results = stats.fetch_for_restaurant("13", "渋谷区")

    assert results["population"]["total_population"] == 13960236
    assert results["household_dining"] == [{"$": "15000"}, {"$": "16000"}]
    assert session.calls[1][1]["statsDataId"] == "0003348239"


def test_merge_population_prefers_estat_figures():
    data = {"population": {"total_population": 1, "households": 2, "elderly_pct": 30}}
    estat = {"total_population": 230000, "households": 120000, "source": "e-Stat 国勢調査", "from_estat": True}
    merged = merge_population(data, estat)
    assert merged["population"] == {
        "total_population": 230000, "households": 120000, "elderly_pct": 30, "source": "e-Stat 国勢調査"
    }


def test_merge_population_without_estat_keeps_ai_values():
    data = {"population": {"total_population": 1}}
    assert merge_population(data, None) == {"population": {"total_population": 1}}


def test_market_prompt_mentions_estat_reference():
    area = MarketArea.build("東京都", "渋谷区")
    estat = {"population": {"total_population": 230000, "households": 120000, "from_estat": True},
             "household_dining": [{"$": "1"}]}
    prompt = build_market_prompt({"business_type": "イタリアン"}, estat, area)
    assert "【参考: e-Stat政府統計データ】" in prompt
    assert "230,000人" in prompt
    assert "household_dining: データあり" in prompt
    assert '"area_name": "東京都 渋谷区"' in prompt


class DummyAI:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def complete_json(self, prompt):
        self.prompts.append(prompt)
        return self.answer


class DummyStats:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def fetch_for_restaurant(self, pref_code, city=""):
        self.calls.append((pref_code, city))
        return self.result


def test_fetch_area_merges_estat_into_ai_estimate():
    ai = DummyAI({"population": {"total_population": 5, "households": 2}, "competition": {"restaurant_count": 900}})
    stats = DummyStats({"population": {"total_population": 230000, "households": 120000,
                                       "source": "e-Stat 国勢調査", "from_estat": True}})
    area = MarketArea.build("東京都", "渋谷区", is_headquarters=True)

    record = MarketDataFetcher(ai, stats).fetch_area({"business_type": "イタリアン"}, area)
    assert stats.calls == [("13", "渋谷区")]
    assert record.area is area
    assert record.data["population"]["total_population"] == 230000
    assert record.data["competition"]["restaurant_count"] == 900


def test_fetch_area_unknown_prefecture_skips_stats():
    ai = DummyAI({"population": {"total_population": 5}})
    stats = DummyStats({})
    record = MarketDataFetcher(ai, stats).fetch_area({}, MarketArea.build("不明", ""))
    assert stats.calls == []
    assert record.data == {"population": {"total_population": 5}}
