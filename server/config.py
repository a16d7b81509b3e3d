"""
AI飲食店エリア分析 - Configuration
Tunable constants shared by the crawler, the analyzer and the market data layer.
"""

from urllib.parse import quote

# =========================================
# PAGE RELAYS
# =========================================
# Each relay wraps the percent-encoded target URL in its own query parameter.
RELAYS = [
    ('corsproxy.io', 'https://corsproxy.io/?{url}'),
    ('allorigins', 'https://api.allorigins.win/raw?url={url}'),
    ('codetabs', 'https://api.codetabs.com/v1/proxy?quest={url}'),
]

RELAY_TIMEOUT = 10
STICKY_RELAY_TIMEOUT = 15
MIN_PAGE_LENGTH = 100

USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) '
              'AppleWebKit/537.36 (KHTML, like Gecko) '
              'Chrome/120.0.0.0 Safari/537.36')


def build_relay_url(template, target_url):
    return template.format(url=quote(target_url, safe=''))


# =========================================
# CRAWL LIMITS
# =========================================
MAX_SUB_PAGES = 100
MIN_PAGE_TEXT = 50
TOP_PAGE_EXCERPT = 3000
SUB_PAGE_EXCERPT = 2000
MAX_CORPUS_LENGTH = 15000
CORPUS_SEPARATOR = '\n\n---\n\n'
TOP_PAGE_NAME = 'トップページ'

# =========================================
# LINK SCORING
# =========================================
IMPORTANT_PATH_KEYWORDS = [
    'company', 'about', 'corporate', 'profile', 'access', 'overview',
    'summary', 'gaiyou', 'kaisya', 'info', 'office',
    '会社概要', '会社案内', '企業情報', '事業所', 'greeting',
    'menu', 'shop', 'store', 'location', 'branch',
    'メニュー', '店舗', '店舗一覧', '店舗情報', 'アクセス'
]

PATH_KEYWORD_SCORE = 10
TEXT_KEYWORD_SCORE = 5

# (phrases, bonus) - applied once per group when any phrase is in the link text
LINK_TEXT_BONUSES = [
    (('会社概要', '会社案内'), 20),
    (('企業情報', '事業所'), 15),
    (('アクセス', '所在地'), 15),
    (('事業内容', 'サービス'), 10),
    # 飲食業特化
    (('店舗', '店舗一覧'), 20),
    (('メニュー', '料理'), 15),
    (('ランチ', 'ディナー'), 12),
    (('テイクアウト', 'デリバリー'), 10),
    (('予約', '席'), 8),
]

DEEP_PATH_SLASHES = 4
DEEP_PATH_PENALTY = 3

NON_HTML_EXTENSIONS = [
    '.pdf', '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.mp4', '.mp3', '.zip', '.doc', '.docx', '.xls', '.xlsx',
    '.css', '.js', '.ico', '.woff', '.woff2', '.ttf', '.eot'
]

# =========================================
# AI COLLABORATOR
# =========================================
DEFAULT_WORKER_BASE = 'https://house-search-proxy.ai-fudosan.workers.dev'
AI_MIN_INTERVAL = 6.0
AI_MAX_RETRIES = 5
AI_BACKOFF_STEP = 10
AI_REQUEST_TIMEOUT = 120
OPENAI_MODEL = 'gpt-4o'

# =========================================
# E-STAT
# =========================================
ESTAT_API_URL = 'https://api.e-stat.go.jp/rest/3.0/app/json/getStatsData'
POPULATION_STATS_ID = '0003448233'  # 国勢調査 人口等基本集計
ESTAT_TIMEOUT = 15
PERSONS_PER_HOUSEHOLD = 2.3

RESTAURANT_CONFIG = {
    'id': 'restaurant',
    'name': '飲食店・フード',
    'estat_datasets': [
        {'id': '0003348239', 'name': '家計調査（外食）', 'key': 'household_dining'}
    ],
    'kpis': ['外食支出額', '飲食店密度', '人口あたり店舗数', '世帯消費傾向'],
}

# Prefecture codes for e-Stat
PREFECTURE_CODES = {
    '北海道': '01', '青森県': '02', '岩手県': '03', '宮城県': '04',
    '秋田県': '05', '山形県': '06', '福島県': '07', '茨城県': '08',
    '栃木県': '09', '群馬県': '10', '埼玉県': '11', '千葉県': '12',
    '東京都': '13', '神奈川県': '14', '新潟県': '15', '富山県': '16',
    '石川県': '17', '福井県': '18', '山梨県': '19', '長野県': '20',
    '岐阜県': '21', '静岡県': '22', '愛知県': '23', '三重県': '24',
    '滋賀県': '25', '京都府': '26', '大阪府': '27', '兵庫県': '28',
    '奈良県': '29', '和歌山県': '30', '鳥取県': '31', '島根県': '32',
    '岡山県': '33', '広島県': '34', '山口県': '35', '徳島県': '36',
    '香川県': '37', '愛媛県': '38', '高知県': '39', '福岡県': '40',
    '佐賀県': '41', '長崎県': '42', '熊本県': '43', '大分県': '44',
    '宮崎県': '45', '鹿児島県': '46', '沖縄県': '47'
}

# 政令指定都市 → 都道府県
DESIGNATED_CITIES = {
    '札幌市': '北海道', '仙台市': '宮城県', 'さいたま市': '埼玉県', '千葉市': '千葉県',
    '横浜市': '神奈川県', '川崎市': '神奈川県', '相模原市': '神奈川県', '新潟市': '新潟県',
    '静岡市': '静岡県', '浜松市': '静岡県', '名古屋市': '愛知県', '京都市': '京都府',
    '大阪市': '大阪府', '堺市': '大阪府', '神戸市': '兵庫県', '岡山市': '岡山県',
    '広島市': '広島県', '北九州市': '福岡県', '福岡市': '福岡県', '熊本市': '熊本県'
}
