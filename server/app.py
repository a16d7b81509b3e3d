"""
AI飲食店エリア分析 - Flask Server
"""

import os
from urllib.parse import urlparse

import requests
from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_cors import CORS

from ai_client import AnalysisError, OpenAIBackend, WorkerBackend
from analyzer import BusinessAnalyzer
from config import DEFAULT_WORKER_BASE
from crawler import WebCrawler
from fetcher import PageFetcher
from market_data import StatsClient
from progress import ProgressLog

VERSION = '1.0.0'
INVALID_URL_MESSAGE = '有効なURLを入力してください（例: https://example.co.jp）'

# Load environment variables from .env
load_dotenv()

WORKER_BASE = os.environ.get('GEMINI_WORKER_BASE', DEFAULT_WORKER_BASE)
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY', '')
ESTAT_API_KEY = os.environ.get('ESTAT_API_KEY', '')

app = Flask(__name__)
CORS(app)


def is_valid_url(url):
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def build_ai_backend():
    if OPENAI_API_KEY:
        return OpenAIBackend(api_key=OPENAI_API_KEY)
    return WorkerBackend(WORKER_BASE)


def build_analyzer(session=None):
    stats = StatsClient(estat_key=ESTAT_API_KEY, worker_base=WORKER_BASE, session=session)
    return BusinessAnalyzer(build_ai_backend(), stats, session=session)


def _requested_url():
    data = request.get_json(silent=True) or {}
    return (data.get('url') or '').strip()


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'ok',
        'version': VERSION,
        'ai_backend': 'openai' if OPENAI_API_KEY else 'worker',
        'keys_configured': {
            'openai': bool(OPENAI_API_KEY),
            'estat': bool(ESTAT_API_KEY)
        }
    })


@app.route('/api/crawl', methods=['POST'])
def crawl():
    """Crawl the given URL and return the corpus and the addresses found."""
    url = _requested_url()
    if not url:
        return jsonify({'error': 'URLを入力してください'}), 400
    if not is_valid_url(url):
        return jsonify({'error': INVALID_URL_MESSAGE}), 400

    progress = ProgressLog()
    with requests.Session() as session:
        crawler = WebCrawler(fetcher=PageFetcher(session=session, progress=progress), progress=progress)
        result = crawler.crawl(url)
    if result is None:
        return jsonify({
            'error': 'トップページの取得に失敗しました',
            'pages': crawler.state.debug_pages,
            'log': progress.to_list()
        }), 500

    body = result.to_dict()
    body['root_url'] = url
    body['debug_pages'] = crawler.state.debug_pages
    body['log'] = progress.to_list()
    return jsonify(body)


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Run the full restaurant area analysis for the given URL."""
    url = _requested_url()
    if not url:
        return jsonify({'error': 'URLを入力してください'}), 400
    if not is_valid_url(url):
        return jsonify({'error': INVALID_URL_MESSAGE}), 400

    with requests.Session() as session:
        analyzer = build_analyzer(session)
        try:
            report = analyzer.analyze(url)
        except AnalysisError as e:
            return jsonify({'error': str(e), 'log': analyzer.progress.to_list()}), 500
        except Exception as e:
            return jsonify({'error': f'分析中にエラー: {str(e)}'}), 500

    body = report.to_dict()
    body['log'] = analyzer.progress.to_list()
    return jsonify(body)


if __name__ == '__main__':
    print("=" * 50)
    print(f"AI飲食店エリア分析 Server v{VERSION}")
    print(f"AI Backend: {'OpenAI' if OPENAI_API_KEY else 'Gemini (worker)'}")
    print(f"e-Stat Key: {'✅ 設定済' if ESTAT_API_KEY else '⚠️ 未設定（任意）'}")
    print("=" * 50)
    app.run(debug=True, host='0.0.0.0', port=5000)
