"""
AI飲食店エリア分析 - AI Client
Throttled, rate-limit aware text completion plus tolerant JSON parsing of the
model's answers.
"""

import json
import math
import re
import time

import requests
from openai import OpenAI, APIError, RateLimitError

from config import (
    AI_MIN_INTERVAL, AI_MAX_RETRIES, AI_BACKOFF_STEP, AI_REQUEST_TIMEOUT, OPENAI_MODEL
)
from fallback import try_in_order

PARSE_ERROR_MESSAGE = 'AIの応答をパースできませんでした。再度お試しください。'
SYSTEM_PROMPT = ('あなたは日本の飲食業界・商圏分析に精通した経営コンサルタントです。'
                 '回答は必ず有効なJSON形式のみで返してください。')


class AnalysisError(Exception):
    """Fatal error whose message is shown to the user as is."""


class AIServiceError(AnalysisError):
    pass


class AIRateLimitError(AIServiceError):
    pass


class AIResponseParseError(AnalysisError):
    def __init__(self, message=PARSE_ERROR_MESSAGE):
        super().__init__(message)


# =========================================
# BACKENDS
# =========================================
class WorkerBackend:
    """Gemini behind the Cloudflare Worker proxy: POST {prompt} -> {text}."""
    name = 'gemini-2.0-flash (worker)'
    provider = 'Gemini'

    def __init__(self, base_url, session=None, timeout=AI_REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, prompt):
        try:
            resp = self.session.post(f"{self.base_url}/api/gemini",
                                     json={'prompt': prompt}, timeout=self.timeout)
        except requests.RequestException as e:
            raise AIServiceError(f"API接続エラー: {e}") from e

        if resp.status_code == 429:
            raise AIRateLimitError(f"API Error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not resp.ok:
            raise AIServiceError(self._error_message(data, resp.status_code))
        return data.get('text') or ''

    @staticmethod
    def _error_message(data, status):
        error = data.get('error') if isinstance(data, dict) else None
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and error.get('message'):
            return error['message']
        return f"API Error: {status}"


class OpenAIBackend:
    """OpenAI chat completions, used when OPENAI_API_KEY is configured."""
    provider = 'OpenAI'

    def __init__(self, api_key, model=OPENAI_MODEL, client=None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model
        self.name = model

    def send(self, prompt):
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                temperature=0.3,
                max_tokens=4000
            )
        except RateLimitError as e:
            raise AIRateLimitError(str(e)) from e
        except APIError as e:
            raise AIServiceError(f"OpenAI API error: {e}") from e
        return (response.choices[0].message.content or '').strip()


# =========================================
# THROTTLED CLIENT
# =========================================
class AIClient:
    """Spaces calls at least min_interval seconds apart and retries on rate limits."""

    def __init__(self, backend, progress=None, min_interval=AI_MIN_INTERVAL,
                 max_retries=AI_MAX_RETRIES, backoff_step=AI_BACKOFF_STEP,
                 sleep=time.sleep, clock=time.monotonic):
        self.backend = backend
        self.progress = progress
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.backoff_step = backoff_step
        self.sleep = sleep
        self.clock = clock
        self.last_call = None
        self.calls = 0

    def _log(self, message):
        if self.progress:
            self.progress.add(message, 'info')

    def _throttle(self):
        if self.last_call is not None:
            elapsed = self.clock() - self.last_call
            if elapsed < self.min_interval:
                wait = self.min_interval - elapsed
                self._log(f"  ⏳ API間隔調整 {math.ceil(wait)}秒...")
                self.sleep(wait)
        self.last_call = self.clock()

    def complete(self, prompt):
        """Send a prompt and return the raw text answer."""
        self._throttle()
        for attempt in range(self.max_retries + 1):
            self.calls += 1
            try:
                return self.backend.send(prompt)
            except AIRateLimitError:
                if attempt >= self.max_retries:
                    raise AIRateLimitError('AI APIの利用制限に達しました。しばらく待ってから再度お試しください。')
                wait = self.backoff_step * (attempt + 1)
                self._log(f"  API制限検知、{wait}秒後にリトライ... ({attempt + 1}/{self.max_retries})")
                self.sleep(wait)
                self.last_call = self.clock()

    def complete_json(self, prompt):
        raw = self.complete(prompt)
        return parse_json(raw)


# =========================================
# RESPONSE PARSING
# =========================================
FENCE_START = re.compile(r'^```(?:json)?\s*\n?')
FENCE_END = re.compile(r'\n?```\s*$')
BRACED = re.compile(r'\{.*\}', re.DOTALL)


def strip_fences(text):
    cleaned = (text or '').strip()
    if FENCE_START.match(cleaned):
        cleaned = FENCE_END.sub('', FENCE_START.sub('', cleaned))
    return cleaned


def _load_direct(text):
    try:
        return json.loads(text)
    except ValueError:
        return None


def _load_braced(text):
    match = BRACED.search(text)
    if not match:
        return None
    return _load_direct(match.group(0))


def parse_json(text):
    """Parse a JSON answer that may be fenced or wrapped in prose."""
    cleaned = strip_fences(text)
    result = try_in_order([_load_direct, _load_braced], cleaned)
    if result is None:
        print(f"[AIClient] JSON parse error. Raw: {cleaned[:500]}")
        raise AIResponseParseError()
    return result
