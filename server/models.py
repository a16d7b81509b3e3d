"""
AI飲食店エリア分析 - Data Model
In-memory records produced during one analysis run.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

STATUS_OK = 'OK'
STATUS_FAILED = 'FAILED'


@dataclass
class CrawlTarget:
    """A same-site link discovered on the top page"""
    url: str
    path: str
    link_text: str
    score: int = 0

    @property
    def name(self):
        return self.link_text or self.path


@dataclass
class FetchedPage:
    url: str
    html: Optional[str]
    status: str
    relay: str = ''

    @property
    def ok(self):
        return self.status == STATUS_OK


@dataclass
class CrawledPage:
    """Per-page crawl record kept for display and debugging"""
    name: str
    url: str
    chars: int
    status: str
    summary: str = ''


@dataclass
class ExtractedAddress:
    postal_code: str
    address: str
    phone: str = ''
    page: str = ''
    context: str = ''

    def to_dict(self):
        return asdict(self)


@dataclass
class MarketArea:
    prefecture: str
    municipality: str
    label: str
    is_headquarters: bool = False

    @classmethod
    def build(cls, prefecture, municipality, is_headquarters=False):
        return cls(prefecture, municipality, f"{prefecture} {municipality}", is_headquarters)

    def to_dict(self):
        return asdict(self)


@dataclass
class MarketRecord:
    area: MarketArea
    data: Dict[str, Any]

    def to_dict(self):
        return {'area': self.area.to_dict(), 'data': self.data}


@dataclass
class CrawlResult:
    corpus: str
    addresses: List[ExtractedAddress] = field(default_factory=list)
    pages: List[CrawledPage] = field(default_factory=list)
    scored_links: List[CrawlTarget] = field(default_factory=list)

    def to_dict(self):
        return {
            'corpus': self.corpus,
            'addresses': [a.to_dict() for a in self.addresses],
            'pages': [asdict(p) for p in self.pages],
            'scored_links': [asdict(link) for link in self.scored_links],
        }


@dataclass
class AnalysisReport:
    """Root entity of one analysis run"""
    url: str
    company: Dict[str, Any]
    location: Dict[str, Any]
    locations: List[ExtractedAddress]
    markets: List[MarketRecord]
    cross_area_insight: Optional[Dict[str, Any]]
    industry: Dict[str, Any]
    timestamp: str
    data_source: str = 'e-Stat + Gemini'

    def to_dict(self):
        return {
            'url': self.url,
            'company': self.company,
            'location': self.location,
            'locations': [a.to_dict() for a in self.locations],
            'markets': [m.to_dict() for m in self.markets],
            'cross_area_insight': self.cross_area_insight,
            'industry': self.industry,
            'timestamp': self.timestamp,
            'data_source': self.data_source,
        }
