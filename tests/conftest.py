from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest
import requests

from frame_orders.adapters.base import BaseAdapter
from frame_orders.adapters.http import HttpClient
from frame_orders.config import AdapterKind, Settings, VendorKey
from frame_orders.errors import LookupTimeout
from frame_orders.matcher import MARCHON_RULES
from frame_orders.models import LineItem, NoCandidates, Variant

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self._body = body

    @property
    def text(self) -> str:
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)

    def json(self) -> Any:
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


Scripted = Union[FakeResponse, Exception, Callable[..., Union[FakeResponse, Exception]]]


class FakeSession:
    """Stands in for requests.Session.

    `routes` maps a URL (or a predicate over method/url/kwargs) to a list of
    scripted outcomes, consumed in order; the last one repeats. Unrouted URLs
    answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, List[Scripted]]] = None):
        self.headers: Dict[str, str] = {}
        self.routes: Dict[str, List[Scripted]] = {k: list(v) for k, v in (routes or {}).items()}
        self.handlers: List[Tuple[Callable[..., bool], Callable[..., Scripted]]] = []
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def on(self, predicate: Callable[..., bool], respond: Callable[..., Scripted]) -> "FakeSession":
        self.handlers.append((predicate, respond))
        return self

    def request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs: Any):
        with self._lock:
            self.calls.append((method, url, dict(kwargs, timeout=timeout)))
            outcome: Optional[Scripted] = None
            for predicate, respond in self.handlers:
                if predicate(method, url, kwargs):
                    outcome = respond(method, url, kwargs)
                    break
            if outcome is None:
                script = self.routes.get(url)
                if not script:
                    outcome = FakeResponse(404, "")
                else:
                    outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def urls(self) -> List[str]:
        return [url for _, url, _ in self.calls]


class FakeAdapter(BaseAdapter):
    """Catalog keyed by model. Models in `fail` raise LookupTimeout."""

    vendor = VendorKey.MARCHON
    kind = AdapterKind.API
    rules = MARCHON_RULES

    def __init__(self, catalog: Optional[Dict[str, List[Variant]]] = None, fail=()):
        super().__init__(http=None)
        self.catalog = catalog or {}
        self.fail = set(fail)
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def lookup(self, item: LineItem):
        with self._lock:
            self.calls.append(item.model)
        if item.model in self.fail:
            raise LookupTimeout(f"lookup for {item.model} timed out")
        variants = self.catalog.get(item.model)
        if not variants:
            return NoCandidates(lookup=item.model)
        return list(variants)


def variant(model: str, color_code: str, eye: str, **kw) -> Variant:
    return Variant(source="fake", model=model, color_code=color_code, eye_size=eye, **kw)


def line_item(model: str, color_code: str = "001", eye: str = "52", **kw) -> LineItem:
    kw.setdefault("brand", "Marchon")
    return LineItem(model=model, color_code=color_code, eye_size=eye, **kw)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        timeout=2.0,
        retries=3,
        retry_delay=0.5,
        api_batch_size=2,
        api_batch_delay=0.25,
        scrape_batch_size=1,
        scrape_batch_delay=0.5,
    )


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps) -> Callable[[float], None]:
    return sleeps.append


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def http(settings, session, fake_sleep) -> HttpClient:
    return HttpClient(settings, session=session, sleep=fake_sleep)


@pytest.fixture
def timeout_error() -> requests.Timeout:
    return requests.Timeout("read timed out")
