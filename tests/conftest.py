import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest

from iq.iq_client import IQClient
from models.audit_options import AuditOptions

_MISSING = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, json_body: Any = _MISSING, text: Optional[str] = None,
                 reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self._json = json_body
        if text is None:
            text = "" if json_body is _MISSING else json.dumps(json_body)
        self.text = text

    def json(self) -> Any:
        if self._json is not _MISSING:
            return self._json
        # json.JSONDecodeError is a ValueError, like requests' own
        return json.loads(self.text)


@dataclass
class Call:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)


class FakeSession:
    """
    Stand-in for requests.Session. Routes are matched on method + URL substring,
    most recently added first; each route replays its responses in order and
    repeats the last one.
    Exceptions in a route are raised instead of returned.
    """

    def __init__(self) -> None:
        self.headers: Dict[str, str] = {}
        self.auth = None
        self.calls: List[Call] = []
        self.closed = False
        self._routes: List[tuple] = []

    def add(self, method: str, url_part: str, *responses: Any) -> "FakeSession":
        self._routes.insert(0, (method.upper(), url_part, list(responses)))
        return self

    def calls_to(self, method: str, url_part: str = "") -> List[Call]:
        return [c for c in self.calls if c.method == method.upper() and url_part in c.url]

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append(Call(method, url, kwargs))
        for m, part, responses in self._routes:
            if m == method and part in url:
                item = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(item, BaseException):
                    raise item
                return item
        raise AssertionError(f"unexpected request: {method} {url}")

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch("POST", url, **kwargs)

    def mount(self, prefix: str, adapter: Any) -> None:
        pass

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def options() -> AuditOptions:
    return AuditOptions(
        user="auditor",
        token="s3cret",
        application="my-app",
        server="http://server/",
        stage="build",
        max_retries=5,
        poll_interval=0.01,
        tool="iq-audit-tests",
        version="9.9.9",
    ).with_defaults()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(options, session) -> IQClient:
    return IQClient(options, session=session)


@pytest.fixture
def response():
    return FakeResponse
