import threading
from dataclasses import replace
from concurrent.futures import ThreadPoolExecutor

import pytest

from iq.errors import (
    ApplicationNotFoundError,
    AuditCancelledError,
    IQServerError,
    MaxRetriesExceededError,
    ServerCommunicationError,
)
from iq.iq_client import IQClient
import iq.iq_server
from iq.iq_server import IQServer
from iq.status_poller import StatusPoller
from models.coordinate import Coordinate, Vulnerability
from models.enums import PolicyAction

RESOLVE_PATH = "/api/v2/applications"
SUBMIT_PATH = "/api/v2/scan/applications/42/sources/nancy"


def _server(options, client, **kwargs):
    return IQServer(options, client=client, show_progress=False, **kwargs)


def _happy_path(session, response, poll_responses):
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(202, {"statusUrl": "status/42"}))
    session.add("GET", "/status/42", *poll_responses)


def test_audit_with_sbom_end_to_end(options, client, session, response):
    _happy_path(session, response, [
        response(200, {"policyAction": "Warning", "reportHtmlUrl": "/report/42", "isError": False}),
    ])

    status = _server(options, client).audit_with_sbom("<bom/>")

    assert status.policy_action == "Warning"
    assert status.action == PolicyAction.WARNING
    assert status.absolute_report_html_url == "http://server/report/42"
    assert len(session.calls_to("GET", "/status/42")) == 1
    assert session.calls_to("GET", "/status/42")[0].url == "http://server/status/42"
    assert session.calls_to("POST", SUBMIT_PATH)[0].kwargs["data"] == b"<bom/>"


def test_resolution_failure_stops_before_submission(options, client, session, response):
    session.add("GET", RESOLVE_PATH, response(200, {"applications": []}))

    with pytest.raises(ApplicationNotFoundError):
        _server(options, client).audit_with_sbom("<bom/>")

    assert session.calls_to("POST") == []


def test_submission_failure_surfaces_as_single_error(options, client, session, response):
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(500, text="nope", reason="Internal Server Error"))

    with pytest.raises(ServerCommunicationError):
        _server(options, client).audit_with_sbom("<bom/>")


def test_attempts_are_not_carried_across_audits(options, session, response):
    options = replace(options, max_retries=1)
    client = IQClient(options, session=session)
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(202, {"statusUrl": "status/42"}))
    session.add(
        "GET",
        "/status/42",
        response(404),
        response(200, {"policyAction": "None"}),
        response(404),
        response(200, {"policyAction": "Failure"}),
    )
    server = _server(options, client)

    assert server.audit_with_sbom("<bom/>").policy_action == "None"
    # a shared counter would already be at 2 and exceed max_retries=1 here
    assert server.audit_with_sbom("<bom/>").policy_action == "Failure"


def test_retries_exhausted_through_facade(options, session, response):
    options = replace(options, max_retries=0)
    client = IQClient(options, session=session)
    _happy_path(session, response, [response(503)])

    with pytest.raises(MaxRetriesExceededError):
        _server(options, client).audit_with_sbom("<bom/>")
    assert len(session.calls_to("GET", "/status/42")) == 1


def test_concurrent_audits_keep_their_own_results(options, client, session, response):
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(202, {"statusUrl": "status/a"}), response(202, {"statusUrl": "status/b"}))
    session.add("GET", "/status/a", response(200, {"policyAction": "None", "reportHtmlUrl": "/a"}))
    session.add("GET", "/status/b", response(200, {"policyAction": "Failure", "reportHtmlUrl": "/b"}))
    server = _server(options, client)

    with ThreadPoolExecutor(max_workers=2) as ex:
        results = list(ex.map(lambda _: server.audit_with_sbom("<bom/>"), range(2)))

    by_report = {r.absolute_report_html_url: r.policy_action for r in results}
    assert by_report == {"http://server/a": "None", "http://server/b": "Failure"}


def test_cancel_stops_an_in_flight_audit(options, client, session, response):
    polled = threading.Event()

    class PendingResponse(response):
        @property
        def status_code(self):
            polled.set()
            return 404

        @status_code.setter
        def status_code(self, value):
            pass

    options = replace(options, max_retries=1000, poll_interval=30)
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(202, {"statusUrl": "status/42"}))
    session.add("GET", "/status/42", PendingResponse())
    server = _server(options, client)

    errors = []

    def run():
        try:
            server.audit_with_sbom("<bom/>")
        except IQServerError as e:
            errors.append(e)

    t = threading.Thread(target=run)
    t.start()
    assert polled.wait(timeout=5)
    server.cancel()
    t.join(timeout=5)

    assert not t.is_alive()
    assert "cancelled" in str(errors[0])


def test_interrupted_wait_stops_polling(options, client, session, response, monkeypatch):
    polled = threading.Event()
    pollers = []

    class PendingResponse(response):
        @property
        def status_code(self):
            polled.set()
            return 404

        @status_code.setter
        def status_code(self, value):
            pass

    class InterruptedPoller(StatusPoller):
        def wait(self, timeout=None):
            pollers.append(self)
            assert polled.wait(timeout=5)
            raise KeyboardInterrupt

    monkeypatch.setattr(iq.iq_server, "StatusPoller", InterruptedPoller)
    options = replace(options, max_retries=1000, poll_interval=30)
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    session.add("POST", SUBMIT_PATH, response(202, {"statusUrl": "status/42"}))
    session.add("GET", "/status/42", PendingResponse())
    server = _server(options, client)

    with pytest.raises(KeyboardInterrupt):
        server.audit_with_sbom("<bom/>")

    poller = pollers[0]
    assert poller.cancelled
    with pytest.raises(AuditCancelledError):
        StatusPoller.wait(poller, timeout=5)
    assert len(session.calls_to("GET", "/status/42")) == 1
    assert server._active_pollers == []


def test_finished_audit_is_not_cancelled(options, session, response, monkeypatch):
    pollers = []

    class RecordingPoller(StatusPoller):
        def start(self):
            pollers.append(self)
            return super().start()

    monkeypatch.setattr(iq.iq_server, "StatusPoller", RecordingPoller)
    options = replace(options, max_retries=0)
    client = IQClient(options, session=session)
    _happy_path(session, response, [response(404)])

    with pytest.raises(MaxRetriesExceededError):
        _server(options, client).audit_with_sbom("<bom/>")

    assert not pollers[0].cancelled


class _FakeOSSIndex:
    def __init__(self, coordinates=None, error=None):
        self.coordinates = coordinates or []
        self.error = error
        self.requested = None

    def audit_packages(self, purls):
        self.requested = purls
        if self.error:
            raise self.error
        return self.coordinates


def test_audit_packages_builds_sbom_from_oss_index(options, client, session, response):
    _happy_path(session, response, [response(200, {"policyAction": "Failure", "reportHtmlUrl": "r/1"})])
    ossindex = _FakeOSSIndex([
        Coordinate(
            coordinates="pkg:golang/github.com/foo/bar@v1.0.0",
            vulnerabilities=[Vulnerability(id="abc", cve="CVE-2020-1234", cvss_score=7.5)],
        ),
    ])

    status = _server(options, client, ossindex_client=ossindex).audit_packages(
        ["pkg:golang/github.com/foo/bar@v1.0.0"]
    )

    assert status.policy_action == "Failure"
    assert ossindex.requested == ["pkg:golang/github.com/foo/bar@v1.0.0"]
    submitted = session.calls_to("POST", SUBMIT_PATH)[0].kwargs["data"].decode("utf-8")
    assert "pkg:golang/github.com/foo/bar@v1.0.0" in submitted
    assert "CVE-2020-1234" in submitted


def test_oss_index_failure_is_wrapped(options, client, session, response):
    session.add("GET", RESOLVE_PATH, response(200, {"applications": [{"id": "42"}]}))
    ossindex = _FakeOSSIndex(error=ServerCommunicationError("down", status_code=503))

    with pytest.raises(IQServerError) as exc:
        _server(options, client, ossindex_client=ossindex).audit_packages(["pkg:npm/left-pad@1.0.0"])

    assert "OSS Index" in exc.value.message
    assert isinstance(exc.value.err, ServerCommunicationError)
    assert session.calls_to("POST") == []


def test_default_credentials_print_a_warning(options, session, response, capsys):
    options = replace(options, user="admin", token="admin123")
    client = IQClient(options, session=session)
    _happy_path(session, response, [response(200, {"policyAction": "None"})])

    _server(options, client).audit_with_sbom("<bom/>")

    assert "default username and password" in capsys.readouterr().out


def test_lazy_oss_index_client_is_built_once(options, client, monkeypatch):
    built = []
    barrier = threading.Barrier(8)

    class CountingOSSIndex(_FakeOSSIndex):
        def __init__(self, *args, **kwargs):
            super().__init__()
            built.append(self)

    monkeypatch.setattr(iq.iq_server, "OSSIndexClient", CountingOSSIndex)
    server = _server(options, client)

    def grab(_):
        barrier.wait(timeout=5)
        return server.ossindex_client

    with ThreadPoolExecutor(max_workers=8) as pool:
        clients = list(pool.map(grab, range(8)))

    assert len(built) == 1
    assert all(c is built[0] for c in clients)
