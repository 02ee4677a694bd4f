import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from http import HTTPStatus
from typing import Optional, TextIO

import requests

from iq.errors import (
    AuditCancelledError,
    MaxRetriesExceededError,
    ParseError,
    ServerCommunicationError,
)
from iq.iq_client import IQClient
from loggers.iq_client_logger import iq_client_logger as logger
from models.audit_status import AuditStatus
from models.enums import PollState


class StatusPoller:
    """
    Polls an IQ Server status URL on a background worker until the evaluation
    completes, the poll fails, the retry budget runs out, or cancel() is called.

    One poller per audit: the attempt counter lives and dies with it. start()
    hands back a Future that resolves exactly once, with the AuditStatus or with
    the error that ended the loop.

    Any non-200 answer from the status URL is treated as "not ready yet" and is
    retried until the budget is spent; transport errors stop the loop at once.
    """

    def __init__(
            self,
            client: IQClient,
            status_url: str,
            *,
            max_retries: int,
            poll_interval: float,
            show_progress: bool = True,
            progress_stream: Optional[TextIO] = None,
    ) -> None:
        self.client = client
        self.status_url = status_url
        self.max_retries = max_retries
        self.poll_interval = poll_interval
        self.show_progress = show_progress
        self.progress_stream = progress_stream

        self.attempts = 0
        self.state = PollState.POLLING

        self._cancelled = threading.Event()
        self._start_lock = threading.Lock()
        self._future: Optional[Future] = None

    def start(self) -> Future:
        with self._start_lock:
            if self._future is not None:
                raise RuntimeError("StatusPoller can only be started once")
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="iq-status-poller")
            self._future = executor.submit(self._run)
            # The submitted loop keeps running; the executor just stops taking work.
            executor.shutdown(wait=False)
        return self._future

    def wait(self, timeout: Optional[float] = None) -> AuditStatus:
        future = self._future or self.start()
        return future.result(timeout=timeout)

    def cancel(self) -> None:
        logger.info("Cancelling poll of %s after %d attempt(s)", self.status_url, self.attempts)
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def _run(self) -> AuditStatus:
        try:
            while True:
                if self._cancelled.is_set():
                    raise AuditCancelledError()

                status = self._poll_once()
                if status is not None:
                    return status

                logger.debug("waiting %.2fs to poll Nexus IQ", self.poll_interval)
                if self._cancelled.wait(self.poll_interval):
                    raise AuditCancelledError()
        except AuditCancelledError:
            self.state = PollState.CANCELLED
            raise
        except Exception:
            if self.state == PollState.POLLING:
                self.state = PollState.FAILED
            raise
        finally:
            self._end_progress()

    def _poll_once(self) -> Optional[AuditStatus]:
        logger.debug(
            "Polling Nexus IQ for response: attempt_number=%d max_retries=%d status_url=%s",
            self.attempts,
            self.max_retries,
            self.status_url,
        )
        if self.attempts > self.max_retries:
            self.state = PollState.RETRIES_EXHAUSTED
            logger.error(
                "Maximum tries exceeded (%d), finished polling, consider bumping up Max Retries",
                self.max_retries,
            )
            raise MaxRetriesExceededError(self.max_retries)

        try:
            resp = self.client.get(self.status_url)
        except requests.RequestException as e:
            self.state = PollState.FAILED
            logger.error("There was an error polling Nexus IQ Server: %s", e)
            raise ServerCommunicationError("There was an error polling Nexus IQ Server", err=e) from e

        self.attempts += 1
        self._progress()
        logger.debug("Nexus IQ polling status: %s", resp.status_code)

        if resp.status_code != HTTPStatus.OK:
            return None

        try:
            status = AuditStatus.from_dict(resp.json())
        except ValueError as e:
            self.state = PollState.FAILED
            raise ParseError("Could not unmarshal response from IQ server", body=resp.text, err=e) from e

        logger.debug("Nexus IQ polling response: %s", status)
        if status.is_error:
            logger.warning("IQ Server reported an error for the evaluation: %s", status.error_message)

        status.populate_absolute_url(self.client.base_url)
        self.state = PollState.COMPLETED
        return status

    def _progress(self) -> None:
        if self.show_progress:
            stream = self.progress_stream or sys.stdout
            stream.write(".")
            stream.flush()

    def _end_progress(self) -> None:
        if self.show_progress and self.attempts:
            stream = self.progress_stream or sys.stdout
            stream.write("\n")
            stream.flush()
