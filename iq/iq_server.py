import logging
import threading
from pathlib import Path
from typing import List, Optional

from iq.application_resolver import resolve_internal_id
from iq.errors import IQServerError
from iq.iq_client import IQClient
from iq.status_poller import StatusPoller
from iq.third_party_api import submit_sbom
from loggers.iq_client_logger import iq_client_logger
from models.audit_options import AuditOptions
from models.audit_status import AuditStatus
from ossindex.ossindex_client import OSSIndexClient
from sbom import cyclonedx_builder

DEFAULT_CREDENTIALS_WARNING = """
!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!
!!!! WARNING : You are using the default username and password for Nexus IQ. !!!!
!!!! You are strongly encouraged to change these, and use a token.           !!!!
!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!
"""


class IQServer:
    """
    Audits an SBOM (or a list of purls) against Nexus IQ Server.

    Each audit resolves the public application id, submits the SBOM to the
    Third Party API and polls the returned status URL with its own StatusPoller.
    Nothing about an audit outlives the call, so one IQServer can run several
    audits, including concurrently.
    """

    def __init__(
            self,
            options: AuditOptions,
            logger: Optional[logging.Logger] = None,
            *,
            client: Optional[IQClient] = None,
            ossindex_client: Optional[OSSIndexClient] = None,
            cache_dir: Optional[Path] = None,
            ossindex_base_url: str = "https://ossindex.sonatype.org",
            timeout: Optional[int] = 60,
            verify_tls=True,
            show_progress: bool = True,
    ) -> None:
        options.validate()
        self.options = options.with_defaults()
        self.logger = logger or iq_client_logger
        self.client = client or IQClient(self.options, timeout=timeout, verify=verify_tls)
        self.show_progress = show_progress

        self._ossindex_client = ossindex_client
        self._cache_dir = cache_dir
        self._ossindex_base_url = ossindex_base_url

        self._ossindex_lock = threading.Lock()
        self._pollers_lock = threading.Lock()
        self._active_pollers: List[StatusPoller] = []

    @property
    def ossindex_client(self) -> OSSIndexClient:
        with self._ossindex_lock:
            if self._ossindex_client is None:
                self._ossindex_client = OSSIndexClient(
                    self.options,
                    base_url=self._ossindex_base_url,
                    cache_dir=self._cache_dir,
                )
        return self._ossindex_client

    def audit_with_sbom(self, sbom: str) -> AuditStatus:
        """
        Submit a pre-built SBOM to IQ Server and wait for the policy evaluation.
        """
        self.logger.info("Beginning audit with IQ using provided SBOM for application %s", self.options.application)
        self._warn_on_default_credentials()

        internal_id = self._internal_id()
        return self.audit(sbom, internal_id)

    def audit_packages(self, purls: List[str]) -> AuditStatus:
        """
        Look purls up in OSS Index, build a CycloneDX SBOM from the results and
        audit it with IQ Server.
        """
        self.logger.info(
            "Beginning audit with IQ of %d package(s) for application %s",
            len(purls),
            self.options.application,
        )
        self._warn_on_default_credentials()

        internal_id = self._internal_id()

        try:
            coordinates = self.ossindex_client.audit_packages(purls)
        except IQServerError as e:
            raise IQServerError("There was an issue auditing packages using OSS Index", e) from e

        sbom = cyclonedx_builder.from_coordinates(coordinates)
        self.logger.debug("Obtained cyclonedx SBOM: %s", sbom)
        return self.audit(sbom, internal_id)

    def audit(self, sbom: str, internal_id: str) -> AuditStatus:
        self.logger.debug("Submitting to Third Party API for internal id %s", internal_id)
        status_url = submit_sbom(self.client, sbom, internal_id, self.options.stage)

        poller = StatusPoller(
            self.client,
            status_url,
            max_retries=self.options.max_retries,
            poll_interval=self.options.poll_interval,
            show_progress=self.show_progress,
        )
        with self._pollers_lock:
            self._active_pollers.append(poller)
        try:
            poller.start()
            status = poller.wait()
        except BaseException:
            # Interrupted caller (Ctrl-C included) must not leave the worker polling
            if not poller.done:
                poller.cancel()
            raise
        finally:
            with self._pollers_lock:
                self._active_pollers.remove(poller)

        self.logger.info(
            "IQ Server evaluation finished: policy_action=%s report=%s",
            status.policy_action,
            status.display_report_url,
        )
        return status

    def cancel(self) -> None:
        """
        Cancel every audit currently polling on this server instance.
        """
        with self._pollers_lock:
            pollers = list(self._active_pollers)
        for poller in pollers:
            poller.cancel()

    def close(self) -> None:
        self.client.close()

    def _internal_id(self) -> str:
        try:
            return resolve_internal_id(self.client, self.options.application)
        except IQServerError:
            self.logger.error("Internal ID not obtained from Nexus IQ")
            raise

    def _warn_on_default_credentials(self) -> None:
        if self.options.uses_default_credentials:
            self.logger.info("Warning user of questionable life choices related to username and password")
            print(DEFAULT_CREDENTIALS_WARNING)
