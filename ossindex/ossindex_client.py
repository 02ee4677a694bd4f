from pathlib import Path
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3 import Retry

from iq.errors import ParseError, ServerCommunicationError
from loggers.ossindex_logger import ossindex_logger as logger
from models.audit_options import AuditOptions
from models.coordinate import Coordinate
from ossindex.ossindex_cache import OSSIndexCache
from utils import build_user_agent, normalize_base_url

COMPONENT_REPORT_PATH = "/api/v3/component-report"
MAX_COORDINATES_PER_REQUEST = 128


class OSSIndexClient:
    """
    OSS Index component-report client with:
      - batching (OSS Index accepts at most 128 coordinates per request)
      - retry/backoff for 429 and 5xx via a urllib3 Retry adapter
      - optional disk cache of reports, valid until the audit's TTL
    """

    def __init__(
            self,
            options: AuditOptions,
            *,
            base_url: str = "https://ossindex.sonatype.org",
            cache_dir: Optional[Path] = None,
            batch_size: int = MAX_COORDINATES_PER_REQUEST,
            max_retries: int = 3,
            timeout_seconds: int = 60,
            session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self.timeout = int(timeout_seconds)
        self.batch_size = max(1, min(int(batch_size), MAX_COORDINATES_PER_REQUEST))

        self.session = session or requests.Session()
        if session is None:
            retries = Retry(
                total=max_retries,
                backoff_factor=0.5,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=frozenset(["POST"]),
            )
            adapter = HTTPAdapter(max_retries=retries)
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)

        if options.oss_index_user and options.oss_index_token:
            self.session.auth = (options.oss_index_user, options.oss_index_token)
        self.session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": build_user_agent(options.tool, options.version),
            }
        )

        self.cache: Optional[OSSIndexCache] = None
        if cache_dir is not None:
            self.cache = OSSIndexCache(
                Path(cache_dir, f"{options.db_cache_name}.json"),
                expires_at=options.ttl or options.with_defaults().ttl,
            )

    def audit_packages(self, purls: List[str]) -> List[Coordinate]:
        """
        Return one Coordinate per distinct purl, in first-seen order.
        """
        unique_purls = list(dict.fromkeys(p.strip() for p in purls if p and p.strip()))
        if not unique_purls:
            return []

        results: Dict[str, Coordinate] = {}
        to_fetch = unique_purls
        if self.cache is not None:
            hits, to_fetch = self.cache.partition(unique_purls)
            for c in hits:
                results[c.coordinates.lower()] = c
            logger.info("OSS Index cache: %d hit(s), %d miss(es)", len(hits), len(to_fetch))

        fetched: List[Coordinate] = []
        for start in range(0, len(to_fetch), self.batch_size):
            batch = to_fetch[start:start + self.batch_size]
            fetched.extend(self._component_report(batch))

        if self.cache is not None and fetched:
            self.cache.put_all(fetched)
        for c in fetched:
            results[c.coordinates.lower()] = c

        ordered: List[Coordinate] = []
        for purl in unique_purls:
            # OSS Index may echo coordinates back normalized; fall back to an empty report
            ordered.append(results.get(purl.lower()) or Coordinate(coordinates=purl))
        return ordered

    def _component_report(self, coordinates: List[str]) -> List[Coordinate]:
        url = f"{self.base_url}{COMPONENT_REPORT_PATH}"
        logger.debug("Requesting OSS Index component report for %d coordinate(s)", len(coordinates))
        try:
            resp = self.session.post(url, json={"coordinates": coordinates}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Error communicating with OSS Index: %s", e)
            raise ServerCommunicationError("There was an error communicating with OSS Index", err=e) from e

        if resp.status_code != 200:
            logger.error("OSS Index error %s %s: %s", resp.status_code, resp.reason, resp.text[:300])
            raise ServerCommunicationError(
                "Unable to retrieve component report from OSS Index",
                status_code=resp.status_code,
                status=resp.reason,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise ParseError("Could not unmarshal response from OSS Index", body=resp.text, err=e) from e

        if not isinstance(payload, list):
            raise ParseError("Unexpected OSS Index component report shape", body=resp.text)

        return [Coordinate.from_dict(item) for item in payload if isinstance(item, dict)]
