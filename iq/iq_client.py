from typing import Optional, Dict, Any, Union

import requests

from models.audit_options import AuditOptions
from utils import build_user_agent


class IQClient:
    def __init__(
            self,
            options: AuditOptions,
            *,
            timeout: Optional[int] = 60,
            verify: Union[bool, str] = True,
            proxies: Optional[Dict[str, str]] = None,
            session: Optional[requests.Session] = None,
    ) -> None:
        """
        server should be the root URL of your IQ Server instance,
        e.g. "http://localhost:8070"
        user/token are sent as HTTP basic auth on every request.

        No retry adapter is mounted: resolve and submit are single attempts,
        and the status poller does its own retry accounting.
        """
        self.base_url = options.server.rstrip("/")
        self.timeout = timeout
        self.verify = verify
        self.proxies = proxies
        self.user_agent = build_user_agent(options.tool, options.version)

        self.session = session or requests.Session()
        self.session.auth = (options.user, options.token)
        self.session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": self.user_agent,
            }
        )

    def url(self, path: str) -> str:
        # Status URLs come back relative to the server root, with or without a leading "/"
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.session.get(
            self.url(path),
            params=params,
            timeout=self.timeout,
            proxies=self.proxies,
            verify=self.verify,
        )

    def post(
            self,
            path: str,
            data: Union[str, bytes],
            params: Optional[Dict[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self.session.post(
            self.url(path),
            data=data,
            params=params,
            headers=headers,
            timeout=self.timeout,
            proxies=self.proxies,
            verify=self.verify,
        )

    def close(self) -> None:
        self.session.close()
