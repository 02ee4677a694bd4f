from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from iq.errors import ConfigurationError

# Options that must be non-empty before anything talks to IQ Server
REQUIRED_OPTIONS = ("application", "server", "user", "token")

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_TTL = timedelta(hours=12)


@dataclass(frozen=True)
class AuditOptions:
    # IQ Server credentials
    user: str = ""
    token: str = ""
    # Public application ID the report is generated against
    application: str = ""
    # IQ Server base URL, e.g. http://localhost:8070
    server: str = ""
    # IQ Server stage (develop, build, release, ...)
    stage: str = "develop"
    max_retries: int = 300
    # Seconds between polls of the status URL
    poll_interval: float = 0.0
    # Client id / version for the User-Agent
    tool: str = ""
    version: str = ""

    oss_index_user: str = ""
    oss_index_token: str = ""
    db_cache_name: str = "iq-audit-cache"
    # OSS Index cache entries written now expire at this time
    ttl: Optional[datetime] = None

    def validate(self) -> None:
        for name in REQUIRED_OPTIONS:
            value = getattr(self, name)
            if value is None or not str(value).strip():
                raise ConfigurationError(f"missing options.{name}")

    def with_defaults(self) -> "AuditOptions":
        return replace(
            self,
            server=self.server.strip().rstrip("/"),
            poll_interval=self.poll_interval or DEFAULT_POLL_INTERVAL_SECONDS,
            ttl=self.ttl or (datetime.now() + DEFAULT_TTL),
        )

    @property
    def uses_default_credentials(self) -> bool:
        return self.user == "admin" and self.token == "admin123"
