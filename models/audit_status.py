from dataclasses import dataclass
from typing import Any, Dict, Optional

from iq.report_url import absolutize
from models.enums import PolicyAction


@dataclass
class AuditStatus:
    """
    Result of an IQ Server evaluation, as reported by the status URL.

    report_html_url is whatever the server sent (usually relative);
    absolute_report_html_url is derived from it and the server base URL.
    """
    policy_action: str = ""
    report_html_url: str = ""
    absolute_report_html_url: Optional[str] = None
    is_error: bool = False
    error_message: str = ""

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AuditStatus":
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        is_error = payload.get("isError")
        if is_error is not None and not isinstance(is_error, bool):
            raise ValueError(f"isError must be a boolean, got {type(is_error).__name__}")
        return cls(
            policy_action=_str_field(payload, "policyAction"),
            report_html_url=_str_field(payload, "reportHtmlUrl"),
            is_error=bool(is_error),
            error_message=_str_field(payload, "errorMessage"),
        )

    @property
    def action(self) -> Optional[PolicyAction]:
        return PolicyAction.parse(self.policy_action)

    @property
    def display_report_url(self) -> str:
        # Fall back to the raw URL when it could not be made absolute
        return self.absolute_report_html_url or self.report_html_url

    def populate_absolute_url(self, server_base: str) -> None:
        self.absolute_report_html_url = absolutize(self.report_html_url, server_base)


def _str_field(payload: Dict[str, Any], key: str) -> str:
    # Absent and null both read as ""
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value
