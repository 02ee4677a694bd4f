from typing import Optional
from urllib.parse import urlparse


def absolutize(report_url: str, server_base: str) -> Optional[str]:
    """
    Turn the report URL handed back by IQ Server into an absolute one.

    - Already absolute (scheme + host): returned unchanged.
    - Relative: server_base (trailing "/" stripped) + "/" + path (leading "/" stripped).
    - Empty or unparsable: None, so callers can fall back to the raw value.
    """
    if not report_url or not isinstance(report_url, str):
        return None

    try:
        parsed = urlparse(report_url)
    except ValueError:
        return None

    if parsed.scheme and parsed.netloc:
        return report_url

    return f"{(server_base or '').rstrip('/')}/{parsed.path.lstrip('/')}"
