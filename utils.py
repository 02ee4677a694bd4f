import os
import platform
import sys
from pathlib import Path
from typing import Union, List

p = Path(__file__).resolve()

DEFAULT_TOOL_NAME = "iq-audit-client"
DEFAULT_TOOL_VERSION = "1.0.0"


def load_env_file(filepath=Path(".env").resolve()):
    """
    Load KEY=VALUE pairs from a .env file into os.environ.

    Values already present in the environment are left alone, so an exported
    variable always wins over the file.
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                os.environ.setdefault(key, value)
    except FileNotFoundError:
        pass


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_int(name: str, default: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def env_float(name: str, default: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def boolish(v: Union[str, bool, None], default: bool = False) -> bool:
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    s = v.strip().lower()
    if not s:
        return default
    return s in ("1", "true", "yes", "y", "on")


def read_lines_file(path: Union[str, Path]) -> List[str]:
    """
    Read a newline-delimited file, skipping blanks and '#' comments.
    """
    out: List[str] = []
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if s and not s.startswith("#"):
                out.append(s)
    return out


def normalize_base_url(url: str) -> str:
    # Accept things like "https://iq.example.com/" and normalize to "https://iq.example.com"
    return (url or "").strip().rstrip("/")


def build_user_agent(tool: str = "", version: str = "") -> str:
    """
    User-Agent sent with every IQ Server / OSS Index request, e.g.
      iq-audit-client (python 3.12.1; linux x86_64) 1.0.0
    """
    tool = tool or DEFAULT_TOOL_NAME
    version = version or DEFAULT_TOOL_VERSION
    py_version = ".".join(str(v) for v in sys.version_info[:3])
    system = platform.system().lower() or "unknown"
    machine = platform.machine().lower() or "unknown"
    return f"{tool} (python {py_version}; {system} {machine}) {version}"


def resolve_work_dir(env_name: str = "IQ_AUDIT_HOME") -> Path:
    """
    Directory holding .env, logs/ and cache/. Taken from env_name when set,
    otherwise the current working directory.
    """
    value = env_str(env_name)
    if value:
        return Path(value).expanduser().resolve()
    return Path.cwd()
