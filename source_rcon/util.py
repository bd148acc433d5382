# source_rcon/util.py
import os
from pathlib import Path
from typing import Optional

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 25575
DEFAULT_TIMEOUT = 5.0


def env_host() -> str:
    return os.environ.get("RCON_HOST", DEFAULT_HOST)

def env_port() -> int:
    return env_int("RCON_PORT", DEFAULT_PORT)

def env_password() -> Optional[str]:
    # RCON_PASS is what the rcon binary reads; RCON_PASSWORD is the panel's name for it
    return os.environ.get("RCON_PASS") or os.environ.get("RCON_PASSWORD")

def env_timeout() -> float:
    raw = os.environ.get("RCON_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"RCON_TIMEOUT must be a number, got {raw!r}") from None

def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None

def read_properties(path: Path) -> dict:
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line=line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k,v = line.split("=",1)
                props[k.strip()]=v.strip()
    return props

def settings_from_properties(path: Path) -> dict:
    """Pull the RCON port/password out of a server.properties file."""
    props = read_properties(Path(path))
    out = {"enabled": props.get("enable-rcon", "false").lower() == "true"}
    if props.get("rcon.port"):
        out["port"] = int(props["rcon.port"])
    if props.get("rcon.password"):
        out["password"] = props["rcon.password"]
    return out
