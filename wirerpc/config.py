"""
Configuration settings for wirerpc clients
"""
import os
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _read_pem(path: Optional[str]) -> Optional[bytes]:
    if not path:
        return None
    with open(os.path.expanduser(path), "rb") as f:
        return f.read()


@dataclass
class ClientConfig:
    """Connection and client settings"""
    address: str
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    trace_wire_traffic: bool = False
    read_timeout_seconds: Optional[float] = None  # None blocks until a frame arrives
    call_timeout_seconds: Optional[float] = 30.0

    # Tracing configuration
    enable_tracing: bool = False
    service_name: str = "wirerpc.client"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create config from WIRERPC_* environment variables"""
        address = os.getenv("WIRERPC_ADDRESS")
        if not address:
            raise ValueError("WIRERPC_ADDRESS is not set")

        call_timeout = _env_float("WIRERPC_CALL_TIMEOUT")
        return cls(
            address=address,
            ca_file=os.getenv("WIRERPC_CA_FILE") or None,
            cert_file=os.getenv("WIRERPC_CERT_FILE") or None,
            key_file=os.getenv("WIRERPC_KEY_FILE") or None,
            trace_wire_traffic=_env_bool("WIRERPC_TRACE_WIRE", False),
            read_timeout_seconds=_env_float("WIRERPC_READ_TIMEOUT"),
            call_timeout_seconds=call_timeout if call_timeout is not None else 30.0,
            enable_tracing=_env_bool("WIRERPC_ENABLE_TRACING", False),
            service_name=os.getenv("WIRERPC_SERVICE_NAME", "wirerpc.client"),
        )

    def load_credentials(self) -> Tuple[Optional[bytes], Optional[bytes], Optional[bytes]]:
        """Read the PEM files

        Returns:
            Tuple: (trust_anchors, client_cert, client_key), None where unset
        """
        return _read_pem(self.ca_file), _read_pem(self.cert_file), _read_pem(self.key_file)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "address": self.address,
            "ca_file": self.ca_file,
            "cert_file": self.cert_file,
            "key_file": self.key_file,
            "trace_wire_traffic": self.trace_wire_traffic,
            "read_timeout_seconds": self.read_timeout_seconds,
            "call_timeout_seconds": self.call_timeout_seconds,
            "enable_tracing": self.enable_tracing,
            "service_name": self.service_name,
        }
