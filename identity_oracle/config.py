"""
Configuration module for the identity oracle.

All settings come from environment variables and are read once at startup
into an immutable OracleConfig. Missing key material is a ConfigError; the
process is expected to exit rather than run without it.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .aggregator import DEFAULT_MAX_WORKERS
from .errors import ConfigError
from .evidence import DEFAULT_API_BASE, DEFAULT_DESCRIPTION, DEFAULT_TIMEOUT_SECONDS
from .ledger import DEFAULT_FINALIZATION_TIMEOUT
from .util import mask_sensitive
from .verifier import DEFAULT_ATTESTATION_KIND

# ============================================================
# Environment Configuration
# ============================================================

REQUIRED_VARS = ("IDENTITY_ENCRYPTION_KEY", "VERIFIER_INDEX", "VERIFIER_SECRET")

DEFAULT_LEDGER_ENDPOINT = "memory://local"


@dataclass(frozen=True)
class OracleConfig:
    """Process-wide, read-only oracle settings."""
    encryption_key: str
    verifier_index: int
    verifier_secret: str
    ledger_endpoint: str = DEFAULT_LEDGER_ENDPOINT
    evidence_api_base: str = DEFAULT_API_BASE
    evidence_token: Optional[str] = None
    attestation_kind: str = DEFAULT_ATTESTATION_KIND
    attestation_description: str = DEFAULT_DESCRIPTION
    fetch_timeout: float = DEFAULT_TIMEOUT_SECONDS
    finalization_timeout: float = DEFAULT_FINALIZATION_TIMEOUT
    fetch_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "INFO"
    log_json: bool = True

    def __repr__(self) -> str:
        return (
            f"OracleConfig(verifier_index={self.verifier_index}, "
            f"encryption_key={mask_sensitive(self.encryption_key)!r}, "
            f"verifier_secret={mask_sensitive(self.verifier_secret)!r}, "
            f"ledger_endpoint={self.ledger_endpoint!r}, "
            f"attestation_kind={self.attestation_kind!r})"
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


def load_config(env: Optional[Mapping[str, str]] = None) -> OracleConfig:
    """
    Build an OracleConfig from environment variables.

    Raises:
        ConfigError: listing every missing or invalid variable
    """
    env = os.environ if env is None else env
    problems: List[str] = [f"{name} is not set" for name in REQUIRED_VARS if not env.get(name)]

    def number(name: str, default, cast):
        raw = env.get(name)
        if raw in (None, ""):
            return default
        try:
            value = cast(raw)
        except ValueError:
            problems.append(f"{name} must be a number, got {raw!r}")
            return default
        if value < 0:
            problems.append(f"{name} must not be negative")
        return value

    verifier_index = number("VERIFIER_INDEX", 0, int)
    fetch_timeout = number("FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, float)
    finalization_timeout = number("FINALIZATION_TIMEOUT_SECONDS", DEFAULT_FINALIZATION_TIMEOUT, float)
    fetch_workers = number("FETCH_WORKERS", DEFAULT_MAX_WORKERS, int)
    if fetch_workers == 0:
        problems.append("FETCH_WORKERS must be at least 1")

    if problems:
        raise ConfigError(problems)

    return OracleConfig(
        encryption_key=env["IDENTITY_ENCRYPTION_KEY"],
        verifier_index=verifier_index,
        verifier_secret=env["VERIFIER_SECRET"] + env.get("DERIVATION_PATH", ""),
        ledger_endpoint=env.get("LEDGER_ENDPOINT") or DEFAULT_LEDGER_ENDPOINT,
        evidence_api_base=env.get("EVIDENCE_API_BASE") or DEFAULT_API_BASE,
        evidence_token=env.get("EVIDENCE_API_TOKEN") or None,
        attestation_kind=env.get("ATTESTATION_KIND") or DEFAULT_ATTESTATION_KIND,
        attestation_description=env.get("ATTESTATION_DESCRIPTION") or DEFAULT_DESCRIPTION,
        fetch_timeout=fetch_timeout,
        finalization_timeout=finalization_timeout,
        fetch_workers=fetch_workers,
        log_level=env.get("ORACLE_LOG_LEVEL", "INFO"),
        log_json=_parse_bool(env.get("ORACLE_LOG_JSON", "true")),
    )


# ============================================================
# Validation
# ============================================================

def validate_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, bool]:
    """
    Report which required variables are present.
    Returns dict of variable name -> set.
    """
    env = os.environ if env is None else env
    return {name: bool(env.get(name)) for name in REQUIRED_VARS}
