"""Environment-driven configuration for bankrec.

Every setting can be overridden explicitly by the caller; otherwise it is
read from a ``BANKREC_*`` environment variable and falls back to a default.
"""

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from bankrec.domain.errors import ValidationError
from bankrec.domain.scoring import MatchPolicy

T = TypeVar("T")

DEFAULT_TENANT = "default"
DEFAULT_DB_TIMEOUT = 30.0
DEFAULT_LOCK_TIMEOUT = 30.0

# Environment variable -> (MatchPolicy field, parser)
_POLICY_VARIABLES: dict[str, tuple[str, Callable[[str], object]]] = {
    "BANKREC_DATE_WINDOW_DAYS": ("date_window_days", int),
    "BANKREC_AMOUNT_EPSILON": ("amount_epsilon", Decimal),
    "BANKREC_AUTO_ACCEPT_THRESHOLD": ("auto_accept_threshold", float),
    "BANKREC_NEAR_TIE_MARGIN": ("near_tie_margin", float),
    "BANKREC_DATE_WEIGHT": ("date_weight", float),
    "BANKREC_REFERENCE_WEIGHT": ("reference_weight", float),
}


def _parse(name: str, raw: str, parser: Callable[[str], T]) -> T:
    try:
        return parser(raw.strip())
    except (ValueError, InvalidOperation) as e:
        raise ValidationError(f"Invalid value for {name}: '{raw}'") from e


def get_database_path(database_path: Optional[str] = None) -> str:
    """Resolve the SQLite database path.

    Args:
        database_path: Explicit path. If None, checks BANKREC_DB_PATH
            environment variable, then defaults to ~/.bankrec/bankrec.db
    """
    if database_path is None:
        database_path = os.environ.get("BANKREC_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".bankrec"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "bankrec.db")

    return database_path


def get_database_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
    """Seconds a connection waits for a locked database (BANKREC_DB_TIMEOUT)."""
    environ = os.environ if environ is None else environ
    raw = environ.get("BANKREC_DB_TIMEOUT")
    if raw is None:
        return DEFAULT_DB_TIMEOUT
    return _parse("BANKREC_DB_TIMEOUT", raw, float)


def get_lock_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
    """Seconds to wait for an account's claim lock (BANKREC_LOCK_TIMEOUT)."""
    environ = os.environ if environ is None else environ
    raw = environ.get("BANKREC_LOCK_TIMEOUT")
    if raw is None:
        return DEFAULT_LOCK_TIMEOUT
    return _parse("BANKREC_LOCK_TIMEOUT", raw, float)


def load_match_policy(environ: Optional[Mapping[str, str]] = None) -> MatchPolicy:
    """Build a MatchPolicy from BANKREC_* environment variables.

    Unset variables keep the policy defaults.

    Raises:
        ValidationError: If a variable is set to a malformed or out-of-range value
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for name, (field, parser) in _POLICY_VARIABLES.items():
        raw = environ.get(name)
        if raw is not None and raw.strip():
            overrides[field] = _parse(name, raw, parser)

    try:
        return MatchPolicy(**overrides)
    except (ValueError, ArithmeticError) as e:
        raise ValidationError(f"Invalid matching configuration: {e}") from e
