from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple


BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_POLLING_INTERVAL_SECONDS = 7
DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 200

# Rows start below a single header row.
HEADER_OFFSET = 2

Variant = Literal["default", "ba"]


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class CategoryPolicy:
    """Where a category's rows live and which column callers may edit.

    ``sheet_name=None`` means the first worksheet of the spreadsheet.
    When ``enforce_field`` is set, updates must name ``editable_column``.
    """

    category_id: str
    label: str
    sheet_name: Optional[str]
    column_range: str
    variant: Variant
    editable_column: str
    enforce_field: bool = True


CATEGORIES: Tuple[CategoryPolicy, ...] = (
    CategoryPolicy(
        category_id="nbot",
        label="NBOT",
        sheet_name=None,
        column_range="A2:K",
        variant="default",
        editable_column="K",
        enforce_field=True,
    ),
    CategoryPolicy(
        category_id="ba",
        label="BA",
        sheet_name="BA",
        column_range="B2:M",
        variant="ba",
        editable_column="M",
        enforce_field=False,
    ),
)


@dataclass(frozen=True)
class Settings:
    backend: Literal["sheets", "workbook"] = "sheets"
    spreadsheet_id: str = ""
    credentials_json: Optional[str] = None
    credentials_file: Path = BASE_DIR / "credentials.json"
    workbook_path: Optional[Path] = None
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    polling_interval_seconds: int = DEFAULT_POLLING_INTERVAL_SECONDS
    default_page_size: int = DEFAULT_PAGE_SIZE
    cors_origins: Tuple[str, ...] = ("http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173")
    categories: Tuple[CategoryPolicy, ...] = field(default_factory=lambda: CATEGORIES)

    def category_map(self) -> Dict[str, CategoryPolicy]:
        return {c.category_id: c for c in self.categories}


def _env_float(env: Dict[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(env: Dict[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    env = dict(os.environ if environ is None else environ)

    backend = (env.get("DASHBOARD_BACKEND") or "sheets").strip().lower()
    if backend not in {"sheets", "workbook"}:
        raise ConfigError(f"DASHBOARD_BACKEND must be 'sheets' or 'workbook', got {backend!r}")

    workbook_raw = (env.get("WORKBOOK_PATH") or "").strip()
    workbook_path = Path(workbook_raw) if workbook_raw else None
    if backend == "workbook" and workbook_path is None:
        raise ConfigError("WORKBOOK_PATH is required for the workbook backend")

    credentials_file = Path(env.get("GOOGLE_CREDENTIALS_FILE") or BASE_DIR / "credentials.json")

    origins_raw = env.get("CORS_ORIGINS")
    if origins_raw:
        cors_origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())
    else:
        cors_origins = Settings.cors_origins

    page_size = min(MAX_PAGE_SIZE, _env_int(env, "DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE))

    return Settings(
        backend=backend,  # type: ignore[arg-type]
        spreadsheet_id=(env.get("SPREADSHEET_ID") or "").strip(),
        credentials_json=env.get("GOOGLE_CREDENTIALS") or None,
        credentials_file=credentials_file,
        workbook_path=workbook_path,
        cache_ttl_seconds=_env_float(env, "CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        request_timeout_seconds=_env_float(env, "REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS),
        polling_interval_seconds=_env_int(env, "POLLING_INTERVAL_SECONDS", DEFAULT_POLLING_INTERVAL_SECONDS),
        default_page_size=page_size,
        cors_origins=cors_origins,
    )
