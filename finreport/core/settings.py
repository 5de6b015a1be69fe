"""Runtime configuration loaded from ``config/report.yaml`` and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG = CONFIG_DIR / "report.yaml"

Color = tuple[int, int, int]


@dataclass(slots=True)
class Branding:
    product_name: str = "FINAXIAL"
    report_title: str = "FINANCIAL ANALYSIS REPORT"
    footer_text: str = "Finaxial Financial Analysis Report"
    author: str = "Finaxial"
    logo_path: str | None = None
    confidentiality_note: str = ""
    colors: dict[str, Color] = field(default_factory=dict)

    def color(self, name: str, default: Color = (0, 0, 0)) -> Color:
        return self.colors.get(name, default)


@dataclass(slots=True)
class Settings:
    backend_api_base: str = "http://localhost:5000"
    backend_timeout: float = 30.0
    gemini_api_key: str | None = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash"
    gemini_timeout: float = 60.0
    gemini_temperature: float = 0.7
    enrich_concurrency: int = 4
    login_path: str = "/login"
    max_sessions: int = 256
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=list)
    pdf_margin_mm: float = 20.0
    pdf_footer_offset_mm: float = 15.0
    branding: Branding = field(default_factory=Branding)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def _resolve_logo(value: str | None) -> str | None:
    if not value:
        return None
    if "://" in value:
        return value
    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = CONFIG_DIR.parent / candidate
    return str(candidate)


def _branding(raw: dict[str, Any]) -> Branding:
    colors = {name: tuple(int(part) for part in rgb) for name, rgb in (raw.get("colors") or {}).items()}
    defaults = Branding()
    return Branding(
        product_name=str(raw.get("product_name") or defaults.product_name),
        report_title=str(raw.get("report_title") or defaults.report_title),
        footer_text=str(raw.get("footer_text") or defaults.footer_text),
        author=str(raw.get("author") or defaults.author),
        logo_path=_resolve_logo(os.getenv("REPORT_LOGO_PATH") or raw.get("logo_path")),
        confidentiality_note=" ".join(str(raw.get("confidentiality_note") or "").split()),
        colors=colors,
    )


def load_settings(path: Path | None = None) -> Settings:
    """Build settings from a YAML file, letting environment variables win."""

    config_path = path or Path(os.getenv("REPORT_CONFIG_PATH") or DEFAULT_CONFIG)
    defaults = Settings()
    raw = _load_yaml(config_path)

    backend = raw.get("backend") or {}
    gemini = raw.get("gemini") or {}
    enrichment = raw.get("enrichment") or {}
    auth = raw.get("auth") or {}
    sessions = raw.get("sessions") or {}
    pdf = raw.get("pdf") or {}

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    return Settings(
        backend_api_base=os.getenv("FINAXIAL_API_BASE") or str(backend.get("api_base") or defaults.backend_api_base),
        backend_timeout=float(backend.get("timeout") or defaults.backend_timeout),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_api_base=os.getenv("GEMINI_API_BASE") or str(gemini.get("api_base") or defaults.gemini_api_base),
        gemini_model=os.getenv("GEMINI_MODEL") or str(gemini.get("model") or defaults.gemini_model),
        gemini_timeout=float(gemini.get("timeout") or defaults.gemini_timeout),
        gemini_temperature=float(gemini.get("temperature", defaults.gemini_temperature)),
        enrich_concurrency=max(1, int(os.getenv("REPORT_ENRICH_CONCURRENCY") or enrichment.get("concurrency") or 1)),
        login_path=os.getenv("REPORT_LOGIN_PATH") or str(auth.get("login_path") or defaults.login_path),
        max_sessions=max(1, int(os.getenv("REPORT_MAX_SESSIONS") or sessions.get("max_entries") or defaults.max_sessions)),
        log_level=(os.getenv("REPORT_LOG_LEVEL") or "INFO").upper(),
        cors_origins=origins,
        pdf_margin_mm=float(pdf.get("margin_mm") or defaults.pdf_margin_mm),
        pdf_footer_offset_mm=float(pdf.get("footer_offset_mm") or defaults.pdf_footer_offset_mm),
        branding=_branding(raw.get("branding") or {}),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def reset_settings() -> None:
    """Forget cached settings (used in tests)."""

    get_settings.cache_clear()
