import os
from typing import Dict, List, Optional

from app.db_config import get_db_config, reset_db_config

DEFAULT_USER_AGENT = "PMHNPJobsBot/1.0 (+https://pmhnphiring.com)"
DEFAULT_LOG_LEVEL = "INFO"

FULL_RUN_BUDGET_SECONDS = 900
CHUNK_RUN_BUDGET_SECONDS = 250
DEFAULT_BATCH_WIDTH = 5
DEFAULT_BATCH_PAUSE_SECONDS = 0.5
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_PAGES_PER_QUERY = 3


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Runtime settings collected from the environment"""

    def __init__(self):
        self.cron_secret = os.getenv("CRON_SECRET")
        self.log_level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        self.user_agent = os.getenv("PMHNP_CRAWLER_UA", DEFAULT_USER_AGENT)

        self.full_run_budget_seconds = _env_int("FULL_RUN_BUDGET_SECONDS", FULL_RUN_BUDGET_SECONDS)
        self.chunk_run_budget_seconds = _env_int("CHUNK_RUN_BUDGET_SECONDS", CHUNK_RUN_BUDGET_SECONDS)
        self.batch_width = _env_int("PMHNP_BATCH_WIDTH", DEFAULT_BATCH_WIDTH)
        self.batch_pause_seconds = _env_float("PMHNP_BATCH_PAUSE_SECONDS", DEFAULT_BATCH_PAUSE_SECONDS)
        self.http_timeout_seconds = _env_float("PMHNP_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS)
        self.pages_per_query = _env_int("PMHNP_PAGES_PER_QUERY", DEFAULT_PAGES_PER_QUERY)
        self.validate_links = _env_bool("PMHNP_VALIDATE_LINKS", True)

        self.rapidapi_key = os.getenv("RAPIDAPI_KEY")
        self.adzuna_app_id = os.getenv("ADZUNA_APP_ID")
        self.adzuna_app_key = os.getenv("ADZUNA_APP_KEY")
        self.jooble_api_key = os.getenv("JOOBLE_API_KEY")
        self.usajobs_api_key = os.getenv("USAJOBS_API_KEY")
        self.usajobs_user_agent = os.getenv("USAJOBS_USER_AGENT")
        self.careerjet_affiliate_id = os.getenv("CAREERJET_AFFILIATE_ID")
        self.careerjet_user_ip = os.getenv("CAREERJET_USER_IP", "127.0.0.1")

        self.career_page_urls = _env_list("PMHNP_CAREER_PAGE_URLS")
        # Optional overrides of the built-in company slug lists.
        self.company_overrides: Dict[str, List[str]] = {
            name: _env_list(f"PMHNP_{name.upper()}_COMPANIES")
            for name in ("greenhouse", "lever", "ashby", "workday", "bamboohr", "smartrecruiters", "icims", "jazzhr")
        }

    @property
    def database_url(self) -> Optional[str]:
        return get_db_config().dsn

    def budget_for_mode(self, mode: str) -> int:
        if mode == "chunk":
            return self.chunk_run_budget_seconds
        return self.full_run_budget_seconds

    def companies_for(self, connector: str) -> List[str]:
        return self.company_overrides.get(connector) or []


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings and DB config so the next get_settings() rereads the environment"""
    global _settings
    _settings = None
    reset_db_config()
