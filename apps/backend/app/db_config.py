"""
Database configuration module.
Prefers SUPABASE_DB_URL (pooler connection string) and falls back to DATABASE_URL.
"""

import os
import logging
from typing import Dict, Optional
from urllib.parse import urlparse, unquote

logger = logging.getLogger(__name__)


def mask_dsn(dsn: str) -> str:
    """Render a DSN for logs with the password replaced by ***"""
    try:
        parsed = urlparse(dsn.replace('[', '').replace(']', ''))
    except ValueError:
        return '<unparseable dsn>'
    user = parsed.username or ''
    credentials = f"{user}:***@" if parsed.password else (f"{user}@" if user else '')
    return f"{parsed.scheme}://{credentials}{parsed.hostname}:{parsed.port or 5432}{parsed.path}"


class DBConfig:
    """Postgres DSN resolution for the job store"""

    def __init__(self):
        self.supabase_db_url = os.getenv("SUPABASE_DB_URL")
        self.database_url = os.getenv("DATABASE_URL")

        if self.supabase_db_url and self.database_url:
            logger.info("[db_config] Both SUPABASE_DB_URL and DATABASE_URL set; using SUPABASE_DB_URL")

        if self.dsn:
            logger.info(f"[db_config] Database configured: {mask_dsn(self.dsn)}")
        else:
            logger.warning("[db_config] Neither SUPABASE_DB_URL nor DATABASE_URL set - using no database")

    @property
    def dsn(self) -> Optional[str]:
        return self.supabase_db_url or self.database_url

    @property
    def is_db_enabled(self) -> bool:
        return bool(self.dsn)

    def get_connection_params(self) -> Optional[Dict]:
        """
        Get psycopg2 connection parameters.
        Returns dict with host, port, database, user and (URL-decoded) password.
        """
        if not self.dsn:
            return None

        # postgresql://user:pass@[hostname]:port/db
        cleaned_url = self.dsn.replace('[', '').replace(']', '')
        try:
            parsed = urlparse(cleaned_url)
        except ValueError as e:
            logger.error(f"[db_config] Failed to parse database URL: {e}")
            return None

        if not parsed.hostname:
            return None

        params = {
            "host": parsed.hostname,
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip('/') or 'postgres',
            "user": parsed.username or 'postgres',
        }
        if parsed.password:
            params["password"] = unquote(parsed.password)

        logger.debug(
            f"[db_config] Connection params: host={params['host']}, port={params['port']}, "
            f"database={params['database']}, user={params['user']}"
        )
        return params


_db_config: Optional[DBConfig] = None


def get_db_config() -> DBConfig:
    """Get or create the global DB config (reads the environment on first use)"""
    global _db_config
    if _db_config is None:
        _db_config = DBConfig()
    return _db_config


def reset_db_config() -> None:
    """Drop the cached DB config so the next get_db_config() rereads the environment"""
    global _db_config
    _db_config = None
