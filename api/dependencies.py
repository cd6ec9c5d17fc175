from fastapi import Depends
import snowflake.connector

from config import Settings, get_settings
from services.articles_service import SnowflakeArticleStore
from services.db import get_db_connection


def get_app_settings() -> Settings:
    return get_settings()


def get_article_store(
    conn: snowflake.connector.SnowflakeConnection = Depends(get_db_connection),
) -> SnowflakeArticleStore:
    """
    FastAPI dependency that provides the article store bound to the
    request-scoped database connection.
    """
    return SnowflakeArticleStore(conn)
