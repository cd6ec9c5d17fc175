from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import snowflake.connector

from config import get_settings
from services.db import execute, fetch_dicts

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "beyondchats"

# Writable article fields -> column names ("references" is reserved in SQL)
COLUMNS = {
    "title": "title",
    "url": "url",
    "author": "author",
    "published_at": "published_at",
    "excerpt": "excerpt",
    "content": "content",
    "references": "reference_links",
    "source": "source",
}
VARIANT_FIELDS = {"references"}

SELECT_COLUMNS = (
    "id, title, url, author, published_at, excerpt, content, "
    "reference_links, source, created_at, updated_at"
)


class ArticleNotFound(Exception):
    pass


class ArticleValidationError(Exception):
    pass


class ArticleConflict(Exception):
    pass


class Reference(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None


class ArticleIn(BaseModel):
    """Payload accepted for create; title and url are required."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    author: Optional[str] = None
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    excerpt: Optional[str] = None
    content: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    source: str = DEFAULT_SOURCE

    @field_validator("title", "url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class ArticleUpdate(BaseModel):
    """Partial update; only provided fields are written."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    excerpt: Optional[str] = None
    content: Optional[str] = None
    references: Optional[List[Reference]] = None
    source: Optional[str] = None


class Article(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    url: str
    author: Optional[str] = None
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    excerpt: Optional[str] = None
    content: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    source: str = DEFAULT_SOURCE
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


def _table() -> str:
    return get_settings().articles_table


def _row_to_article(row: dict) -> Article:
    refs = row.get("reference_links")
    if isinstance(refs, str):
        refs = json.loads(refs)
    return Article(
        id=row["id"],
        title=row["title"],
        url=row["url"],
        author=row.get("author"),
        published_at=row.get("published_at"),
        excerpt=row.get("excerpt"),
        content=row.get("content"),
        references=refs or [],
        source=row.get("source") or DEFAULT_SOURCE,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _param(field: str, value: Any) -> Any:
    if field in VARIANT_FIELDS:
        return json.dumps([Reference.model_validate(v).model_dump() for v in (value or [])])
    return value


def _check_required(fields: dict, names: tuple[str, ...]) -> None:
    for name in names:
        if name in fields and not (fields[name] or "").strip():
            raise ArticleValidationError(f"Article {name} is required")


def ensure_table(conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> None:
    """Creates the articles table if it does not exist."""
    query = f"""
        CREATE TABLE IF NOT EXISTS {_table()} (
            id VARCHAR PRIMARY KEY,
            title VARCHAR NOT NULL,
            url VARCHAR NOT NULL UNIQUE,
            author VARCHAR,
            published_at TIMESTAMP_TZ,
            excerpt VARCHAR,
            content VARCHAR,
            reference_links VARIANT,
            source VARCHAR DEFAULT '{DEFAULT_SOURCE}',
            created_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
            updated_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP()
        );
    """
    execute(query, conn=conn)


def list_articles(conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> list[Article]:
    """Lists all articles, oldest publication first (undated last)."""
    query = f"""
        SELECT {SELECT_COLUMNS}
        FROM {_table()}
        ORDER BY published_at ASC NULLS LAST, created_at ASC;
    """
    return [_row_to_article(row) for row in fetch_dicts(query, conn=conn)]


def get_article_by_id(article_id: str, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> Article | None:
    """Retrieves a single article by its ID."""
    query = f"SELECT {SELECT_COLUMNS} FROM {_table()} WHERE id = %(article_id)s;"
    rows = fetch_dicts(query, {"article_id": article_id}, conn=conn)
    return _row_to_article(rows[0]) if rows else None


def get_article_by_url(url: str, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> Article | None:
    query = f"SELECT {SELECT_COLUMNS} FROM {_table()} WHERE url = %(url)s;"
    rows = fetch_dicts(query, {"url": url}, conn=conn)
    return _row_to_article(rows[0]) if rows else None


def create_article(payload: dict, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> Article:
    """Creates a new article. The url must not be taken yet."""
    try:
        article_in = ArticleIn.model_validate(payload)
    except ValidationError as e:
        raise ArticleValidationError(str(e)) from e

    if get_article_by_url(article_in.url, conn=conn):
        raise ArticleConflict(f"Article with url {article_in.url} already exists")

    fields = article_in.model_dump()
    article_id = uuid.uuid4().hex
    columns = ["id"] + [COLUMNS[f] for f in fields]
    selects = ["%(id)s"] + [
        f"PARSE_JSON(%({f})s)" if f in VARIANT_FIELDS else f"%({f})s" for f in fields
    ]
    params = {"id": article_id, **{f: _param(f, v) for f, v in fields.items()}}

    # INSERT ... SELECT so PARSE_JSON works with bound parameters
    query = f"""
        INSERT INTO {_table()} ({', '.join(columns)})
        SELECT {', '.join(selects)}
    """
    execute(query, params, conn=conn)
    logger.info("Created article %s (%s)", article_id, article_in.url)
    return get_article_by_id(article_id, conn=conn)


def upsert_article_by_url(url: str, fields: dict, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> Article:
    """
    Insert-or-replace keyed on url. Only the given non-null fields are written
    on match; an insert needs at least a title.
    """
    fields = {k: v for k, v in fields.items() if k in COLUMNS and v is not None}
    fields["url"] = url
    if "title" not in fields:
        raise ArticleValidationError("Article title is required")
    _check_required(fields, ("title", "url"))

    params = {"new_id": uuid.uuid4().hex, **{f: _param(f, v) for f, v in fields.items()}}
    source_cols = ", ".join(
        f"PARSE_JSON(%({f})s) AS {COLUMNS[f]}" if f in VARIANT_FIELDS else f"%({f})s AS {COLUMNS[f]}"
        for f in fields
    )
    update_set = ", ".join(f"t.{COLUMNS[f]} = s.{COLUMNS[f]}" for f in fields if f != "url")
    insert_cols = ["id"] + [COLUMNS[f] for f in fields]
    insert_vals = ["%(new_id)s"] + [f"s.{COLUMNS[f]}" for f in fields]
    if "references" not in fields:
        insert_cols.append("reference_links")
        insert_vals.append("PARSE_JSON('[]')")
    if "source" not in fields:
        insert_cols.append("source")
        insert_vals.append(f"'{DEFAULT_SOURCE}'")

    query = f"""
        MERGE INTO {_table()} t
        USING (SELECT {source_cols}) s
        ON t.url = s.url
        WHEN MATCHED THEN UPDATE SET {update_set}, t.updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT ({', '.join(insert_cols)})
            VALUES ({', '.join(insert_vals)});
    """
    execute(query, params, conn=conn)
    article = get_article_by_url(url, conn=conn)
    if article is None:
        raise ArticleNotFound(f"Upserted article {url} could not be read back")
    return article


def update_article(
    article_id: str,
    fields: dict,
    conn: Optional[snowflake.connector.SnowflakeConnection] = None,
) -> Article | None:
    """Updates an article. Returns None if not found."""
    article = get_article_by_id(article_id, conn=conn)
    if not article:
        return None

    try:
        update = ArticleUpdate.model_validate(fields)
    except ValidationError as e:
        raise ArticleValidationError(str(e)) from e

    changes = update.model_dump(exclude_unset=True)
    _check_required(changes, ("title", "url"))
    if not changes:
        return article

    if "url" in changes and changes["url"] != article.url and get_article_by_url(changes["url"], conn=conn):
        raise ArticleConflict(f"Article with url {changes['url']} already exists")

    updates = [
        f"{COLUMNS[f]} = PARSE_JSON(%({f})s)" if f in VARIANT_FIELDS else f"{COLUMNS[f]} = %({f})s"
        for f in changes
    ]
    updates.append("updated_at = CURRENT_TIMESTAMP()")
    params = {"article_id": article_id, **{f: _param(f, v) for f, v in changes.items()}}

    query = f"""
        UPDATE {_table()}
        SET {', '.join(updates)}
        WHERE id = %(article_id)s;
    """
    execute(query, params, conn=conn)
    return get_article_by_id(article_id, conn=conn)


def delete_article(article_id: str, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> bool:
    """Deletes an article by ID. Returns True if deleted, False if not found."""
    query = f"DELETE FROM {_table()} WHERE id = %(article_id)s;"
    return execute(query, {"article_id": article_id}, conn=conn) > 0


class SnowflakeArticleStore:
    """ArticleStore over the module functions, bound to one connection."""

    def __init__(self, conn: Optional[snowflake.connector.SnowflakeConnection] = None):
        self.conn = conn

    def list_articles(self) -> List[Article]:
        return list_articles(conn=self.conn)

    def create(self, payload: dict) -> Article:
        return create_article(payload, conn=self.conn)

    def upsert_by_url(self, url: str, fields: dict) -> Article:
        return upsert_article_by_url(url, fields, conn=self.conn)

    def get_by_id(self, article_id: str) -> Optional[Article]:
        return get_article_by_id(article_id, conn=self.conn)

    def update_by_id(self, article_id: str, fields: dict) -> Optional[Article]:
        return update_article(article_id, fields, conn=self.conn)

    def delete_by_id(self, article_id: str) -> bool:
        return delete_article(article_id, conn=self.conn)
