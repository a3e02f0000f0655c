"""
Daily Devotional - Database

SQLite database schema and helper functions.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator, Mapping, Optional

from core.config import get_db_path
from core.constants import ContentStatusEnum, TranslationSourceEnum
from core.logging import get_logger
from core.models import ContentRecord, TranslationInfo, TranslationRecord, UsedReference

logger = get_logger(__name__)


# ============================================================================
# Schema Definitions
# ============================================================================


SCHEMA_SQL = """
-- One row per (date, mode, language)
CREATE TABLE IF NOT EXISTS daily_content (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    post_date TEXT NOT NULL,
    mode TEXT NOT NULL,
    language TEXT NOT NULL DEFAULT 'en',
    title TEXT NOT NULL DEFAULT '',
    content_text TEXT NOT NULL DEFAULT '',
    verse_reference TEXT,
    devotional_reflection TEXT NOT NULL DEFAULT '',
    camera_script TEXT NOT NULL DEFAULT '',
    meditation_script TEXT NOT NULL DEFAULT '',
    background_prompt TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'empty',
    meditation_audio_url TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(post_date, mode, language)
);

-- One row per (content, translation/voice code)
CREATE TABLE IF NOT EXISTS daily_content_translations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    daily_content_id INTEGER NOT NULL,
    translation_code TEXT NOT NULL,
    translated_text TEXT NOT NULL DEFAULT '',
    long_text TEXT NOT NULL DEFAULT '',
    verse_reference TEXT,
    audio_url TEXT,
    srt_url TEXT,
    source TEXT NOT NULL DEFAULT 'api',
    FOREIGN KEY (daily_content_id) REFERENCES daily_content(id),
    UNIQUE(daily_content_id, translation_code)
);

-- Append-only ledger of references already used
CREATE TABLE IF NOT EXISTS used_references (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book TEXT NOT NULL,
    chapter INTEGER NOT NULL,
    verse INTEGER NOT NULL,
    verse_reference TEXT NOT NULL,
    used_date TEXT NOT NULL,
    daily_content_id INTEGER,
    FOREIGN KEY (daily_content_id) REFERENCES daily_content(id),
    UNIQUE(book, chapter, verse)
);

-- Translation/voice code catalog
CREATE TABLE IF NOT EXISTS translations (
    code TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    language TEXT NOT NULL DEFAULT 'en',
    active INTEGER NOT NULL DEFAULT 1,
    api_bible_id TEXT,
    delay_ms INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_daily_content_status ON daily_content(status);
CREATE INDEX IF NOT EXISTS idx_daily_content_mode_date ON daily_content(mode, post_date);
CREATE INDEX IF NOT EXISTS idx_translations_content ON daily_content_translations(daily_content_id);
"""

# Columns that update helpers are allowed to write
CONTENT_UPDATABLE_COLUMNS = frozenset({
    "title",
    "content_text",
    "verse_reference",
    "devotional_reflection",
    "camera_script",
    "meditation_script",
    "background_prompt",
    "status",
    "meditation_audio_url",
})

TRANSLATION_UPDATABLE_COLUMNS = frozenset({
    "translated_text",
    "long_text",
    "verse_reference",
    "audio_url",
    "srt_url",
    "source",
})


# ============================================================================
# Connection Management
# ============================================================================


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """
    Get a database connection.

    Args:
        db_path: Path to database file (uses config default if None)

    Returns:
        SQLite connection
    """
    if db_path is None:
        db_path = get_db_path()

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db(db_path: Optional[Path] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Commits on success, rolls back on error, always closes.
    """
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: Optional[Path] = None) -> None:
    """Initialize the database with schema (idempotent)."""
    if db_path is None:
        db_path = get_db_path()

    with get_db(Path(db_path)) as conn:
        conn.executescript(SCHEMA_SQL)

    logger.info(f"Database initialized at {db_path}")


def _now() -> str:
    return datetime.now().isoformat()


def _build_set_clause(fields: Mapping[str, Any], allowed: frozenset) -> tuple[str, list[Any]]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")

    columns = sorted(fields)
    clause = ", ".join(f"{column} = ?" for column in columns)
    return clause, [fields[column] for column in columns]


# ============================================================================
# CRUD Operations - Daily Content
# ============================================================================


def find_content(
    conn: sqlite3.Connection,
    post_date: str,
    mode: str,
    language: str = "en",
) -> Optional[ContentRecord]:
    """Find the content record for (date, mode, language)."""
    row = conn.execute(
        "SELECT * FROM daily_content WHERE post_date = ? AND mode = ? AND language = ?",
        (post_date, mode, language),
    ).fetchone()
    return _row_to_content(row) if row else None


def get_content_by_id(conn: sqlite3.Connection, content_id: int) -> Optional[ContentRecord]:
    """Get a content record by primary key."""
    row = conn.execute("SELECT * FROM daily_content WHERE id = ?", (content_id,)).fetchone()
    return _row_to_content(row) if row else None


def insert_content(conn: sqlite3.Connection, record: ContentRecord) -> int:
    """Insert a content record and return its ID."""
    cursor = conn.execute(
        """
        INSERT INTO daily_content (
            post_date, mode, language, title, content_text, verse_reference,
            devotional_reflection, camera_script, meditation_script, background_prompt,
            status, meditation_audio_url, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            record.post_date,
            record.mode,
            record.language,
            record.title,
            record.content_text,
            record.verse_reference,
            record.devotional_reflection,
            record.camera_script,
            record.meditation_script,
            record.background_prompt,
            record.status,
            record.meditation_audio_url,
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
        ),
    )
    return cursor.lastrowid


def find_or_create_content(
    conn: sqlite3.Connection,
    post_date: str,
    mode: str,
    language: str = "en",
) -> tuple[ContentRecord, bool]:
    """
    Return the record for (date, mode, language), creating an empty one if needed.

    Returns:
        (record, created)
    """
    existing = find_content(conn, post_date, mode, language)
    if existing is not None:
        return existing, False

    record = ContentRecord(
        post_date=post_date,
        mode=mode,
        language=language,
        status=ContentStatusEnum.EMPTY.value,
    )
    record.id = insert_content(conn, record)
    return record, True


def update_content_fields(
    conn: sqlite3.Connection,
    content_id: int,
    fields: Mapping[str, Any],
) -> None:
    """Update several columns of a content record in one statement."""
    if not fields:
        return

    clause, values = _build_set_clause(fields, CONTENT_UPDATABLE_COLUMNS)
    conn.execute(
        f"UPDATE daily_content SET {clause}, updated_at = ? WHERE id = ?",
        (*values, _now(), content_id),
    )


def get_recent_content_texts(
    conn: sqlite3.Connection,
    mode: str,
    limit: int = 30,
    before_date: Optional[str] = None,
) -> list[str]:
    """Get the most recent non-empty primary texts for a mode, oldest first."""
    query = "SELECT content_text FROM daily_content WHERE mode = ? AND content_text != ''"
    params: list[Any] = [mode]
    if before_date:
        query += " AND post_date < ?"
        params.append(before_date)
    query += " ORDER BY post_date DESC LIMIT ?"
    params.append(limit)

    rows = conn.execute(query, params).fetchall()
    return [row["content_text"] for row in reversed(rows)]


def _row_to_content(row: sqlite3.Row) -> ContentRecord:
    """Convert database row to ContentRecord."""
    return ContentRecord(
        id=row["id"],
        post_date=row["post_date"],
        mode=row["mode"],
        language=row["language"],
        title=row["title"] or "",
        content_text=row["content_text"] or "",
        verse_reference=row["verse_reference"],
        devotional_reflection=row["devotional_reflection"] or "",
        camera_script=row["camera_script"] or "",
        meditation_script=row["meditation_script"] or "",
        background_prompt=row["background_prompt"] or "",
        status=row["status"],
        meditation_audio_url=row["meditation_audio_url"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


# ============================================================================
# CRUD Operations - Translations
# ============================================================================


def get_translations_for_content(
    conn: sqlite3.Connection,
    content_id: int,
) -> list[TranslationRecord]:
    """Get all translation rows of a content record, ordered by code."""
    rows = conn.execute(
        "SELECT * FROM daily_content_translations WHERE daily_content_id = ? ORDER BY id",
        (content_id,),
    ).fetchall()
    return [_row_to_translation(row) for row in rows]


def get_translation(
    conn: sqlite3.Connection,
    content_id: int,
    code: str,
) -> Optional[TranslationRecord]:
    """Get one translation row by (content, code)."""
    row = conn.execute(
        "SELECT * FROM daily_content_translations WHERE daily_content_id = ? AND translation_code = ?",
        (content_id, code),
    ).fetchone()
    return _row_to_translation(row) if row else None


def insert_translation(conn: sqlite3.Connection, translation: TranslationRecord) -> int:
    """Insert a translation row and return its ID."""
    cursor = conn.execute(
        """
        INSERT INTO daily_content_translations (
            daily_content_id, translation_code, translated_text, long_text,
            verse_reference, audio_url, srt_url, source
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            translation.daily_content_id,
            translation.translation_code,
            translation.translated_text,
            translation.long_text,
            translation.verse_reference,
            translation.audio_url,
            translation.srt_url,
            translation.source,
        ),
    )
    return cursor.lastrowid


def update_translation_fields(
    conn: sqlite3.Connection,
    translation_id: int,
    fields: Mapping[str, Any],
) -> None:
    """Update several columns of a translation row in one statement."""
    if not fields:
        return

    clause, values = _build_set_clause(fields, TRANSLATION_UPDATABLE_COLUMNS)
    conn.execute(
        f"UPDATE daily_content_translations SET {clause} WHERE id = ?",
        (*values, translation_id),
    )


def get_translations_needing_audio(
    conn: sqlite3.Connection,
    content_id: int,
) -> list[TranslationRecord]:
    """Translation rows with narration text but no audio yet."""
    return [
        t for t in get_translations_for_content(conn, content_id)
        if t.narration_text and not t.audio_url
    ]


def _row_to_translation(row: sqlite3.Row) -> TranslationRecord:
    """Convert database row to TranslationRecord."""
    return TranslationRecord(
        id=row["id"],
        daily_content_id=row["daily_content_id"],
        translation_code=row["translation_code"],
        translated_text=row["translated_text"] or "",
        long_text=row["long_text"] or "",
        verse_reference=row["verse_reference"],
        audio_url=row["audio_url"],
        srt_url=row["srt_url"],
        source=row["source"] or TranslationSourceEnum.API.value,
    )


# ============================================================================
# CRUD Operations - Used Reference Ledger
# ============================================================================


def find_used_reference(
    conn: sqlite3.Connection,
    book: str,
    chapter: int,
    verse: int,
) -> Optional[UsedReference]:
    """Look up a ledger entry by the reference's stable identity."""
    row = conn.execute(
        "SELECT * FROM used_references WHERE book = ? AND chapter = ? AND verse = ?",
        (book, chapter, verse),
    ).fetchone()
    return _row_to_used_reference(row) if row else None


def insert_used_reference(conn: sqlite3.Connection, entry: UsedReference) -> Optional[int]:
    """
    Record a used reference. Returns ID or None if already recorded.
    """
    try:
        cursor = conn.execute(
            """
            INSERT INTO used_references (book, chapter, verse, verse_reference, used_date, daily_content_id)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.book,
                entry.chapter,
                entry.verse,
                entry.verse_reference,
                entry.used_date,
                entry.daily_content_id,
            ),
        )
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        # Already in the ledger
        return None


def get_used_reference_keys(conn: sqlite3.Connection) -> set[tuple[str, int, int]]:
    """Get the identities of every used reference."""
    rows = conn.execute("SELECT book, chapter, verse FROM used_references").fetchall()
    return {(row["book"], row["chapter"], row["verse"]) for row in rows}


def _row_to_used_reference(row: sqlite3.Row) -> UsedReference:
    return UsedReference(
        id=row["id"],
        book=row["book"],
        chapter=row["chapter"],
        verse=row["verse"],
        verse_reference=row["verse_reference"],
        used_date=row["used_date"],
        daily_content_id=row["daily_content_id"],
    )


# ============================================================================
# CRUD Operations - Translation Catalog
# ============================================================================


def sync_translation_catalog(conn: sqlite3.Connection, catalog: list[TranslationInfo]) -> int:
    """Upsert catalog entries from configuration. Returns number of entries written."""
    for info in catalog:
        conn.execute(
            """
            INSERT INTO translations (code, name, language, active, api_bible_id, delay_ms)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(code) DO UPDATE SET
                name = excluded.name,
                language = excluded.language,
                active = excluded.active,
                api_bible_id = excluded.api_bible_id,
                delay_ms = excluded.delay_ms
            """,
            (info.code, info.name, info.language, int(info.active), info.api_bible_id, info.delay_ms),
        )
    return len(catalog)


def get_translation_info(conn: sqlite3.Connection, code: str) -> Optional[TranslationInfo]:
    """Get a catalog entry by code."""
    row = conn.execute("SELECT * FROM translations WHERE code = ?", (code,)).fetchone()
    return _row_to_translation_info(row) if row else None


def get_active_translations(conn: sqlite3.Connection) -> list[TranslationInfo]:
    """Get every active catalog entry, ordered by code."""
    rows = conn.execute("SELECT * FROM translations WHERE active = 1 ORDER BY code").fetchall()
    return [_row_to_translation_info(row) for row in rows]


def _row_to_translation_info(row: sqlite3.Row) -> TranslationInfo:
    return TranslationInfo(
        code=row["code"],
        name=row["name"],
        language=row["language"],
        active=bool(row["active"]),
        api_bible_id=row["api_bible_id"],
        delay_ms=row["delay_ms"],
    )


# ============================================================================
# Statistics
# ============================================================================


def get_table_counts(conn: sqlite3.Connection) -> dict[str, int]:
    """Get row counts for all tables."""
    tables = ["daily_content", "daily_content_translations", "used_references", "translations"]
    counts = {}
    for table in tables:
        row = conn.execute(f"SELECT COUNT(*) as count FROM {table}").fetchone()
        counts[table] = row["count"]
    return counts


def get_status_counts(conn: sqlite3.Connection, month: Optional[str] = None) -> dict[str, int]:
    """Get content counts by status, optionally for one YYYY-MM month."""
    query = "SELECT status, COUNT(*) as count FROM daily_content"
    params: list[Any] = []
    if month:
        query += " WHERE post_date LIKE ?"
        params.append(f"{month}-%")
    query += " GROUP BY status ORDER BY count DESC"

    rows = conn.execute(query, params).fetchall()
    return {row["status"]: row["count"] for row in rows}
