import hashlib
import logging
import os
import secrets
import sqlite3
from contextlib import contextmanager

DB_PATH = os.environ.get("DB_PATH", "/data/beats.db")

PBKDF2_ITERATIONS = 200_000

logger = logging.getLogger(__name__)

SCHEMA = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS beats (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    genre TEXT NOT NULL,
    bpm INTEGER NOT NULL,
    duration REAL NOT NULL DEFAULT 0,
    cover_art_url TEXT,
    audio_url TEXT,
    created_at TEXT NOT NULL,
    is_published INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_beats_created_at ON beats(created_at);

CREATE TABLE IF NOT EXISTS contact_submissions (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL,
    processed INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS admin_users (
    username TEXT PRIMARY KEY,
    password_salt TEXT NOT NULL,
    password_hash TEXT NOT NULL
);
"""


def get_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


@contextmanager
def db():
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return digest.hex()


def set_admin_user(conn: sqlite3.Connection, username: str, password: str):
    salt = secrets.token_hex(16)
    conn.execute(
        """
        INSERT INTO admin_users (username, password_salt, password_hash) VALUES (?, ?, ?)
        ON CONFLICT(username) DO UPDATE SET
            password_salt=excluded.password_salt, password_hash=excluded.password_hash
        """,
        (username, salt, hash_password(password, salt)),
    )


def init_db():
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = get_connection()
    try:
        conn.executescript(SCHEMA)
        # Migrations for databases created before the processed column
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(contact_submissions)")}
        if "processed" not in columns:
            conn.execute("ALTER TABLE contact_submissions ADD COLUMN processed INTEGER NOT NULL DEFAULT 0")

        username = os.environ.get("ADMIN_USERNAME", "")
        password = os.environ.get("ADMIN_PASSWORD", "")
        if username and password:
            set_admin_user(conn, username, password)
            logger.info(f"Admin user '{username}' provisioned from environment")
        conn.commit()
    finally:
        conn.close()
