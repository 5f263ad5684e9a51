"""
Toolshelf Database Module

SQLite database schema and operations for the tool directory.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional


SCHEMA = """
-- Profiles: one per authenticated identity
CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    nickname TEXT UNIQUE NOT NULL,         -- lowercase
    email TEXT UNIQUE NOT NULL,            -- lowercase
    password_hash TEXT,
    role TEXT NOT NULL DEFAULT 'user'
        CHECK (role IN ('user', 'reviewer', 'admin')),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Categories: flat-or-nested registry of tool categories
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    icon TEXT,
    color TEXT,
    parent_id INTEGER,
    sort_order INTEGER DEFAULT 0,
    is_active INTEGER DEFAULT 1,
    show_on_homepage INTEGER DEFAULT 1,
    tools_count INTEGER DEFAULT 0,         -- cache of published tools in this category
    created_by INTEGER,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (parent_id) REFERENCES categories(id),
    FOREIGN KEY (created_by) REFERENCES profiles(id)
);

-- Tools: published directory entries, created from approved submissions
CREATE TABLE IF NOT EXISTS tools (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    content TEXT,
    website_url TEXT NOT NULL,
    logo_url TEXT,
    screenshots TEXT,                      -- JSON list
    tags TEXT,                             -- JSON list
    tool_type TEXT DEFAULT 'free',         -- free, freemium, paid
    pricing_info TEXT,                     -- JSON object
    category_id INTEGER NOT NULL,
    status TEXT DEFAULT 'published',
    submitted_by INTEGER,
    reviewed_by INTEGER,
    reviewed_at TIMESTAMP,
    review_notes TEXT,
    published_at TIMESTAMP,
    view_count INTEGER DEFAULT 0,
    click_count INTEGER DEFAULT 0,
    is_featured INTEGER DEFAULT 0,
    is_active INTEGER DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (category_id) REFERENCES categories(id),
    FOREIGN KEY (submitted_by) REFERENCES profiles(id),
    FOREIGN KEY (reviewed_by) REFERENCES profiles(id)
);

-- Submissions: proposed tools and their review state
CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tool_name TEXT NOT NULL,
    tool_description TEXT NOT NULL,
    tool_content TEXT,
    tool_website_url TEXT NOT NULL,
    tool_logo_url TEXT,
    tool_screenshots TEXT,                 -- JSON list
    tool_tags TEXT,                        -- JSON list
    tool_type TEXT DEFAULT 'free',
    pricing_info TEXT,                     -- JSON object
    category_id INTEGER NOT NULL,
    submitter_name TEXT,                   -- copied at submit time
    submitter_email TEXT,
    submission_notes TEXT,
    status TEXT NOT NULL DEFAULT 'submitted'
        CHECK (status IN ('draft', 'submitted', 'reviewing', 'approved',
                          'rejected', 'changes_requested', 'withdrawn')),
    submitted_by INTEGER,
    reviewed_by INTEGER,
    review_notes TEXT,
    review_priority INTEGER DEFAULT 3,     -- 1 (low) to 5 (urgent)
    auto_approved INTEGER DEFAULT 0,
    submitted_at TIMESTAMP,
    review_started_at TIMESTAMP,
    review_completed_at TIMESTAMP,         -- set only for approved / rejected
    version INTEGER DEFAULT 1,
    parent_submission_id INTEGER,
    lineage_id INTEGER,                    -- id of the first submission in the chain
    is_latest_version INTEGER DEFAULT 1,
    tool_id INTEGER,                       -- set once published
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (category_id) REFERENCES categories(id),
    FOREIGN KEY (submitted_by) REFERENCES profiles(id),
    FOREIGN KEY (reviewed_by) REFERENCES profiles(id),
    FOREIGN KEY (parent_submission_id) REFERENCES submissions(id),
    FOREIGN KEY (tool_id) REFERENCES tools(id) ON DELETE SET NULL
);

-- Submission reviews: append-only audit trail of status changes
CREATE TABLE IF NOT EXISTS submission_reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    submission_id INTEGER NOT NULL,
    action TEXT NOT NULL,                  -- submit, start_review, approve, reject, request_changes, withdraw
    reviewer_id INTEGER,
    previous_status TEXT,
    new_status TEXT,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (submission_id) REFERENCES submissions(id) ON DELETE CASCADE,
    FOREIGN KEY (reviewer_id) REFERENCES profiles(id)
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status);
CREATE INDEX IF NOT EXISTS idx_submissions_submitted_by ON submissions(submitted_by);
CREATE INDEX IF NOT EXISTS idx_submissions_category ON submissions(category_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_submissions_latest_lineage
    ON submissions(lineage_id) WHERE is_latest_version = 1;
CREATE INDEX IF NOT EXISTS idx_reviews_submission ON submission_reviews(submission_id);
CREATE INDEX IF NOT EXISTS idx_tools_category ON tools(category_id);
CREATE INDEX IF NOT EXISTS idx_categories_sort ON categories(sort_order);
"""

DEFAULT_CATEGORIES = [
    # slug, name, icon, color
    ("writing", "AI Writing", "✍️", "#6366f1"),
    ("image", "Image Generation", "🖼️", "#ec4899"),
    ("video", "Video", "🎬", "#f97316"),
    ("audio", "Audio & Voice", "🎵", "#14b8a6"),
    ("coding", "Coding", "💻", "#0ea5e9"),
    ("design", "Design", "🎨", "#a855f7"),
    ("productivity", "Productivity", "⚡", "#eab308"),
    ("education", "Education", "📚", "#22c55e"),
    ("business", "Business", "💼", "#64748b"),
]

JSON_LIST_COLUMNS = ("tool_screenshots", "tool_tags", "screenshots", "tags")
JSON_OBJECT_COLUMNS = ("pricing_info",)

SUBMISSION_COLUMNS = (
    "tool_name", "tool_description", "tool_content", "tool_website_url",
    "tool_logo_url", "tool_screenshots", "tool_tags", "tool_type",
    "pricing_info", "category_id", "submitter_name", "submitter_email",
    "submission_notes", "status", "submitted_by", "reviewed_by",
    "review_priority", "auto_approved", "submitted_at", "review_completed_at",
)

TOOL_COLUMNS = (
    "slug", "name", "description", "content", "website_url", "logo_url",
    "screenshots", "tags", "tool_type", "pricing_info", "category_id",
    "status", "submitted_by", "reviewed_by", "reviewed_at", "review_notes",
    "published_at",
)

CATEGORY_COLUMNS = (
    "slug", "name", "description", "icon", "color", "parent_id",
    "sort_order", "is_active", "show_on_homepage", "created_by",
)


def utc_now() -> str:
    """Current UTC time in SQLite's CURRENT_TIMESTAMP format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def utc_today() -> str:
    """Start of the current UTC day, comparable with utc_now() values."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d 00:00:00")


def _encode(fields: dict) -> dict:
    """JSON-encode list and object columns before writing."""
    encoded = dict(fields)
    for key in JSON_LIST_COLUMNS + JSON_OBJECT_COLUMNS:
        if key in encoded and encoded[key] is not None and not isinstance(encoded[key], str):
            encoded[key] = json.dumps(encoded[key])
    return encoded


def _decode(row: Optional[sqlite3.Row]) -> Optional[dict]:
    """Convert a row to a dict, decoding JSON columns."""
    if row is None:
        return None
    data = dict(row)
    for key in JSON_LIST_COLUMNS:
        if key in data:
            data[key] = json.loads(data[key]) if data[key] else []
    for key in JSON_OBJECT_COLUMNS:
        if key in data:
            data[key] = json.loads(data[key]) if data[key] else {}
    return data


class Database:
    """SQLite database wrapper for Toolshelf.

    Connections run in autocommit mode; anything that writes more than one
    statement goes through ``transaction()``.
    """

    def __init__(self, db_path: str = "db/toolshelf.db", check_same_thread: bool = True):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.check_same_thread = check_same_thread
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Connect to the database."""
        if self.conn is None:
            self.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=self.check_same_thread,
                isolation_level=None,
            )
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
        return self.conn

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes atomically.

        Re-entrant: a nested call joins the outer transaction, so the
        outermost block decides whether everything commits or rolls back.
        """
        conn = self.connect()
        if conn.in_transaction:
            yield conn
            return

        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    def init_schema(self):
        """Initialize the database schema."""
        conn = self.connect()
        conn.executescript(SCHEMA)
        self._seed_categories()

    def _seed_categories(self):
        """Seed default categories if they don't exist."""
        with self.transaction() as conn:
            for sort_order, (slug, name, icon, color) in enumerate(DEFAULT_CATEGORIES):
                conn.execute(
                    """INSERT OR IGNORE INTO categories (slug, name, icon, color, sort_order)
                       VALUES (?, ?, ?, ?, ?)""",
                    (slug, name, icon, color, sort_order)
                )

    # --- Profile Operations ---

    def create_profile(self, nickname: str, email: str, password_hash: str = None,
                       role: str = "user") -> int:
        """Create a profile. Nickname and email are stored lowercase."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO profiles (nickname, email, password_hash, role)
                   VALUES (?, ?, ?, ?)""",
                (nickname.strip().lower(), email.strip().lower(), password_hash, role)
            )
            return cursor.lastrowid

    def get_profile(self, profile_id: int) -> Optional[dict]:
        """Get a profile by ID."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM profiles WHERE id = ?", (profile_id,)
        ).fetchone()
        return dict(row) if row else None

    def get_profile_by_nickname(self, nickname: str) -> Optional[dict]:
        """Get a profile by nickname (case-insensitive)."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM profiles WHERE nickname = ?", (nickname.strip().lower(),)
        ).fetchone()
        return dict(row) if row else None

    def get_profile_by_email(self, email: str) -> Optional[dict]:
        """Get a profile by email (case-insensitive)."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM profiles WHERE email = ?", (email.strip().lower(),)
        ).fetchone()
        return dict(row) if row else None

    def update_profile_role(self, profile_id: int, role: str) -> bool:
        """Change a profile's role. Returns False if the profile doesn't exist."""
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE profiles SET role = ?, updated_at = ? WHERE id = ?",
                (role, utc_now(), profile_id)
            )
            return cursor.rowcount == 1

    def list_profiles(self) -> list[dict]:
        """List all profiles, newest first."""
        conn = self.connect()
        rows = conn.execute(
            """SELECT id, nickname, email, role, created_at, updated_at
               FROM profiles ORDER BY created_at DESC, id DESC"""
        ).fetchall()
        return [dict(row) for row in rows]

    def count_profiles_by_role(self) -> dict[str, int]:
        """Count profiles per role."""
        conn = self.connect()
        counts = {"user": 0, "reviewer": 0, "admin": 0}
        for row in conn.execute("SELECT role, COUNT(*) AS n FROM profiles GROUP BY role"):
            counts[row["role"]] = row["n"]
        return counts

    # --- Category Operations ---

    def add_category(self, slug: str, name: str, **fields) -> int:
        """Add a category."""
        values = {"slug": slug, "name": name}
        values.update({k: v for k, v in fields.items() if k in CATEGORY_COLUMNS})
        columns = ", ".join(values)
        placeholders = ", ".join("?" * len(values))
        with self.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO categories ({columns}) VALUES ({placeholders})",
                tuple(values.values())
            )
            return cursor.lastrowid

    def get_category(self, category_id: int) -> Optional[dict]:
        """Get a category by ID."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
        return dict(row) if row else None

    def get_category_by_slug(self, slug: str) -> Optional[dict]:
        """Get a category by slug."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM categories WHERE slug = ?", (slug,)
        ).fetchone()
        return dict(row) if row else None

    def list_categories(self, active_only: bool = False,
                        homepage_only: bool = False) -> list[dict]:
        """List categories ordered by sort order."""
        conn = self.connect()
        query = "SELECT * FROM categories WHERE 1=1"
        if active_only:
            query += " AND is_active = 1"
        if homepage_only:
            query += " AND show_on_homepage = 1"
        query += " ORDER BY sort_order ASC, id ASC"
        return [dict(row) for row in conn.execute(query).fetchall()]

    def update_category(self, category_id: int, **fields) -> bool:
        """Update category fields. Unknown fields are ignored."""
        updates = {k: v for k, v in fields.items() if k in CATEGORY_COLUMNS}
        if not updates:
            return False
        assignments = ", ".join(f"{key} = ?" for key in updates)
        with self.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE categories SET {assignments}, updated_at = ? WHERE id = ?",
                (*updates.values(), utc_now(), category_id)
            )
            return cursor.rowcount == 1

    def increment_category_tools_count(self, category_id: int, delta: int = 1) -> bool:
        """Atomically adjust a category's cached tool count."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """UPDATE categories SET
                   tools_count = MAX(tools_count + ?, 0),
                   updated_at = ?
                   WHERE id = ?""",
                (delta, utc_now(), category_id)
            )
            return cursor.rowcount == 1

    def recount_category_tools(self) -> dict[str, tuple[int, int]]:
        """Rewrite every category's tools_count from the tools table.

        Returns:
            Mapping of category slug -> (old count, new count) for categories
            whose count changed.
        """
        changed = {}
        with self.transaction() as conn:
            rows = conn.execute(
                """SELECT c.id, c.slug, c.tools_count,
                          (SELECT COUNT(*) FROM tools t
                           WHERE t.category_id = c.id AND t.status = 'published') AS actual
                   FROM categories c"""
            ).fetchall()
            for row in rows:
                if row["tools_count"] != row["actual"]:
                    conn.execute(
                        "UPDATE categories SET tools_count = ?, updated_at = ? WHERE id = ?",
                        (row["actual"], utc_now(), row["id"])
                    )
                    changed[row["slug"]] = (row["tools_count"], row["actual"])
        return changed

    # --- Submission Operations ---

    def insert_submission(self, fields: dict,
                          parent_submission_id: int = None) -> Optional[int]:
        """Insert a submission as the latest version of its lineage.

        When a parent is given, its is_latest_version flag is cleared in the
        same transaction. Returns None if the parent is missing or is no
        longer the latest version.
        """
        values = _encode({k: v for k, v in fields.items() if k in SUBMISSION_COLUMNS})
        now = utc_now()
        with self.transaction() as conn:
            version = 1
            lineage_id = None
            if parent_submission_id is not None:
                parent = conn.execute(
                    "SELECT version, lineage_id FROM submissions WHERE id = ?",
                    (parent_submission_id,)
                ).fetchone()
                if parent is None:
                    return None
                cleared = conn.execute(
                    """UPDATE submissions SET is_latest_version = 0, updated_at = ?
                       WHERE id = ? AND is_latest_version = 1""",
                    (now, parent_submission_id)
                ).rowcount
                if cleared == 0:
                    return None
                version = parent["version"] + 1
                lineage_id = parent["lineage_id"]

            values.update({
                "version": version,
                "parent_submission_id": parent_submission_id,
                "lineage_id": lineage_id,
                "is_latest_version": 1,
                "updated_at": now,
            })
            columns = ", ".join(values)
            placeholders = ", ".join("?" * len(values))
            cursor = conn.execute(
                f"INSERT INTO submissions ({columns}) VALUES ({placeholders})",
                tuple(values.values())
            )
            submission_id = cursor.lastrowid

            if lineage_id is None:
                conn.execute(
                    "UPDATE submissions SET lineage_id = ? WHERE id = ?",
                    (submission_id, submission_id)
                )
        return submission_id

    def get_submission(self, submission_id: int) -> Optional[dict]:
        """Get a submission by ID, with JSON fields decoded."""
        conn = self.connect()
        row = conn.execute(
            """SELECT s.*, c.name AS category_name, c.slug AS category_slug,
                      t.slug AS tool_slug
               FROM submissions s
               LEFT JOIN categories c ON s.category_id = c.id
               LEFT JOIN tools t ON s.tool_id = t.id
               WHERE s.id = ?""",
            (submission_id,)
        ).fetchone()
        return _decode(row)

    def update_submission_status(self, submission_id: int, expected_status: str,
                                 new_status: str, reviewed_by: int = None,
                                 review_notes: str = None, mark_started: bool = False,
                                 mark_completed: bool = False, replace_notes: bool = False,
                                 latest_only: bool = False) -> bool:
        """Move a submission to a new status if it is still in expected_status.

        This is a single conditional UPDATE, so two reviewers racing on the
        same submission cannot both succeed. Returns False if the row was
        missing, its status had already changed, or (with latest_only) a
        newer version had replaced it.

        With replace_notes, review_notes is overwritten even when None;
        otherwise None keeps the existing notes.
        """
        now = utc_now()
        with self.transaction() as conn:
            cursor = conn.execute(
                """UPDATE submissions SET
                   status = ?,
                   reviewed_by = COALESCE(?, reviewed_by),
                   review_notes = CASE WHEN ? THEN ? ELSE COALESCE(?, review_notes) END,
                   review_started_at = CASE WHEN ? THEN COALESCE(review_started_at, ?)
                                            ELSE review_started_at END,
                   review_completed_at = CASE WHEN ? THEN ? ELSE NULL END,
                   updated_at = ?
                   WHERE id = ? AND status = ?
                     AND (? = 0 OR is_latest_version = 1)""",
                (new_status, reviewed_by,
                 int(replace_notes), review_notes, review_notes,
                 int(mark_started), now,
                 int(mark_completed), now,
                 now, submission_id, expected_status,
                 int(latest_only))
            )
            return cursor.rowcount == 1

    def link_submission_tool(self, submission_id: int, tool_id: int) -> bool:
        """Write the published tool back onto an approved, unlinked submission."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """UPDATE submissions SET tool_id = ?, updated_at = ?
                   WHERE id = ? AND status = 'approved' AND tool_id IS NULL""",
                (tool_id, utc_now(), submission_id)
            )
            return cursor.rowcount == 1

    def get_lineage_tool_id(self, lineage_id: int, exclude_id: int = None) -> Optional[int]:
        """Find a tool already published by an earlier version of a lineage."""
        conn = self.connect()
        row = conn.execute(
            """SELECT tool_id FROM submissions
               WHERE lineage_id = ? AND tool_id IS NOT NULL AND id != ?
               ORDER BY version DESC LIMIT 1""",
            (lineage_id, exclude_id if exclude_id is not None else -1)
        ).fetchone()
        return row["tool_id"] if row else None

    def get_pending_submissions(self, statuses: Iterable[str], limit: int = 20,
                                offset: int = 0) -> list[dict]:
        """Get latest-version submissions in the given statuses, review queue order."""
        statuses = list(statuses)
        placeholders = ",".join("?" * len(statuses))
        conn = self.connect()
        rows = conn.execute(
            f"""SELECT s.id, s.tool_name, s.tool_description, s.tool_website_url,
                       s.submitted_at, s.status, s.review_priority, s.version,
                       c.name AS category_name,
                       COALESCE(p.nickname, s.submitter_name, '') AS submitter_name,
                       COALESCE(p.email, s.submitter_email, '') AS submitter_email
                FROM submissions s
                JOIN categories c ON s.category_id = c.id
                LEFT JOIN profiles p ON s.submitted_by = p.id
                WHERE s.status IN ({placeholders}) AND s.is_latest_version = 1
                ORDER BY s.review_priority DESC, s.submitted_at ASC, s.id ASC
                LIMIT ? OFFSET ?""",
            (*statuses, limit, offset)
        ).fetchall()
        return [dict(row) for row in rows]

    def get_user_submissions(self, user_id: int) -> list[dict]:
        """Get the latest version of each lineage a user submitted, newest first."""
        conn = self.connect()
        rows = conn.execute(
            """SELECT s.id, s.tool_name, s.tool_description, s.status,
                      s.submitted_at, s.review_completed_at, s.review_notes,
                      s.auto_approved, s.version,
                      c.name AS category_name, t.slug AS tool_slug
               FROM submissions s
               JOIN categories c ON s.category_id = c.id
               LEFT JOIN tools t ON s.tool_id = t.id
               WHERE s.submitted_by = ? AND s.is_latest_version = 1
               ORDER BY s.created_at DESC, s.id DESC""",
            (user_id,)
        ).fetchall()
        return [dict(row) for row in rows]

    def get_unsynced_approved_submissions(self) -> list[dict]:
        """Get approved submissions that have no published tool yet."""
        conn = self.connect()
        rows = conn.execute(
            """SELECT id, tool_name FROM submissions
               WHERE status = 'approved' AND tool_id IS NULL
               ORDER BY id ASC"""
        ).fetchall()
        return [dict(row) for row in rows]

    def count_submissions(self, statuses: Iterable[str],
                          completed_since: str = None) -> int:
        """Count latest-version submissions in the given statuses."""
        statuses = list(statuses)
        placeholders = ",".join("?" * len(statuses))
        query = (
            f"SELECT COUNT(*) FROM submissions "
            f"WHERE status IN ({placeholders}) AND is_latest_version = 1"
        )
        params: list[Any] = list(statuses)
        if completed_since:
            query += " AND review_completed_at >= ?"
            params.append(completed_since)
        conn = self.connect()
        return conn.execute(query, params).fetchone()[0]

    def get_average_review_hours(self) -> Optional[float]:
        """Average hours from submission to decision, excluding auto-approvals."""
        conn = self.connect()
        value = conn.execute(
            """SELECT AVG((julianday(review_completed_at) - julianday(submitted_at)) * 24)
               FROM submissions
               WHERE review_completed_at IS NOT NULL AND auto_approved = 0"""
        ).fetchone()[0]
        return round(value, 2) if value is not None else None

    # --- Review Log Operations ---

    def add_review_entry(self, submission_id: int, action: str, reviewer_id: int = None,
                         previous_status: str = None, new_status: str = None,
                         notes: str = None) -> int:
        """Append an entry to a submission's review history."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO submission_reviews
                   (submission_id, action, reviewer_id, previous_status, new_status, notes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (submission_id, action, reviewer_id, previous_status, new_status,
                 notes, utc_now())
            )
            return cursor.lastrowid

    def get_review_history(self, submission_id: int) -> list[dict]:
        """Get a submission's review history in the order it happened."""
        conn = self.connect()
        rows = conn.execute(
            """SELECT r.*, p.nickname AS reviewer_nickname
               FROM submission_reviews r
               LEFT JOIN profiles p ON r.reviewer_id = p.id
               WHERE r.submission_id = ?
               ORDER BY r.id ASC""",
            (submission_id,)
        ).fetchall()
        return [dict(row) for row in rows]

    # --- Tool Operations ---

    def insert_tool(self, fields: dict) -> int:
        """Insert a published tool record."""
        values = _encode({k: v for k, v in fields.items() if k in TOOL_COLUMNS})
        columns = ", ".join(values)
        placeholders = ", ".join("?" * len(values))
        with self.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO tools ({columns}) VALUES ({placeholders})",
                tuple(values.values())
            )
            return cursor.lastrowid

    def update_tool(self, tool_id: int, fields: dict) -> bool:
        """Overwrite a tool's content fields."""
        values = _encode({k: v for k, v in fields.items() if k in TOOL_COLUMNS and k != "slug"})
        if not values:
            return False
        assignments = ", ".join(f"{key} = ?" for key in values)
        with self.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE tools SET {assignments}, updated_at = ? WHERE id = ?",
                (*values.values(), utc_now(), tool_id)
            )
            return cursor.rowcount == 1

    def get_tool(self, tool_id: int) -> Optional[dict]:
        """Get a tool by ID."""
        conn = self.connect()
        row = conn.execute(
            "SELECT * FROM tools WHERE id = ?", (tool_id,)
        ).fetchone()
        return _decode(row)

    def get_tool_by_slug(self, slug: str) -> Optional[dict]:
        """Get a tool by slug, with its category."""
        conn = self.connect()
        row = conn.execute(
            """SELECT t.*, c.slug AS category_slug, c.name AS category_name
               FROM tools t
               JOIN categories c ON t.category_id = c.id
               WHERE t.slug = ?""",
            (slug,)
        ).fetchone()
        return _decode(row)

    def tool_slug_exists(self, slug: str) -> bool:
        conn = self.connect()
        return conn.execute(
            "SELECT 1 FROM tools WHERE slug = ?", (slug,)
        ).fetchone() is not None

    def list_published_tools(self, category_id: int = None, search: str = None,
                             limit: int = 50, offset: int = 0) -> tuple[list[dict], int]:
        """List active published tools, featured first then newest.

        Returns:
            (tools, total matching count before pagination)
        """
        query = (
            "SELECT t.*, c.slug AS category_slug, c.name AS category_name "
            "FROM tools t JOIN categories c ON t.category_id = c.id "
            "WHERE t.status = 'published' AND t.is_active = 1"
        )
        params: list[Any] = []

        if category_id is not None:
            query += " AND t.category_id = ?"
            params.append(category_id)

        if search:
            search_term = f"%{search}%"
            query += " AND (t.name LIKE ? OR t.description LIKE ?)"
            params.extend([search_term, search_term])

        conn = self.connect()
        count_query = query.replace(
            "SELECT t.*, c.slug AS category_slug, c.name AS category_name", "SELECT COUNT(*)"
        )
        total = conn.execute(count_query, params).fetchone()[0]

        query += " ORDER BY t.is_featured DESC, t.published_at DESC, t.id DESC LIMIT ? OFFSET ?"
        rows = conn.execute(query, (*params, limit, offset)).fetchall()
        return [_decode(row) for row in rows], total

    def increment_tool_counter(self, tool_id: int, counter: str) -> bool:
        """Atomically bump a tool's view_count or click_count."""
        if counter not in ("view_count", "click_count"):
            raise ValueError(f"Unknown counter: {counter}")
        with self.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE tools SET {counter} = {counter} + 1 WHERE id = ?",
                (tool_id,)
            )
            return cursor.rowcount == 1

    # --- Statistics ---

    def get_directory_stats(self) -> dict:
        """Get directory-wide statistics."""
        conn = self.connect()

        submissions_by_status = {}
        for status in ['submitted', 'reviewing', 'changes_requested',
                       'approved', 'rejected', 'withdrawn']:
            count = conn.execute(
                "SELECT COUNT(*) FROM submissions WHERE status = ? AND is_latest_version = 1",
                (status,)
            ).fetchone()[0]
            submissions_by_status[status] = count

        published_tools = conn.execute(
            "SELECT COUNT(*) FROM tools WHERE status = 'published'"
        ).fetchone()[0]

        active_categories = conn.execute(
            "SELECT COUNT(*) FROM categories WHERE is_active = 1"
        ).fetchone()[0]

        profiles = conn.execute(
            "SELECT COUNT(*) FROM profiles"
        ).fetchone()[0]

        return {
            "submissions_by_status": submissions_by_status,
            "total_submissions": sum(submissions_by_status.values()),
            "published_tools": published_tools,
            "active_categories": active_categories,
            "total_profiles": profiles,
        }


def init_database(db_path: str = "db/toolshelf.db"):
    """Initialize the database with schema."""
    db = Database(db_path)
    db.init_schema()
    print(f"Database initialized at {db_path}")
    return db


if __name__ == "__main__":
    # Initialize database when run directly
    init_database()
