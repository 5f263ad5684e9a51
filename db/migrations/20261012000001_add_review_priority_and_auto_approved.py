"""
Migration: Add review priority and explicit auto-approval flag
Created: 2026-10-12

- submissions.review_priority orders the review queue (1-5, default 3)
- submissions.auto_approved replaces guessing auto-approval from
  submitted_at == review_completed_at; existing rows are backfilled that way
- one latest version per lineage is enforced with a partial unique index
"""


def _columns(conn, table):
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def up(conn):
    """Apply the migration."""
    columns = _columns(conn, "submissions")

    if "review_priority" not in columns:
        conn.execute("ALTER TABLE submissions ADD COLUMN review_priority INTEGER DEFAULT 3")

    if "auto_approved" not in columns:
        conn.execute("ALTER TABLE submissions ADD COLUMN auto_approved INTEGER DEFAULT 0")
        conn.execute("""
            UPDATE submissions SET auto_approved = 1
            WHERE status = 'approved'
              AND submitted_at IS NOT NULL
              AND submitted_at = review_completed_at
        """)

    conn.execute("UPDATE submissions SET lineage_id = id WHERE lineage_id IS NULL")
    conn.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_submissions_latest_lineage
            ON submissions(lineage_id) WHERE is_latest_version = 1
    """)


def down(conn):
    """Rollback the migration."""
    conn.execute("DROP INDEX IF EXISTS idx_submissions_latest_lineage")
    conn.execute("ALTER TABLE submissions DROP COLUMN auto_approved")
    conn.execute("ALTER TABLE submissions DROP COLUMN review_priority")
