"""
Migration: Initial Schema
Created: 2026-10-05

Creates the core Toolshelf database schema:
- profiles: Identities and their roles
- categories: Tool category registry
- tools: Published directory entries
- submissions: Proposed tools and their review state
- submission_reviews: Audit trail of review actions
"""


def up(conn):
    """Apply the migration."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            nickname TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT,
            role TEXT NOT NULL DEFAULT 'user'
                CHECK (role IN ('user', 'reviewer', 'admin')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

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
            tools_count INTEGER DEFAULT 0,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (parent_id) REFERENCES categories(id),
            FOREIGN KEY (created_by) REFERENCES profiles(id)
        );

        CREATE TABLE IF NOT EXISTS tools (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            slug TEXT UNIQUE NOT NULL,
            name TEXT NOT NULL,
            description TEXT NOT NULL,
            content TEXT,
            website_url TEXT NOT NULL,
            logo_url TEXT,
            screenshots TEXT,
            tags TEXT,
            tool_type TEXT DEFAULT 'free',
            pricing_info TEXT,
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

        CREATE TABLE IF NOT EXISTS submissions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            tool_name TEXT NOT NULL,
            tool_description TEXT NOT NULL,
            tool_content TEXT,
            tool_website_url TEXT NOT NULL,
            tool_logo_url TEXT,
            tool_screenshots TEXT,
            tool_tags TEXT,
            tool_type TEXT DEFAULT 'free',
            pricing_info TEXT,
            category_id INTEGER NOT NULL,
            submitter_name TEXT,
            submitter_email TEXT,
            submission_notes TEXT,
            status TEXT NOT NULL DEFAULT 'submitted'
                CHECK (status IN ('draft', 'submitted', 'reviewing', 'approved',
                                  'rejected', 'changes_requested', 'withdrawn')),
            submitted_by INTEGER,
            reviewed_by INTEGER,
            review_notes TEXT,
            submitted_at TIMESTAMP,
            review_started_at TIMESTAMP,
            review_completed_at TIMESTAMP,
            version INTEGER DEFAULT 1,
            parent_submission_id INTEGER,
            lineage_id INTEGER,
            is_latest_version INTEGER DEFAULT 1,
            tool_id INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (category_id) REFERENCES categories(id),
            FOREIGN KEY (submitted_by) REFERENCES profiles(id),
            FOREIGN KEY (reviewed_by) REFERENCES profiles(id),
            FOREIGN KEY (parent_submission_id) REFERENCES submissions(id),
            FOREIGN KEY (tool_id) REFERENCES tools(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS submission_reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            submission_id INTEGER NOT NULL,
            action TEXT NOT NULL,
            reviewer_id INTEGER,
            previous_status TEXT,
            new_status TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (submission_id) REFERENCES submissions(id) ON DELETE CASCADE,
            FOREIGN KEY (reviewer_id) REFERENCES profiles(id)
        );

        CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status);
        CREATE INDEX IF NOT EXISTS idx_submissions_submitted_by ON submissions(submitted_by);
        CREATE INDEX IF NOT EXISTS idx_submissions_category ON submissions(category_id);
        CREATE INDEX IF NOT EXISTS idx_reviews_submission ON submission_reviews(submission_id);
        CREATE INDEX IF NOT EXISTS idx_tools_category ON tools(category_id);
        CREATE INDEX IF NOT EXISTS idx_categories_sort ON categories(sort_order);
    """)


def down(conn):
    """Rollback the migration."""
    conn.executescript("""
        DROP TABLE IF EXISTS submission_reviews;
        DROP TABLE IF EXISTS submissions;
        DROP TABLE IF EXISTS tools;
        DROP TABLE IF EXISTS categories;
        DROP TABLE IF EXISTS profiles;
    """)
