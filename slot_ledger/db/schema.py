SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS slots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slot_date TEXT NOT NULL,
    slot_hour INTEGER NOT NULL CHECK (slot_hour BETWEEN 0 AND 23),
    created_at TEXT NOT NULL,
    UNIQUE (slot_date, slot_hour)
);

CREATE TABLE IF NOT EXISTS content_sets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slot_id INTEGER NOT NULL REFERENCES slots(id) ON DELETE CASCADE,
    tier TEXT NOT NULL CHECK (tier IN ('SILVER', 'GOLD', 'DIAMOND')),
    source_kind TEXT NOT NULL CHECK (source_kind IN ('curated', 'generated')),
    narrative TEXT NOT NULL,
    suggested_digit INTEGER NOT NULL CHECK (suggested_digit BETWEEN 0 AND 9),
    template_id TEXT,
    created_by INTEGER,
    created_at TEXT NOT NULL,
    UNIQUE (slot_id, tier)
);

CREATE TABLE IF NOT EXISTS content_labels (
    content_id INTEGER NOT NULL REFERENCES content_sets(id) ON DELETE CASCADE,
    digit INTEGER NOT NULL CHECK (digit BETWEEN 0 AND 9),
    label TEXT NOT NULL,
    PRIMARY KEY (content_id, digit)
);

CREATE TABLE IF NOT EXISTS wagers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER NOT NULL,
    slot_id INTEGER NOT NULL REFERENCES slots(id) ON DELETE CASCADE,
    tier TEXT NOT NULL CHECK (tier IN ('SILVER', 'GOLD', 'DIAMOND')),
    digit INTEGER NOT NULL CHECK (digit BETWEEN 0 AND 9),
    ticket_count INTEGER NOT NULL CHECK (ticket_count > 0),
    unit_price INTEGER NOT NULL CHECK (unit_price > 0),
    total_stake INTEGER NOT NULL CHECK (total_stake > 0),
    placed_by INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (agent_id, slot_id, tier, digit)
);

CREATE INDEX IF NOT EXISTS idx_wagers_agent_slot ON wagers(agent_id, slot_id);
CREATE INDEX IF NOT EXISTS idx_wagers_slot_tier ON wagers(slot_id, tier);

CREATE TABLE IF NOT EXISTS results (
    slot_id INTEGER NOT NULL REFERENCES slots(id) ON DELETE CASCADE,
    tier TEXT NOT NULL CHECK (tier IN ('SILVER', 'GOLD', 'DIAMOND')),
    winning_digit INTEGER NOT NULL CHECK (winning_digit BETWEEN 0 AND 9),
    published_by INTEGER NOT NULL,
    published_at TEXT NOT NULL,
    PRIMARY KEY (slot_id, tier)
);

CREATE TABLE IF NOT EXISTS audit_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    actor_id INTEGER NOT NULL,
    slot_id INTEGER NOT NULL REFERENCES slots(id),
    tier TEXT NOT NULL,
    digit INTEGER NOT NULL CHECK (digit BETWEEN 0 AND 9),
    action TEXT NOT NULL CHECK (action IN ('publish', 'amend')),
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_slot ON audit_entries(slot_id, tier);

CREATE TRIGGER IF NOT EXISTS audit_entries_no_update
BEFORE UPDATE ON audit_entries
BEGIN
    SELECT RAISE(ABORT, 'audit entries are append-only');
END;

CREATE TRIGGER IF NOT EXISTS audit_entries_no_delete
BEFORE DELETE ON audit_entries
BEGIN
    SELECT RAISE(ABORT, 'audit entries are append-only');
END;
"""
