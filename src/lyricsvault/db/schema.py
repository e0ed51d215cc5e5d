"""SQL schema definitions for the LyricsVault database.

Tables:
    saved_songs:        One row per user-song pairing (legacy mirror + fetch state)
    lyrics_documents:   Structured lyrics, at most one per saved song
    lyrics_lines:       Ordered lines of a document (replaced wholesale on save)
    lyrics_versions:    Immutable raw-text snapshots of earlier document states
    line_annotations:   Per-user notes attached to a single line
"""

CREATE_SAVED_SONGS_TABLE = """
CREATE TABLE IF NOT EXISTS saved_songs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    track TEXT NOT NULL,
    artist TEXT NOT NULL DEFAULT '',
    -- Flat-text mirror of the latest structured lyrics (legacy clients)
    legacy_lyrics TEXT NOT NULL DEFAULT '',
    fetch_state TEXT NOT NULL DEFAULT 'idle',
    visibility TEXT NOT NULL DEFAULT 'private',
    note TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    CHECK (fetch_state IN ('idle', 'fetching', 'done', 'failed')),
    CHECK (visibility IN ('private', 'friends', 'public'))
);
"""

CREATE_LYRICS_DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS lyrics_documents (
    id TEXT PRIMARY KEY,
    song_id TEXT UNIQUE NOT NULL REFERENCES saved_songs(id) ON DELETE CASCADE,
    raw_text TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    CHECK (version >= 1)
);
"""

CREATE_LYRICS_LINES_TABLE = """
CREATE TABLE IF NOT EXISTS lyrics_lines (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES lyrics_documents(id) ON DELETE CASCADE,
    line_number INTEGER NOT NULL,
    text TEXT NOT NULL,
    -- Playback position for synchronized highlighting
    timestamp_ms INTEGER,

    UNIQUE (document_id, line_number)
);
"""

CREATE_LYRICS_VERSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS lyrics_versions (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES lyrics_documents(id) ON DELETE CASCADE,
    version INTEGER NOT NULL,
    raw_text TEXT NOT NULL,
    created_at TEXT NOT NULL,

    UNIQUE (document_id, version)
);
"""

CREATE_LINE_ANNOTATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS line_annotations (
    id TEXT PRIMARY KEY,
    line_id TEXT NOT NULL REFERENCES lyrics_lines(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    text TEXT NOT NULL,
    emoji TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    UNIQUE (line_id, user_id)
);
"""

CREATE_INDEXES = [
    """
    CREATE INDEX IF NOT EXISTS idx_saved_songs_user_id
    ON saved_songs(user_id, created_at);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_lyrics_versions_document
    ON lyrics_versions(document_id, version DESC);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_line_annotations_line
    ON line_annotations(line_id, created_at);
    """,
]

ALL_SCHEMA_STATEMENTS = [
    CREATE_SAVED_SONGS_TABLE,
    CREATE_LYRICS_DOCUMENTS_TABLE,
    CREATE_LYRICS_LINES_TABLE,
    CREATE_LYRICS_VERSIONS_TABLE,
    CREATE_LINE_ANNOTATIONS_TABLE,
    *CREATE_INDEXES,
]

# Tables in drop order (children first)
ALL_TABLES = [
    "line_annotations",
    "lyrics_versions",
    "lyrics_lines",
    "lyrics_documents",
    "saved_songs",
]

# Column lists in the order the row models' from_row() expects
SAVED_SONG_COLUMNS = (
    "id, user_id, track, artist, legacy_lyrics, fetch_state, visibility, note, created_at, updated_at"
)
LYRICS_DOCUMENT_COLUMNS = "id, song_id, raw_text, version, created_at, updated_at"
LYRICS_LINE_COLUMNS = "id, document_id, line_number, text, timestamp_ms"
LYRICS_VERSION_COLUMNS = "id, document_id, version, raw_text, created_at"
LINE_ANNOTATION_COLUMNS = "id, line_id, user_id, text, emoji, created_at, updated_at"
