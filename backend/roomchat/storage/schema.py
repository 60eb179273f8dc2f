"""DuckDB schema for participants, rooms and messages.

Database Schema:
    participants table:
        - id: Sequence-backed primary key
        - handle: Unique, case-sensitive, 3-20 characters
        - created_at / last_seen_at: Epoch milliseconds

    rooms table:
        - id: Sequence-backed primary key
        - name: Unique, case-sensitive, 3-50 characters
        - created_by: Participant who created the room (foreign key)
        - deleted_at: Tombstone (NULL while the room is active)

    messages table:
        - id: Sequence-backed primary key
        - participant_id / room_id: Sender and room (foreign keys)
        - content: HTML-escaped text, 1-2000 characters
        - timestamp: Ordering key, always > 0
        - delivery_status: pending, sent or failed
        - retry_count: 0-3

Every statement is idempotent so provisioning can run on every startup.
"""

SCHEMA_STATEMENTS = [
    "CREATE SEQUENCE IF NOT EXISTS participants_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS participants (
        id           INTEGER DEFAULT nextval('participants_seq') PRIMARY KEY,
        handle       VARCHAR NOT NULL UNIQUE,
        created_at   BIGINT NOT NULL,
        last_seen_at BIGINT,
        CHECK (length(handle) >= 3 AND length(handle) <= 20)
    )
    """,
    "CREATE SEQUENCE IF NOT EXISTS rooms_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS rooms (
        id         INTEGER DEFAULT nextval('rooms_seq') PRIMARY KEY,
        name       VARCHAR NOT NULL UNIQUE,
        created_at BIGINT NOT NULL,
        created_by INTEGER NOT NULL REFERENCES participants(id),
        deleted_at BIGINT,
        CHECK (length(name) >= 3 AND length(name) <= 50)
    )
    """,
    "CREATE SEQUENCE IF NOT EXISTS messages_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS messages (
        id              INTEGER DEFAULT nextval('messages_seq') PRIMARY KEY,
        participant_id  INTEGER NOT NULL REFERENCES participants(id),
        room_id         INTEGER NOT NULL REFERENCES rooms(id),
        content         VARCHAR NOT NULL
                        CHECK (length(content) > 0 AND length(content) <= 2000),
        timestamp       BIGINT NOT NULL CHECK (timestamp > 0),
        delivery_status VARCHAR NOT NULL DEFAULT 'pending'
                        CHECK (delivery_status IN ('pending', 'sent', 'failed')),
        retry_count     INTEGER NOT NULL DEFAULT 0
                        CHECK (retry_count >= 0 AND retry_count <= 3),
        created_at      BIGINT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_room_ts ON messages(room_id, timestamp)",
]
