import sqlite3

import pytest

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(100) NOT NULL,
    karma DECIMAL(19,5),
    suspended TINYINT(1) DEFAULT '0'
);
CREATE TABLE tweets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    message TEXT,
    retweets INTEGER,
    created TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

SEED = """
INSERT INTO users (id, name) VALUES (1, 'Oliver');
INSERT INTO users (id, name) VALUES (2, 'Sandra');
INSERT INTO tweets (id, user_id, message, retweets) VALUES (1, 1, 'Google Go rocks', 179);
INSERT INTO tweets (id, user_id, message, retweets) VALUES (2, 1, '... so does Google Maps', 19);
INSERT INTO tweets (id, user_id, message, retweets) VALUES (3, 2, 'Holidays! Yay!', 1);
"""


@pytest.fixture
def sqlite_conn():
    """Create an in-memory SQLite database seeded with users and tweets"""
    conn = sqlite3.connect(':memory:')
    conn.executescript(SCHEMA)
    conn.executescript(SEED)
    conn.commit()

    yield conn
    conn.close()
