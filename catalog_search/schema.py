"""
Relational schema the search engine queries.
Every entity shares one atom id space; `name` holds the display name of each atom.
"""

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS atom (
        id INTEGER PRIMARY KEY,
        hash BLOB NOT NULL
    );

    CREATE TABLE IF NOT EXISTS name (
        atom_id INTEGER NOT NULL,
        name TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS movie (
        atom_id INTEGER PRIMARY KEY,
        year INTEGER NOT NULL DEFAULT 0,
        sequence TEXT NOT NULL DEFAULT '',
        tv BOOLEAN NOT NULL DEFAULT 0,
        video BOOLEAN NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS tvshow (
        atom_id INTEGER PRIMARY KEY,
        year INTEGER NOT NULL DEFAULT 0,
        sequence TEXT NOT NULL DEFAULT '',
        year_start INTEGER NOT NULL DEFAULT 0,
        year_end INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS episode (
        atom_id INTEGER PRIMARY KEY,
        tvshow_atom_id INTEGER NOT NULL,  -- parent show
        year INTEGER NOT NULL DEFAULT 0,
        season INTEGER NOT NULL DEFAULT 0,
        episode_num INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS actor (
        atom_id INTEGER PRIMARY KEY,
        sequence TEXT NOT NULL DEFAULT ''
    );

    CREATE TABLE IF NOT EXISTS credit (
        actor_atom_id INTEGER NOT NULL,
        media_atom_id INTEGER NOT NULL,
        character TEXT NOT NULL DEFAULT '',
        position INTEGER NOT NULL DEFAULT 0,  -- billing position, 0 when unknown
        attrs TEXT NOT NULL DEFAULT ''
    );

    CREATE TABLE IF NOT EXISTS rating (
        atom_id INTEGER PRIMARY KEY,
        votes INTEGER NOT NULL DEFAULT 0,
        rank INTEGER NOT NULL DEFAULT 0  -- 0..100
    );
"""

INDEXES_SQL = """
    CREATE INDEX IF NOT EXISTS idx_name_atom_id ON name(atom_id);
    CREATE INDEX IF NOT EXISTS idx_name_name ON name(name);

    CREATE INDEX IF NOT EXISTS idx_episode_tvshow ON episode(tvshow_atom_id);

    CREATE INDEX IF NOT EXISTS idx_credit_actor ON credit(actor_atom_id);
    CREATE INDEX IF NOT EXISTS idx_credit_media ON credit(media_atom_id);
"""

# Tables the search query reads, in the order they are joined
TABLES = ("name", "movie", "tvshow", "episode", "actor", "rating", "credit")
