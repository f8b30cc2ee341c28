"""Database infrastructure: connection pool, store errors, migrations."""
