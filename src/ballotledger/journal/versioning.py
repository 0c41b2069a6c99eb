"""Journal format versions. Bump on any change to entry layout or hashing."""

SCHEMA_VERSION = "1.0"
JOURNAL_VERSION = "1.0"
