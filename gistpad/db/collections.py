"""Document store collection names.

The hosted store has no DDL; collections come into existence on first write.
These constants are the single source of truth for their names.
"""

COLLECTION_USERS = "users"
COLLECTION_GISTS = "gists"
COLLECTION_COMMENTS = "comments"
