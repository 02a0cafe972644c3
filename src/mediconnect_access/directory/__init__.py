"""
mediconnect_access.directory

User directory package.

Responsibilities:
- The `UserDirectory` interface (`find_by_identity` and friends).
- An in-memory implementation seeded with demo accounts.
"""

# Package marker.
