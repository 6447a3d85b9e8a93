"""
Toople backend.

Users, circles and events kept in a schemaless document store, with a
per-user notification feed derived from them.
"""
