"""
Per-domain repository modules for database access.

Each module exposes plain functions taking a `Session` as first argument;
writes commit before returning the refreshed ORM object.
"""
