"""
Database engine and session helpers for the SQL-backed document store.
"""
