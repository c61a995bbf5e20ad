"""
Database package for Warncord.

A single long-lived aiosqlite connection (``db_connection``), the schema
(``db_schema``) and the ``Database`` coordinator that hands connections to the
table repositories.
"""
