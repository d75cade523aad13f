"""
Services Package

- storage: local object store (SQLite) and in-memory store
- transport: reading import files and writing export files
"""
