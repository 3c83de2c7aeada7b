"""Paged B+ tree index files, query conditions, a reader-writer latch, logging and an SQL client."""

__version__ = "0.1.0"