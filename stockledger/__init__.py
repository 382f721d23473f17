"""HTTP service, backed by SQLite, for keeping account of products and their categories."""

__version__ = "0.1.0"