"""Local SQLite (SQLAlchemy async) repositories."""
