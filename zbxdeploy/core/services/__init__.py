"""Services — package manager, database, backup and config operations."""
