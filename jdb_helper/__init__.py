"""jdb-helper - classify database tables and extract entity columns for code generation."""

__version__ = "0.1.0"
