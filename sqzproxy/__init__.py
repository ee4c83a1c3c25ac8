"""Request models, SQLite rule store, admin API and shadow-testing helpers for a prompt-compressing proxy."""

__version__ = "0.1.0"

__all__ = [
    "admin",
    "admin_types",
    "anthropic_types",
    "errors",
    "middleware",
    "migrations",
    "models",
    "openai_types",
    "shadow",
    "store",
]