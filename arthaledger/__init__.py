"""Personal finance ledger: SQLite-backed transactions, categories, auto-categorization rules, reports and bearer-token checks."""

__version__ = "0.1.0"