"""Generation ledger: signed daily snapshots and revisioned monthly settlements."""

__version__ = "0.1.0"
