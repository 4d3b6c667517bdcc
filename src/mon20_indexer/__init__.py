"""mon20_indexer - MON-20 inscription indexer and ledger API."""

__version__ = "0.1.0"
