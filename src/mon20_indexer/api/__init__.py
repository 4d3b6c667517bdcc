"""Read API - JSON views over the ledger."""

from mon20_indexer.api.server import ReadAPIServer, create_app

__all__ = ["ReadAPIServer", "create_app"]
