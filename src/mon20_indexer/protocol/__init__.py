"""MON-20 protocol rules - payload decoding, mint validation and application."""

from mon20_indexer.protocol.applier import MintApplier
from mon20_indexer.protocol.decoder import decode_inscription, encode_inscription
from mon20_indexer.protocol.validator import MintValidator

__all__ = ["MintApplier", "MintValidator", "decode_inscription", "encode_inscription"]
