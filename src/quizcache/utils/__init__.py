"""Utility modules for quizcache."""

from .payload import as_utc, decode_payload, encode_payload

__all__ = [
    "as_utc",
    "decode_payload",
    "encode_payload",
]
