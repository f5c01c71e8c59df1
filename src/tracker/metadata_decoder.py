"""Decode name and symbol from a Metaplex Token Metadata account.

Layout (Borsh, only the leading fields are read):
  [0:1]    key (account discriminator)
  [1:33]   update_authority (Pubkey)
  [33:65]  mint (Pubkey)
  65       name: u32 LE length + UTF-8 bytes (NUL padded to 32)
  ...      symbol: u32 LE length + UTF-8 bytes (NUL padded to 10)

uri, seller fee, creators and later fields are not interpreted.
"""

import struct
from dataclasses import dataclass

from src.tracker.constants import METADATA_HEADER_SIZE
from src.tracker.exceptions import MalformedMetadata


@dataclass(frozen=True)
class DecodedMetadata:
    name: str
    symbol: str


def decode_metadata(raw: bytes) -> DecodedMetadata:
    """Decode raw metadata account bytes.

    Raises MalformedMetadata when the buffer ends before a declared field.
    """
    offset = METADATA_HEADER_SIZE
    name, offset = _read_string(raw, offset, "name")
    symbol, _ = _read_string(raw, offset, "symbol")
    return DecodedMetadata(name=name, symbol=symbol)


def _read_string(raw: bytes, offset: int, field: str) -> tuple[str, int]:
    """Read a u32-length-prefixed string, return (text, next offset)."""
    try:
        (length,) = struct.unpack_from("<I", raw, offset)
    except struct.error as e:
        raise MalformedMetadata(
            f"{field} length missing at offset {offset} ({len(raw)} bytes)"
        ) from e

    start = offset + 4
    end = start + length
    if end > len(raw):
        raise MalformedMetadata(
            f"{field} declares {length} bytes at offset {start}, "
            f"buffer has {len(raw)} bytes"
        )

    text = raw[start:end].decode("utf-8", errors="replace")
    return _clean(text), end


def _clean(text: str) -> str:
    return text.replace("\x00", "").strip()
