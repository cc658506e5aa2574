"""Binary artifacts: the patch manifest and the search index."""

from apiref.codec.binio import BinaryReader, BinaryWriter
from apiref.codec.manifest import (
    decode_manifest,
    encode_manifest,
    manifest_from_json,
    manifest_to_json,
    read_manifest,
    write_atomic,
    write_manifest,
)
from apiref.codec.search import (
    ItemKind,
    SearchIndex,
    SearchItem,
    decode_search_index,
    encode_search_index,
    write_search_index,
)
from apiref.codec.timestamp import decode_timestamp, decode_timestamp_parts, encode_timestamp

__all__ = [
    "BinaryReader",
    "BinaryWriter",
    # Manifest
    "encode_manifest",
    "decode_manifest",
    "read_manifest",
    "write_manifest",
    "write_atomic",
    "manifest_to_json",
    "manifest_from_json",
    # Search index
    "ItemKind",
    "SearchIndex",
    "SearchItem",
    "encode_search_index",
    "decode_search_index",
    "write_search_index",
    # Timestamps
    "encode_timestamp",
    "decode_timestamp",
    "decode_timestamp_parts",
]
