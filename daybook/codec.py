"""
JSON codec for record collections.

Isolates the storage format from the rest of the system. A collection
is stored as one UTF-8 JSON document::

    {"format": "daybook-collection", "version": 1,
     "records": [{"id": "...", "created_at": "...", ...}, ...]}

Tags are stored by their string key, timestamps as ISO 8601 with offset.
"""

import json
import logging
from typing import Iterable, Optional

from .errors import DecodeFailure, EncodeFailure
from .types import Record

logger = logging.getLogger(__name__)

FORMAT_NAME = "daybook-collection"
FORMAT_VERSION = 1


def encode(records: Iterable[Record]) -> bytes:
    """
    Serialize a collection to bytes.

    Raises:
        EncodeFailure: if any record holds a value JSON cannot represent
    """
    try:
        payload = {
            "format": FORMAT_NAME,
            "version": FORMAT_VERSION,
            "records": [r.to_dict() for r in records],
        }
        return json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, AttributeError) as e:
        raise EncodeFailure(f"Cannot encode collection: {e}") from e


def decode_strict(blob: Optional[bytes]) -> list[Record]:
    """
    Deserialize a collection, raising on any problem.

    An absent or empty blob is an empty collection.

    Raises:
        DecodeFailure: corrupt JSON, unknown format, newer version,
            invalid records or duplicate ids
    """
    if not blob:
        return []
    try:
        data = json.loads(blob.decode("utf-8") if isinstance(blob, (bytes, bytearray)) else blob)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeFailure(f"Corrupt collection blob: {e}") from e

    if not isinstance(data, dict) or data.get("format") != FORMAT_NAME:
        raise DecodeFailure(f"Invalid collection format (expected {FORMAT_NAME!r})")
    version = data.get("version", 0)
    if not isinstance(version, int) or version > FORMAT_VERSION:
        raise DecodeFailure(
            f"Collection format version {version!r} is not supported "
            f"(this version supports up to {FORMAT_VERSION})"
        )
    raw = data.get("records", [])
    if not isinstance(raw, list):
        raise DecodeFailure("Collection 'records' must be a list")

    records = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        try:
            record = Record.from_dict(item)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeFailure(f"Invalid record at index {i}: {e}") from e
        if record.id in seen:
            raise DecodeFailure(f"Duplicate id in collection: {record.id}")
        seen.add(record.id)
        records.append(record)
    return records


def decode(blob: Optional[bytes]) -> list[Record]:
    """
    Deserialize a collection, falling back to empty on corruption.

    Storage corruption must never stop the app from starting; the data
    is lost back to an empty collection and a warning is logged.
    """
    try:
        return decode_strict(blob)
    except DecodeFailure as e:
        logger.warning("Discarding unreadable collection: %s", e)
        return []
