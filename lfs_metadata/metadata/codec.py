"""On-disk encoding for object metadata values."""

import json

from ..database.models import MetaObject
from .errors import EncodeError, DecodeError


def encode_object(meta: MetaObject) -> bytes:
    """Serialize a MetaObject to UTF-8 JSON. The `existing` flag is dropped."""
    if not isinstance(meta.oid, str) or not meta.oid:
        raise EncodeError(f"invalid oid: {meta.oid!r}")
    # bool is an int subclass but never a valid size
    if not isinstance(meta.size, int) or isinstance(meta.size, bool):
        raise EncodeError(f"invalid size for {meta.oid}: {meta.size!r}")
    try:
        return json.dumps({"oid": meta.oid, "size": meta.size}).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(str(e)) from e


def decode_object(value: bytes) -> MetaObject:
    """Deserialize a stored value back into a MetaObject."""
    try:
        data = json.loads(value.decode("utf-8"))
        oid, size = data["oid"], data["size"]
    except (UnicodeDecodeError, ValueError, TypeError, KeyError) as e:
        raise DecodeError(f"malformed object record: {e}") from e

    if not isinstance(oid, str) or not isinstance(size, int) or isinstance(size, bool):
        raise DecodeError(f"malformed object record: {data!r}")
    return MetaObject(oid=oid, size=size)
