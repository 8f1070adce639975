"""
GeoJSON rendering of processed records.
"""

import json
from typing import Any, Dict, Iterable

from .core import ProcessedRecord


def record_to_feature(record: ProcessedRecord) -> Dict[str, Any]:
    item = record.item
    return {
        "type": "Feature",
        "id": item.id,
        "geometry": {
            "type": "Point",
            "coordinates": [record.location.lon, record.location.lat],
        },
        "properties": {
            "id": item.id,
            "timestamp": record.timestamp.isoformat(),
            "file": item.full_path,
            "hash": item.digest,
            "tag": item.tag.value,
            "name": item.name,
        },
    }


def build_feature_collection(records: Iterable[ProcessedRecord]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [record_to_feature(r) for r in records],
    }


def serialize_feature_collection(collection: Dict[str, Any]) -> bytes:
    return json.dumps(collection, ensure_ascii=False, separators=(",", ":"), allow_nan=False).encode("utf-8")
