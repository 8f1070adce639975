"""
Tests for the GeoJSON rendering of processed records.
"""

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from treesync.ingestion.core import GeoLocation, ImageFormat, ProcessedRecord, SourceItem, Tag
from treesync.ingestion.geojson import (
    build_feature_collection,
    record_to_feature,
    serialize_feature_collection,
)


def make_record(item_id="1AbC", tag=Tag.UNMARKED, name="oak.heic"):
    item = SourceItem(
        id=item_id,
        name=name,
        tag=tag,
        full_path=f"{tag.value}/grove/{name}",
        digest="d41d8cd98f00b204e9800998ecf8427e",
        format=ImageFormat.HEIF,
    )
    return ProcessedRecord(
        item=item,
        location=GeoLocation(lat=33.716812, lon=-117.759817),
        timestamp=datetime(2025, 1, 18, 12, 14, tzinfo=timezone(timedelta(hours=-8))),
    )


def test_feature_puts_longitude_first():
    feature = record_to_feature(make_record())
    assert feature["geometry"] == {"type": "Point", "coordinates": [-117.759817, 33.716812]}


def test_feature_properties():
    feature = record_to_feature(make_record())
    assert feature["type"] == "Feature"
    assert feature["id"] == "1AbC"
    assert feature["properties"] == {
        "id": "1AbC",
        "timestamp": "2025-01-18T12:14:00-08:00",
        "file": "unmarked/grove/oak.heic",
        "hash": "d41d8cd98f00b204e9800998ecf8427e",
        "tag": "unmarked",
        "name": "oak.heic",
    }


def test_collection_serializes_to_json():
    records = [make_record("a"), make_record("b", tag=Tag.MARKED)]

    payload = serialize_feature_collection(build_feature_collection(records))
    document = json.loads(payload)

    assert document["type"] == "FeatureCollection"
    assert [f["id"] for f in document["features"]] == ["a", "b"]
    assert document["features"][1]["properties"]["tag"] == "marked"


def test_non_ascii_names_survive():
    payload = serialize_feature_collection(build_feature_collection([make_record(name="árbol.jpg")]))
    assert json.loads(payload.decode("utf-8"))["features"][0]["properties"]["name"] == "árbol.jpg"


def test_non_finite_coordinates_are_refused():
    record = replace(make_record(), location=GeoLocation(lat=float("nan"), lon=-117.759817))
    with pytest.raises(ValueError):
        serialize_feature_collection(build_feature_collection([record]))
