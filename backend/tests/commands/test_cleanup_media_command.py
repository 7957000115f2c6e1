"""cleanup_media command — purge listing lines."""

from datetime import datetime, timedelta, timezone

from bson import ObjectId

from backstage.commands.cleanup_media import describe

NOW = datetime(2024, 6, 30, tzinfo=timezone.utc)


def test_describe_shows_age_size_and_reason():
    file_id = ObjectId()
    line = describe({
        "_id": file_id, "name": "capa.png", "size": 2048.0,
        "deletedAt": NOW - timedelta(days=9), "deletionReason": "cd_deleted",
    }, NOW)
    assert str(file_id) in line
    assert "capa.png" in line
    assert "2048.0 KB" in line
    assert "9d" in line
    assert line.endswith("cd_deleted")


def test_describe_tolerates_missing_fields():
    line = describe({"_id": ObjectId(), "name": None}, NOW)
    assert "?" in line
    assert line.endswith("unknown")
