"""Publication Status — draft/published rules for status-aware and legacy documents.

Tests:
    - Date fields are mirrored and status derived from them
    - Publishing without a date stamps `now`; drafting keeps the date
    - Toggle payloads for status-aware and plain documents
    - List status filters
"""

from datetime import datetime, timezone

import pytest

from backstage.core.publication import (
    ListStatus, PublishStatus, is_published, status_filter, sync_status_fields,
    toggle_publication,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
EARLIER = datetime(2023, 1, 1, tzinfo=timezone.utc)


def test_sync_defaults_to_draft_without_dates():
    result = sync_status_fields({"title": "x"}, NOW)
    assert result["status"] == "draft"
    assert result["published_at"] is None
    assert result["publishedAt"] is None


def test_sync_mirrors_legacy_date_and_derives_published():
    result = sync_status_fields({"published_at": EARLIER}, NOW)
    assert result["status"] == "published"
    assert result["publishedAt"] == EARLIER


def test_sync_published_without_date_is_stamped_now():
    result = sync_status_fields({"status": PublishStatus.PUBLISHED}, NOW)
    assert result["status"] == "published"
    assert result["published_at"] == NOW
    assert result["publishedAt"] == NOW


def test_sync_draft_keeps_date_history():
    result = sync_status_fields({"status": "draft", "published_at": EARLIER}, NOW)
    assert result["status"] == "draft"
    assert result["published_at"] == EARLIER


def test_sync_change_to_one_date_field_wins_over_stored_mirror():
    stored = {"status": "published", "published_at": EARLIER, "publishedAt": EARLIER}
    result = sync_status_fields(stored, NOW, {"published_at": NOW})
    assert result["publishedAt"] == NOW
    assert result["published_at"] == NOW


def test_is_published_checks_either_field():
    assert is_published({"publishedAt": EARLIER})
    assert is_published({"published_at": EARLIER})
    assert not is_published({"status": "published"})


def test_toggle_plain_document():
    assert toggle_publication({"published_at": None}, NOW) == {"published_at": NOW}
    assert toggle_publication({"published_at": EARLIER}, NOW) == {"published_at": None}


def test_toggle_status_aware_document():
    payload = toggle_publication({"publishedAt": EARLIER}, NOW, status_aware=True)
    assert payload == {"published_at": None, "publishedAt": None, "status": "draft"}

    payload = toggle_publication({}, NOW, status_aware=True)
    assert payload == {"published_at": NOW, "publishedAt": NOW, "status": "published"}


@pytest.mark.parametrize("status, expected", [
    (ListStatus.ALL, None),
    ("draft", {"published_at": None}),
    ("published", {"published_at": {"$ne": None}}),
])
def test_status_filter(status, expected):
    assert status_filter(status) == expected


def test_status_filter_custom_field():
    assert status_filter("draft", "publishedAt") == {"publishedAt": None}
