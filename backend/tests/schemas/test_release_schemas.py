"""Release payload validation — CDs, DVDs and embedded tracks."""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from backstage.schemas.releases import (
    CdCreate, CdTrackInput, CdUpdate, DvdCreate, DvdUpdate, TrackOrder, check_video_url,
)


def test_track_id_accepts_underscore_alias_and_dumps_it():
    track_id = str(ObjectId())
    track = CdTrackInput.model_validate({"_id": track_id, "name": "Intro"})
    assert track.id == track_id
    assert track.model_dump(exclude_unset=True, by_alias=True) == {"_id": track_id, "name": "Intro"}


def test_track_requires_name_and_valid_ids():
    with pytest.raises(ValidationError):
        CdTrackInput.model_validate({"composers": "Ana"})
    with pytest.raises(ValidationError):
        CdTrackInput.model_validate({"name": "Intro", "lyric": "nope"})


def test_cd_update_leaves_unset_fields_out():
    body = CdUpdate.model_validate({"title": "Novo"})
    assert body.model_dump(exclude_unset=True, by_alias=True) == {"title": "Novo"}


def test_cd_create_nested_tracks():
    body = CdCreate.model_validate({"title": "Disco", "tracks": [{"name": "A"}, {"name": "B"}]})
    assert [t["name"] for t in body.model_dump(exclude_unset=True, by_alias=True)["tracks"]] == ["A", "B"]


@pytest.mark.parametrize("url", [
    "https://vimeo.com/123456",
    "https://player.vimeo.com/video/987",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ",
])
def test_check_video_url_accepts(url):
    assert check_video_url(url) == url


def test_check_video_url_rejects_plain_watch_link():
    with pytest.raises(ValueError):
        check_video_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ")


def test_dvd_accepts_snake_case_video_url():
    body = DvdCreate.model_validate({"title": "Ao Vivo", "video_url": "https://vimeo.com/1"})
    assert body.videoUrl == "https://vimeo.com/1"


def test_dvd_update_rejects_bad_video_url():
    with pytest.raises(ValidationError):
        DvdUpdate.model_validate({"videoUrl": "https://example.com/video"})


def test_track_order_requires_object_ids():
    with pytest.raises(ValidationError):
        TrackOrder(order=["1"])
