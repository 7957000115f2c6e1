"""Upload and media library routes — multipart ingestion, dedupe status, library filters."""

from bson import ObjectId

PNG = b"\x89PNG route test bytes"


async def test_upload_then_duplicate(client, admin_headers, media_host):
    files = {"file": ("cover.png", PNG, "image/png")}
    first = await client.post("/api/v1/upload", files=files, data={"folder": "site"}, headers=admin_headers)
    second = await client.post("/api/v1/upload", files=files, headers=admin_headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert first.json()["url"].startswith("https://")
    assert media_host.uploads[0]["folder"] == "site"


async def test_upload_rejects_unsupported_type(client, admin_headers):
    res = await client.post(
        "/api/v1/upload", files={"file": ("doc.pdf", b"%PDF", "application/pdf")}, headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "UNSUPPORTED_FILE"


async def test_upload_requires_admin(client):
    res = await client.post("/api/v1/upload", files={"file": ("a.png", PNG, "image/png")})
    assert res.status_code == 401


async def test_delete_referenced_file_is_refused(client, admin_headers, make_upload):
    file_id = await make_upload(related=[{"ref": ObjectId(), "kind": "Text", "field": "cover"}])
    res = await client.delete(f"/api/v1/upload/{file_id}", headers=admin_headers)
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "FILE_IN_USE"
    assert error["details"]["related"][0]["kind"] == "Text"


async def test_delete_free_file(client, admin_headers, make_upload, media_host):
    file_id = await make_upload("free.png")
    res = await client.delete(f"/api/v1/upload/{file_id}", headers=admin_headers)
    assert res.status_code == 200
    assert media_host.destroyed == ["site/free.png"]


async def test_media_list_hides_deleted_unless_asked(client, admin_headers, make_upload):
    await make_upload("live.png")
    await make_upload("gone.png", deleted=True)

    default = await client.get("/api/v1/media", headers=admin_headers)
    everything = await client.get("/api/v1/media?include_deleted=true", headers=admin_headers)

    assert [f["name"] for f in default.json()["data"]] == ["live.png"]
    assert everything.json()["pagination"]["total"] == 2


async def test_media_list_type_and_size_filters(client, admin_headers, make_upload):
    await make_upload("pic.png")
    await make_upload("song.mp3", "audio/mpeg", size=4096.0)

    audio = await client.get("/api/v1/media?type=audio", headers=admin_headers)
    medium = await client.get("/api/v1/media?size=medium", headers=admin_headers)

    assert [f["name"] for f in audio.json()["data"]] == ["song.mp3"]
    assert [f["name"] for f in medium.json()["data"]] == ["song.mp3"]


async def test_media_usage(client, admin_headers):
    res = await client.get("/api/v1/media/usage", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["storage"]["usage"] == 2048
