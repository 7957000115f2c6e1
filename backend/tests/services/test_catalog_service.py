"""Catalog service — create/update/delete with slugs, publication state and file references.

Invariants:
    - Slugs are unique per collection and follow title changes
    - Status-aware resources keep status/publishedAt/published_at consistent
    - Every referenced upload is attached on create and released on delete
    - Changing a gallery's images clears the legacy url/image fields
"""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from backstage.core.domain_types import Collection
from backstage.core.errors import InvalidIdentifierError
from backstage.services import catalog
from backstage.services.catalog import BOOKS, CDS, CLIPS, LYRICS, MESSAGES, PHOTOS, TEXTS

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


async def test_create_assigns_unique_slugs(db):
    first = await catalog.create_document(db, BOOKS, {"title": "Canções"}, None)
    second = await catalog.create_document(db, BOOKS, {"title": "Canções"}, None)
    assert first["slug"] == "cancoes"
    assert second["slug"] == "cancoes-1"


async def test_create_stamps_audit_fields(db):
    admin_id = ObjectId()
    doc = await catalog.create_document(db, TEXTS, {"title": "Crônica", "content": "..."}, admin_id, NOW)
    assert doc["created_by"] == admin_id
    assert doc["updated_by"] == admin_id
    assert doc["createdAt"] == NOW


async def test_create_attaches_cover(db, make_upload, get_upload):
    cover = await make_upload()
    doc = await catalog.create_document(db, BOOKS, {"title": "Livro", "cover": cover}, None)

    assert doc["cover"] == ObjectId(cover)
    upload = await get_upload(cover)
    assert upload["related"] == [{"ref": doc["_id"], "kind": "Book", "field": "cover"}]


async def test_create_rejects_invalid_file_id(db):
    with pytest.raises(InvalidIdentifierError):
        await catalog.create_document(db, BOOKS, {"title": "Livro", "cover": "nope"}, None)


async def test_create_status_aware_publishes_with_now(db):
    doc = await catalog.create_document(db, CDS, {"title": "Disco", "status": "published"}, None, NOW)
    assert doc["status"] == "published"
    assert doc["publishedAt"] == NOW
    assert doc["published_at"] == NOW


async def test_create_message_without_slug(db):
    doc = await catalog.create_document(db, MESSAGES, {"name": "Fã", "message": "Oi"}, None)
    assert "slug" not in doc
    assert doc["status"] == "draft"


async def test_update_reslugs_on_title_change(db):
    doc = await catalog.create_document(db, BOOKS, {"title": "Primeiro"}, None)
    await catalog.create_document(db, BOOKS, {"title": "Segundo"}, None)

    updated = await catalog.update_document(db, BOOKS, doc, {"title": "Segundo"}, None)
    assert updated["slug"] == "segundo-1"

    same = await catalog.update_document(db, BOOKS, updated, {"title": "Segundo", "info": "x"}, None)
    assert same["slug"] == "segundo-1"


async def test_update_replaces_cover(db, make_upload, get_upload):
    old, new = await make_upload("old.png"), await make_upload("new.png")
    doc = await catalog.create_document(db, TEXTS, {"title": "T", "content": "c", "cover": old}, None)

    updated = await catalog.update_document(db, TEXTS, doc, {"cover": new}, None)

    assert updated["cover"] == ObjectId(new)
    assert (await get_upload(old))["deletionReason"] == "cover_replaced"
    assert (await get_upload(new))["related"][0]["ref"] == doc["_id"]


async def test_update_null_cover_detaches(db, make_upload, get_upload):
    cover = await make_upload()
    doc = await catalog.create_document(db, TEXTS, {"title": "T", "content": "c", "cover": cover}, None)

    updated = await catalog.update_document(db, TEXTS, doc, {"cover": None}, None)

    assert updated["cover"] is None
    assert (await get_upload(cover))["deleted"] is True


async def test_update_list_field_diffs_references(db, make_upload, get_upload):
    a, b, c = await make_upload("a.png"), await make_upload("b.png"), await make_upload("c.png")
    doc = await catalog.create_document(db, CLIPS, {"title": "Clip", "cover": [a, b]}, None)

    await catalog.update_document(db, CLIPS, doc, {"cover": [b, c]}, None)

    assert (await get_upload(a))["deleted"] is True
    assert (await get_upload(b))["deleted"] is False
    assert [r["field"] for r in (await get_upload(c))["related"]] == ["cover"]


async def test_update_status_fields_are_merged(db):
    doc = await catalog.create_document(db, CDS, {"title": "Disco"}, None, NOW)
    updated = await catalog.update_document(db, CDS, doc, {"status": "published"}, None, NOW)
    assert updated["status"] == "published"
    assert updated["publishedAt"] == NOW
    assert updated["published_at"] == NOW


async def test_update_gallery_images_clears_legacy_fields(db, make_upload, get_upload):
    legacy, fresh = await make_upload("legacy.jpg"), await make_upload("fresh.jpg")
    result = await db[Collection.PHOTOS.value].insert_one(
        {"title": "Antiga", "url": [ObjectId(legacy)], "image": ObjectId(legacy)},
    )
    doc = await db[Collection.PHOTOS.value].find_one({"_id": result.inserted_id})
    await db[Collection.UPLOAD_FILES.value].update_one(
        {"_id": ObjectId(legacy)},
        {"$set": {"related": [{"ref": doc["_id"], "kind": "Photo", "field": "url"}]}},
    )

    updated = await catalog.update_document(db, PHOTOS, doc, {"images": [fresh]}, None)

    assert updated["url"] is None
    assert updated["image"] is None
    assert updated["images"] == [ObjectId(fresh)]
    assert (await get_upload(legacy))["deleted"] is True


async def test_delete_releases_files_with_owner_label(db, make_upload, get_upload):
    cover = await make_upload()
    doc = await catalog.create_document(db, CDS, {"title": "Disco", "cover": cover}, None)

    await catalog.delete_document(db, CDS, doc)

    upload = await get_upload(cover)
    assert upload["deletionReason"] == "cd_deleted"
    assert upload["relatedTo"] == f"Cd:{doc['_id']}"
    assert await db[Collection.CDS.value].find_one({"_id": doc["_id"]}) is None


async def test_toggle_publish_plain_and_status_aware(db):
    book = await catalog.create_document(db, BOOKS, {"title": "Livro"}, None)
    toggled = await catalog.toggle_publish(db, BOOKS, book, None, NOW)
    assert toggled["published_at"] == NOW
    assert "status" not in toggled

    cd = await catalog.create_document(db, CDS, {"title": "Disco", "status": "published"}, None, NOW)
    toggled = await catalog.toggle_publish(db, CDS, cd, None, NOW)
    assert toggled["status"] == "draft"
    assert toggled["publishedAt"] is None


async def test_format_document_populates_cover_and_flag(db, make_upload):
    cover = await make_upload()
    doc = await catalog.create_document(
        db, BOOKS, {"title": "Livro", "cover": cover, "published_at": NOW}, None,
    )

    result = await catalog.format_one(db, BOOKS, doc)

    assert result["id"] == str(doc["_id"])
    assert result["cover"]["url"].startswith("https://")
    assert result["published"] is True


async def test_format_document_uses_lyric_formatter(db):
    doc = await catalog.create_document(db, LYRICS, {"title": "Letra", "composers": "Ana"}, None)
    result = await catalog.format_one(db, LYRICS, doc)
    assert result["composer"] == "Ana"
    assert result["published"] is False


async def test_list_documents_paginates(db):
    for n in range(3):
        await catalog.create_document(db, BOOKS, {"title": f"Livro {n}"}, None)

    page = await catalog.list_documents(db, BOOKS, {}, [("title", 1)], 2, 2)

    assert [item["title"] for item in page["data"]] == ["Livro 2"]
    assert page["pagination"] == {"page": 2, "page_size": 2, "total": 3, "total_pages": 2}


def test_referenced_file_ids_include_legacy_fields():
    a, b = str(ObjectId()), str(ObjectId())
    refs = catalog.referenced_file_ids(PHOTOS, {"images": [a], "url": [a, b], "image": b})
    assert refs == [("images", a), ("url", a), ("url", b), ("image", b)]
