"""Resource lifecycle — create, read, update, re-read, delete, read again, for every resource."""

from datetime import datetime, timedelta, timezone

import pytest

NEXT_WEEK = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()

# path, create body, update body, field changed by the update
RESOURCES = [
    ("/api/v1/books", {"title": "Memórias"}, {"author": "Ana"}, "author"),
    ("/api/v1/texts", {"title": "Diário", "content": "Primeira"}, {"content": "Segunda"}, "content"),
    ("/api/v1/photos", {"title": "Turnê"}, {"location": "Recife"}, "location"),
    (
        "/api/v1/shows",
        {"title": "Estreia", "date": NEXT_WEEK, "venue": "Teatro", "city": "Recife"},
        {"venue": "Arena"},
        "venue",
    ),
    (
        "/api/v1/clips",
        {"title": "Clipe", "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"},
        {"info": "Gravado ao vivo"},
        "info",
    ),
    ("/api/v1/lyrics", {"title": "Canção", "lyric": "la la"}, {"album": "Primeiro"}, "album"),
    ("/api/v1/cds", {"title": "Primeiro"}, {"company": "Selo Azul"}, "company"),
    (
        "/api/v1/dvds",
        {"title": "Ao Vivo", "videoUrl": "https://vimeo.com/123456"},
        {"info": "Show completo"},
        "info",
    ),
    (
        "/api/v1/messages",
        {
            "name": "Maria", "email": "maria@example.com", "city": "Recife",
            "state": "PE", "message": "Que show lindo!",
        },
        {"response": "Obrigado!"},
        "response",
    ),
    ("/api/v1/cd-tracks", {"name": "Abertura"}, {"composers": "Ana"}, "composers"),
    ("/api/v1/dvd-tracks", {"name": "Abertura"}, {"label": "Selo Azul"}, "label"),
]


@pytest.mark.parametrize(
    "path, body, changes, field", RESOURCES, ids=[r[0].rsplit("/", 1)[-1] for r in RESOURCES],
)
async def test_resource_lifecycle(client, admin_headers, path, body, changes, field):
    created = await client.post(path, json=body, headers=admin_headers)
    assert created.status_code == 201, created.text
    item_path = f"{path}/{created.json()['id']}"

    read = await client.get(item_path, headers=admin_headers)
    assert read.status_code == 200

    updated = await client.put(item_path, json=changes, headers=admin_headers)
    assert updated.status_code == 200, updated.text
    reread = await client.get(item_path, headers=admin_headers)
    assert reread.json()[field] == changes[field]

    deleted = await client.delete(item_path, headers=admin_headers)
    assert deleted.status_code == 200

    gone = await client.get(item_path, headers=admin_headers)
    assert gone.status_code == 404
    assert gone.json()["error"]["code"] == "RESOURCE_NOT_FOUND"
