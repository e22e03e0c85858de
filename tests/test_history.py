"""
History listing, ownership checks and downloads.
"""
import base64

import pytest

from services.history_service import content_disposition, download_filename

pytestmark = pytest.mark.library

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_history_is_newest_first_with_favorite_flags(client, fake_db, auth_headers, user_id, other_user_id,
                                                     seed_generation):
    first = seed_generation("first")
    second = seed_generation("second")
    seed_generation("someone else's", owner=other_user_id)
    fake_db.seed("favorites", user_id=user_id, generation_id=first["id"])

    response = client.get("/api/v1/history", headers=auth_headers)

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items] == [second["id"], first["id"]]
    assert [item["is_favorite"] for item in items] == [False, True]


def test_history_pagination(client, auth_headers, seed_generation):
    for index in range(5):
        seed_generation(f"prompt {index}")

    response = client.get("/api/v1/history?limit=2&offset=2", headers=auth_headers)

    body = response.json()
    assert body["limit"] == 2
    assert body["offset"] == 2
    assert [item["prompt"] for item in body["items"]] == ["prompt 2", "prompt 1"]


def test_history_limit_is_bounded(client, auth_headers):
    assert client.get("/api/v1/history?limit=0", headers=auth_headers).status_code == 400
    assert client.get("/api/v1/history?limit=101", headers=auth_headers).status_code == 400


def test_get_foreign_generation_is_404(client, auth_headers, other_user_id, seed_generation):
    foreign = seed_generation(owner=other_user_id)
    response = client.get(f"/api/v1/history/{foreign['id']}", headers=auth_headers)
    assert response.status_code == 404


def test_delete_own_generation(client, fake_db, auth_headers, seed_generation):
    generation = seed_generation()

    response = client.delete(f"/api/v1/history/{generation['id']}", headers=auth_headers)

    assert response.status_code == 204
    assert fake_db.tables["generation_history"] == []
    assert client.delete(f"/api/v1/history/{generation['id']}", headers=auth_headers).status_code == 404


def test_delete_foreign_generation_is_404(client, fake_db, auth_headers, other_user_id, seed_generation):
    foreign = seed_generation(owner=other_user_id)
    response = client.delete(f"/api/v1/history/{foreign['id']}", headers=auth_headers)

    assert response.status_code == 404
    assert len(fake_db.tables["generation_history"]) == 1


def test_malformed_generation_id_is_400(client, auth_headers):
    assert client.get("/api/v1/history/not-a-uuid", headers=auth_headers).status_code == 400


def test_download_data_url_as_attachment(client, auth_headers, seed_generation):
    data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    prompt = "A very long prompt describing a misty harbour at dawn"
    generation = seed_generation(prompt, image_data=data_url)

    response = client.get(f"/api/v1/history/{generation['id']}/download", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == PNG_BYTES
    assert response.headers["content-type"] == "image/png"
    assert f'filename="{prompt[:30]}.png"' in response.headers["content-disposition"]
    assert response.headers["content-disposition"].startswith("attachment;")


@pytest.mark.unit
def test_download_filename_uses_first_30_characters():
    assert download_filename("short") == "short.png"
    assert download_filename("x" * 50) == "x" * 30 + ".png"


@pytest.mark.unit
def test_content_disposition_escapes_quotes_and_non_ascii():
    header = content_disposition('café "noir".png')
    assert 'filename="caf_ _noir_.png"' in header
    assert "filename*=UTF-8''caf%C3%A9%20%22noir%22.png" in header
