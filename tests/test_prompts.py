"""
Prompt library, public gallery, likes and share links.
"""
from urllib.parse import quote

import pytest

from services.prompt_service import build_share_links, encode_uri_component, escape_like

pytestmark = pytest.mark.library


@pytest.fixture
def seed_prompt(fake_db, user_id):
    def _seed(prompt: str, owner=None, **fields):
        return fake_db.seed("prompt_library", user_id=owner or user_id, prompt=prompt, **fields)
    return _seed


def test_save_prompt_trims_and_defaults(client, auth_headers, user_id):
    response = client.post("/api/v1/prompts", json={
        "prompt": "  neon city in the rain  ",
        "description": "  ",
        "style": "digital-art",
        "is_public": True,
    }, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["prompt"] == "neon city in the rain"
    assert body["description"] is None
    assert body["likes_count"] == 0
    assert body["is_public"] is True
    assert body["user_id"] == user_id


def test_blank_prompt_is_400(client, auth_headers):
    response = client.post("/api/v1/prompts", json={"prompt": "   "}, headers=auth_headers)
    assert response.status_code == 400


def test_my_prompts_newest_first(client, auth_headers, other_user_id, seed_prompt):
    seed_prompt("first")
    seed_prompt("second")
    seed_prompt("not mine", owner=other_user_id)

    response = client.get("/api/v1/prompts/mine", headers=auth_headers)
    assert [p["prompt"] for p in response.json()] == ["second", "first"]


def test_public_gallery_sorting(client, other_user_id, seed_prompt):
    seed_prompt("popular", owner=other_user_id, is_public=True, likes_count=10)
    seed_prompt("fresh", owner=other_user_id, is_public=True, likes_count=1)
    seed_prompt("hidden", owner=other_user_id, is_public=False, likes_count=99)

    by_likes = client.get("/api/v1/prompts/public")
    by_recent = client.get("/api/v1/prompts/public?sort=recent")

    assert [p["prompt"] for p in by_likes.json()] == ["popular", "fresh"]
    assert [p["prompt"] for p in by_recent.json()] == ["fresh", "popular"]


def test_public_gallery_search_is_case_insensitive(client, seed_prompt):
    seed_prompt("A Dragon over the sea", is_public=True)
    seed_prompt("a quiet forest", is_public=True)

    response = client.get("/api/v1/prompts/public?search=dragon")
    assert [p["prompt"] for p in response.json()] == ["A Dragon over the sea"]


@pytest.mark.parametrize("search, expected", [
    ("snake_case", ["snake_case robot"]),
    ("100%", ["100% organic pixels"]),
])
def test_public_gallery_search_matches_wildcards_literally(client, seed_prompt, search, expected):
    seed_prompt("snake_case robot", is_public=True)
    seed_prompt("snakeXcase robot", is_public=True)
    seed_prompt("100% organic pixels", is_public=True)
    seed_prompt("1000 organic pixels", is_public=True)

    response = client.get("/api/v1/prompts/public", params={"search": search})
    assert [p["prompt"] for p in response.json()] == expected


@pytest.mark.unit
def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_public_gallery_limit(client, seed_prompt):
    for index in range(3):
        seed_prompt(f"prompt {index}", is_public=True)

    assert len(client.get("/api/v1/prompts/public?limit=2").json()) == 2
    assert client.get("/api/v1/prompts/public?limit=101").status_code == 400
    assert client.get("/api/v1/prompts/public?sort=oldest").status_code == 400


def test_delete_only_own_prompt(client, fake_db, auth_headers, other_user_id, seed_prompt):
    mine = seed_prompt("mine")
    theirs = seed_prompt("theirs", owner=other_user_id)

    assert client.delete(f"/api/v1/prompts/{theirs['id']}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/v1/prompts/{mine['id']}", headers=auth_headers).status_code == 204
    assert [p["prompt"] for p in fake_db.tables["prompt_library"]] == ["theirs"]


def test_like_public_prompt_increments(client, auth_headers, other_user_id, seed_prompt):
    prompt = seed_prompt("likeable", owner=other_user_id, is_public=True, likes_count=2)

    response = client.post(f"/api/v1/prompts/{prompt['id']}/like", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["likes_count"] == 3


def test_like_private_prompt_is_404(client, auth_headers, other_user_id, seed_prompt):
    prompt = seed_prompt("secret", owner=other_user_id, is_public=False)
    response = client.post(f"/api/v1/prompts/{prompt['id']}/like", headers=auth_headers)
    assert response.status_code == 404


def test_share_links(client, seed_prompt):
    text = "a" * 120
    prompt = seed_prompt(text, is_public=True)

    response = client.get(f"/api/v1/prompts/{prompt['id']}/share")

    body = response.json()
    share_url = f"https://studio.example.com/gallery?prompt={prompt['id']}"
    share_text = f'Check out this AI art prompt: "{"a" * 100}..."'
    assert body["share_url"] == share_url
    assert body["share_text"] == share_text
    assert body["intents"]["twitter"] == (
        f"https://twitter.com/intent/tweet?text={encode_uri_component(share_text)}"
        f"&url={encode_uri_component(share_url)}"
    )
    assert body["intents"]["facebook"].endswith(quote(share_url, safe=""))
    assert "description=" in body["intents"]["pinterest"]


def test_private_prompt_shareable_only_by_owner(client, auth_headers, other_auth_headers, seed_prompt):
    prompt = seed_prompt("private idea", is_public=False)
    url = f"/api/v1/prompts/{prompt['id']}/share"

    assert client.get(url, headers=auth_headers).status_code == 200
    assert client.get(url, headers=other_auth_headers).status_code == 404
    assert client.get(url).status_code == 404


@pytest.mark.unit
def test_encode_uri_component_matches_browser():
    assert encode_uri_component('say "hi" & bye!') == "say%20%22hi%22%20%26%20bye!"
    assert encode_uri_component("a/b?c=d") == "a%2Fb%3Fc%3Dd"


@pytest.mark.unit
def test_build_share_links_uses_base_url():
    links = build_share_links("123e4567-e89b-12d3-a456-426614174000", "short", base_url="https://x.test/")
    assert links.share_url == "https://x.test/gallery?prompt=123e4567-e89b-12d3-a456-426614174000"
