"""
Generation workflow: prompt composition, charging, refunds and variations.
"""
import asyncio

import pytest

from models.fal_config import STYLE_PROMPTS, compose_prompt, get_generation_options
from models.generation import GenerationCreate
from repositories.credit_repository import CreditRepository
from repositories.generation_repository import GenerationRepository
from services.credit_service import CreditService
from services.generation_service import GenerationService, build_variation_prompt, creativity_label
from services.storage_service import StorageService
from utils.exceptions import DatabaseError, ExternalServiceError

pytestmark = pytest.mark.generation


@pytest.mark.unit
def test_compose_prompt_appends_style_then_aspect_ratio():
    final = compose_prompt("a red fox", "anime", "16:9")
    assert final == f"a red fox, {STYLE_PROMPTS['anime']}, aspect ratio 16:9"


@pytest.mark.unit
@pytest.mark.parametrize("creativity, label", [(0, "subtle"), (32, "subtle"), (33, "moderate"),
                                               (65, "moderate"), (66, "creative"), (100, "creative")])
def test_creativity_label_boundaries(creativity, label):
    assert creativity_label(creativity) == label


@pytest.mark.unit
def test_variation_prompt_wording():
    assert build_variation_prompt("a red fox", 10) == "a red fox, subtle variation, alternative version"


def test_text_to_image_charges_per_image_and_stores_rows(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 30)

    response = client.post("/api/v1/generations", json={
        "prompt": "  a castle in the clouds  ",
        "aspect_ratio": "4:3",
        "style": "watercolor",
        "num_images": 2,
    }, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["credits_used"] == 10
    assert body["credits_remaining"] == 20
    assert len(body["generations"]) == 2
    assert {g["generation_type"] for g in body["generations"]} == {"text-to-image"}
    assert {g["prompt"] for g in body["generations"]} == {"a castle in the clouds"}

    kind, prompt, _, num_images = fake_fal.calls[0]
    assert kind == "generate"
    assert num_images == 2
    assert prompt == compose_prompt("a castle in the clouds", "watercolor", "4:3")

    rows = fake_db.tables["generation_history"]
    assert len(rows) == 2
    assert rows[0]["settings"]["style"] == "watercolor"
    assert fake_db.credits_of(user_id) == 20


def test_reference_image_uses_edit_endpoint(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 5)

    response = client.post("/api/v1/generations", json={
        "prompt": "make it snowy",
        "reference_image_url": "https://example.com/source.png",
    }, headers=auth_headers)

    assert response.status_code == 201
    generation = response.json()["generations"][0]
    assert generation["generation_type"] == "image-to-image"
    assert generation["settings"]["reference_image_url"] == "https://example.com/source.png"
    assert fake_fal.calls[0][0] == "edit"
    assert fake_fal.calls[0][2] == ["https://example.com/source.png"]


def test_insufficient_credits_never_calls_provider(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 4)

    response = client.post("/api/v1/generations", json={"prompt": "a tree"}, headers=auth_headers)

    assert response.status_code == 402
    assert fake_fal.calls == []
    assert fake_db.credits_of(user_id) == 4


def test_provider_failure_refunds_full_cost(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 50)
    fake_fal.error = ExternalServiceError("FAL request failed", service_name="fal")

    response = client.post("/api/v1/generations", json={"prompt": "a tree", "num_images": 3},
                           headers=auth_headers)

    assert response.status_code == 502
    assert fake_db.credits_of(user_id) == 50
    assert fake_db.tables["generation_history"] == []


def test_history_insert_failure_refunds_unstored_images(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 20)
    fake_db.failing_tables.add("generation_history")

    response = client.post("/api/v1/generations", json={"prompt": "a cat", "num_images": 2},
                           headers=auth_headers)

    assert response.status_code == 503
    assert len(fake_fal.calls) == 1
    assert fake_db.credits_of(user_id) == 20


class SecondInsertFails(GenerationRepository):
    def __init__(self, db_client):
        super().__init__(db_client)
        self.inserts = 0

    async def create_generation(self, generation_data):
        self.inserts += 1
        if self.inserts == 2:
            raise DatabaseError("insert failed", operation="insert", table="generation_history")
        return await super().create_generation(generation_data)


def test_only_unstored_images_are_refunded(fake_db, fake_fal, user_id):
    fake_db.set_credits(user_id, 20)
    service = GenerationService(
        SecondInsertFails(fake_db),
        CreditService(CreditRepository(fake_db)),
        StorageService(fake_db),
        fal=fake_fal
    )

    with pytest.raises(DatabaseError):
        asyncio.run(service.create_generation(user_id, GenerationCreate(prompt="a cat", num_images=3)))

    # One image stored and paid for, two refunded
    assert len(fake_db.tables["generation_history"]) == 1
    assert fake_db.credits_of(user_id) == 15


def test_missing_images_are_refunded(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 20)
    fake_fal.images_returned = 1

    response = client.post("/api/v1/generations", json={"prompt": "a tree", "num_images": 3},
                           headers=auth_headers)

    body = response.json()
    assert response.status_code == 201
    assert len(body["generations"]) == 1
    assert body["credits_used"] == 5
    assert body["credits_remaining"] == 15
    assert fake_db.credits_of(user_id) == 15


@pytest.mark.parametrize("payload", [
    {"prompt": "   "},
    {"prompt": "a tree", "aspect_ratio": "3:2"},
    {"prompt": "a tree", "style": "pixel-art"},
    {"prompt": "a tree", "num_images": 5},
    {"prompt": "a tree", "reference_image_url": "ftp://example.com/a.png"},
])
def test_invalid_requests_are_400(client, fake_db, fake_fal, auth_headers, user_id, payload):
    fake_db.set_credits(user_id, 100)
    response = client.post("/api/v1/generations", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert fake_fal.calls == []
    assert fake_db.credits_of(user_id) == 100


def test_blank_prompt_message(client, auth_headers):
    response = client.post("/api/v1/generations", json={"prompt": ""}, headers=auth_headers)
    assert response.json()["detail"] == "prompt: Prompt cannot be empty"


def test_variations_from_stored_generation(client, fake_db, fake_fal, auth_headers, user_id, seed_generation):
    fake_db.set_credits(user_id, 100)
    source = seed_generation("a koi pond")

    response = client.post("/api/v1/generations/variations", json={
        "generation_id": source["id"],
        "count": 3,
        "creativity": 80,
    }, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["credits_used"] == 15
    assert body["credits_remaining"] == 85
    assert len(body["generations"]) == 3
    for generation in body["generations"]:
        assert generation["prompt"] == "Variation: a koi pond"
        assert generation["generation_type"] == "variation"
        assert generation["settings"] == {"creativity": 80, "originalPrompt": "a koi pond"}

    assert [call[0] for call in fake_fal.calls] == ["edit", "edit", "edit"]
    assert fake_fal.calls[0][1] == "a koi pond, creative variation, alternative version"
    assert fake_fal.calls[0][2] == [source["image_data"]]
    # Each variation is its own charge
    assert len([c for c in fake_db.rpc_calls if c[0] == "deduct_credits"]) == 3


def test_variation_of_variation_does_not_stack_prefix(client, fake_db, fake_fal, auth_headers, user_id,
                                                      seed_generation):
    fake_db.set_credits(user_id, 100)
    source = seed_generation("Variation: a koi pond", generation_type="variation")

    response = client.post("/api/v1/generations/variations", json={"generation_id": source["id"], "count": 2},
                           headers=auth_headers)

    assert {g["prompt"] for g in response.json()["generations"]} == {"Variation: a koi pond"}


def test_variations_from_image_url_and_prompt(client, fake_db, fake_fal, auth_headers, user_id):
    fake_db.set_credits(user_id, 10)

    response = client.post("/api/v1/generations/variations", json={
        "image_url": "https://example.com/cat.png",
        "prompt": "a cat",
        "count": 2,
        "creativity": 0,
    }, headers=auth_headers)

    assert response.status_code == 201
    assert fake_fal.calls[0][1] == "a cat, subtle variation, alternative version"
    assert fake_db.credits_of(user_id) == 0


def test_failed_variation_is_refunded_and_earlier_ones_returned(client, fake_db, fake_fal, auth_headers, user_id,
                                                                seed_generation):
    fake_db.set_credits(user_id, 100)
    source = seed_generation("a koi pond")
    fake_fal.fail_after = 1

    response = client.post("/api/v1/generations/variations", json={"generation_id": source["id"], "count": 4},
                           headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert len(fake_fal.calls) == 2
    # First variation kept and paid for, second refunded, batch stopped
    assert len(body["generations"]) == 1
    assert body["credits_used"] == 5
    assert body["credits_remaining"] == 95
    assert body["error"]
    assert fake_db.credits_of(user_id) == 95
    variations = [r for r in fake_db.tables["generation_history"] if r["generation_type"] == "variation"]
    assert len(variations) == 1


def test_first_variation_failure_is_raised_and_refunded(client, fake_db, fake_fal, auth_headers, user_id,
                                                        seed_generation):
    fake_db.set_credits(user_id, 100)
    source = seed_generation("a koi pond")
    fake_fal.error = ExternalServiceError("FAL request failed", service_name="fal")

    response = client.post("/api/v1/generations/variations", json={"generation_id": source["id"], "count": 3},
                           headers=auth_headers)

    assert response.status_code == 502
    assert len(fake_fal.calls) == 1
    assert fake_db.credits_of(user_id) == 100


def test_variations_of_foreign_generation_are_404(client, fake_db, auth_headers, user_id, other_user_id,
                                                  seed_generation):
    fake_db.set_credits(user_id, 100)
    source = seed_generation("not yours", owner=other_user_id)

    response = client.post("/api/v1/generations/variations", json={"generation_id": source["id"]},
                           headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.parametrize("payload", [
    {"image_url": "https://example.com/cat.png"},
    {"generation_id": "00000000-0000-0000-0000-000000000000", "count": 1},
    {"generation_id": "00000000-0000-0000-0000-000000000000", "count": 5},
    {"generation_id": "00000000-0000-0000-0000-000000000000", "creativity": 101},
])
def test_invalid_variation_requests_are_400(client, auth_headers, payload):
    response = client.post("/api/v1/generations/variations", json=payload, headers=auth_headers)
    assert response.status_code == 400


def test_generation_options_are_public(client):
    response = client.get("/api/v1/generations/models")

    assert response.status_code == 200
    body = response.json()
    assert body == get_generation_options()
    assert body["credits_per_image"] == 5
    assert set(body["styles"]) == {"photorealistic", "digital-art", "anime", "oil-painting", "watercolor"}
    assert [r["value"] for r in body["aspect_ratios"]] == ["1:1", "16:9", "9:16", "4:3"]
