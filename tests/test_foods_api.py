"""Tests for the /api/v1/foods endpoints."""
from __future__ import annotations

from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from tests.conftest import get_test_session
from wellbalance.db.tables import FoodRow


@pytest_asyncio.fixture
async def foods():
    async with get_test_session() as s:
        s.add_all([
            FoodRow(id="f-banana", name="Banana", macro_category="fruit", serving_qty=100,
                    calories_per_serving=89, protein_per_serving=1.1, carbs_per_serving=22.8, fat_per_serving=0.3),
            FoodRow(id="f-broccoli", name="Broccoli", macro_category="Vegetables", serving_qty=100,
                    calories_per_serving=34, protein_per_serving=2.8, carbs_per_serving=6.6, fat_per_serving=0.4),
            FoodRow(id="f-unknown", name="Bare entry", macro_category="protein"),
        ])
        await s.commit()


@pytest.mark.asyncio
async def test_list_foods(client, foods):
    resp = await client.get("/api/v1/foods")
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 2
    first = data["foods"][0]
    assert first["name"] == "Banana"
    assert first["category"] == "Fruits"
    assert first["caloriesPerServing"] == 89
    assert first["servingUnit"] == "g"


@pytest.mark.asyncio
async def test_list_foods_query(client, foods):
    resp = await client.get("/api/v1/foods?q=broc")
    assert [f["id"] for f in resp.json()["foods"]] == ["f-broccoli"]


@pytest.mark.asyncio
async def test_by_category(client, foods):
    resp = await client.get("/api/v1/foods/by-category")
    assert resp.status_code == 200
    cats = resp.json()["categories"]
    assert list(cats) == ["Protein", "Carbs", "Fat", "Vegetables", "Fruits"]
    assert cats["Fruits"][0]["id"] == "f-banana"
    assert cats["Protein"] == []


@pytest.mark.asyncio
async def test_portion(client, foods):
    resp = await client.get("/api/v1/foods/f-banana/portion?grams=120")
    assert resp.status_code == 200
    data = resp.json()
    assert data["caloriesTotal"] == 107  # 106.8
    assert data["carbsTotal"] == 27.4
    assert data["grams"] == 120


@pytest.mark.asyncio
async def test_portion_not_found(client):
    resp = await client.get("/api/v1/foods/nope/portion?grams=100")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Food not found"


@pytest.mark.asyncio
async def test_portion_incomplete_food(client, foods):
    resp = await client.get("/api/v1/foods/f-unknown/portion?grams=100")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_portion_requires_positive_grams(client, foods):
    resp = await client.get("/api/v1/foods/f-banana/portion?grams=0")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_custom_food_anonymous(client):
    resp = await client.post("/api/v1/foods/custom", json={"name": "Kefir", "macroCategory": "protein"})
    assert resp.status_code == 201
    food = resp.json()["food"]
    assert food["name"] == "Kefir"
    assert food["owner_id"] is None
    assert food["serving_qty"] == 100
    assert food["serving_unit"] == "g"
    assert food["is_public"] is True


@pytest.mark.asyncio
async def test_create_custom_food_signed_in(client, auth_headers):
    body = {
        "name": "Tofu", "macroCategory": "protein", "servingQty": 50, "servingUnit": "g",
        "caloriesPerServing": 38, "proteinPerServing": 4, "carbsPerServing": 1, "fatPerServing": 2.4,
    }
    resp = await client.post("/api/v1/foods/custom", json=body, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["food"]["owner_id"] == "user-alice"

    listed = await client.get("/api/v1/foods?q=tofu")
    assert listed.json()["count"] == 1


@pytest.mark.asyncio
async def test_create_custom_food_missing_fields(client):
    resp = await client.post("/api/v1/foods/custom", json={"servingQty": 100})
    assert resp.status_code == 400
    data = resp.json()
    assert data["error"] == "missing_fields"
    assert data["fields"] == ["name", "macroCategory"]


@pytest.mark.asyncio
async def test_create_custom_food_store_failure(client):
    failure = OperationalError("INSERT", {}, Exception("db down"))
    with patch("wellbalance.api.foods.create_custom_food", side_effect=failure):
        resp = await client.post("/api/v1/foods/custom", json={"name": "Kefir", "macroCategory": "protein"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to save product."
