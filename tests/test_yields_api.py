from sqlmodel import select

from agritrack.models import Farm, Notification, YieldArchive


def submit(client, **overrides):
    payload = {
        "farmer_id": 1,
        "product_id": 1,
        "farm_id": 1,
        "harvest_date": "2025-03-01",
        "volume": 100,
        "area_harvested": 2.5,
        "notes": "morning harvest",
        "value": 2500,
        "images": ["https://img.example/corn.jpg"],
    }
    payload.update(overrides)
    return client.post("/api/yields", json=payload)


def test_create_returns_joined_record(client):
    response = submit(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    record = body["yield"]
    assert record["status"] == "Accepted"
    assert record["farmer_name"] == "Juan Dela Cruz"
    assert record["product_name"] == "Corn"
    assert record["sector"] == "Rice"
    assert record["sector_id"] == 1
    assert record["farm_name"] == "North Field"
    assert record["value"] == 2500
    assert record["images"] == ["https://img.example/corn.jpg"]


def test_farmer_submission_is_pending(client, login_as, farmer_user):
    login_as(farmer_user)
    response = submit(client)
    assert response.json()["yield"]["status"] == "Pending"


def test_create_on_unknown_farm(client):
    response = submit(client, farm_id=404)

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Farm not found"
    assert body["error"]["code"] == "NOT_FOUND"


def test_create_with_negative_area(client):
    response = submit(client, area_harvested=-2)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"


def test_malformed_payload_is_invalid_argument(client):
    response = submit(client, volume="lots")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"


def test_get_and_missing(client):
    yield_id = submit(client).json()["yield"]["id"]

    assert client.get(f"/api/yields/{yield_id}").json()["yield"]["id"] == yield_id
    assert client.get("/api/yields/999").status_code == 404


def test_update_announces_to_farmer(client, session, login_as, farmer_user, admin_user):
    login_as(farmer_user)
    yield_id = submit(client).json()["yield"]["id"]

    login_as(admin_user)
    response = client.put(
        f"/api/yields/{yield_id}",
        json={"status": "accepted", "volume": 100, "area_harvested": 2.5},
    )

    assert response.status_code == 200
    assert response.json()["yield"]["status"] == "Accepted"
    [notification] = session.exec(select(Notification)).all()
    assert notification.announcement.title == "Harvest Accepted! ✅"


def test_update_with_invalid_area(client):
    yield_id = submit(client).json()["yield"]["id"]

    response = client.put(f"/api/yields/{yield_id}", json={"area_harvested": 0, "volume": 5})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid area_harvested value. It must be a positive number."
    assert client.get(f"/api/yields/{yield_id}").json()["yield"]["volume"] == 100


def test_delete_archives(client, session):
    yield_id = submit(client).json()["yield"]["id"]

    response = client.delete(f"/api/yields/{yield_id}")

    assert response.status_code == 200
    assert response.json()["archived_yields"] == 1
    assert session.exec(select(YieldArchive)).one().yield_id == yield_id
    assert session.get(Farm, 1).products == []
    assert client.delete(f"/api/yields/{yield_id}").status_code == 404


def test_farm_and_product_listings(client):
    submit(client, product_id=1)
    submit(client, product_id=2)
    submit(client, farm_id=2, farmer_id=2, product_id=3)

    farm_yields = client.get("/api/yields/farm/1").json()["yields"]
    assert sorted(y["product_name"] for y in farm_yields) == ["Corn", "Rice"]

    product_yields = client.get("/api/yields/product/3").json()["yields"]
    assert [y["farm_name"] for y in product_yields] == ["Lake Pen"]

    assert client.get("/api/yields/farm/999").status_code == 404


def test_barangay_and_lake_listings(client, login_as, farmer_user):
    submit(client, volume=100, value=1000)
    submit(client, farm_id=2, farmer_id=2, product_id=3, volume=40, value=None)
    login_as(farmer_user)
    # Pending harvests stay out of the location listings
    submit(client, volume=999)

    body = client.get("/api/yields/barangay/San Isidro").json()
    assert [y["volume"] for y in body["yields"]] == [100]
    assert body["summary"] == {
        "barangay": "San Isidro",
        "lake": None,
        "total_yields": 1,
        "total_volume": 100,
        "total_value": 1000,
    }

    lake = client.get("/api/yields/lake/Laguna de Bay").json()
    assert [y["farm_name"] for y in lake["yields"]] == ["Lake Pen"]
    assert lake["summary"]["total_value"] == 0

    assert client.get("/api/yields/lake/Taal").json()["summary"]["total_yields"] == 0


def test_farmer_yields_are_paginated(client):
    for _ in range(3):
        submit(client)
    submit(client, farm_id=2, farmer_id=2, product_id=3)

    page = client.get("/api/farmer-yields/1", params={"page": 1, "per_page": 2}).json()
    assert page["meta"]["total"] == 3
    assert page["meta"]["total_pages"] == 2
    assert len(page["items"]) == 2

    everything = client.get("/api/farmer-yields").json()
    assert everything["meta"]["total"] == 4
