import pytest


@pytest.fixture(name="harvests")
def harvests_fixture(client):
    records = [
        # farmer, product, farm, date, volume, value, area
        (1, 1, 1, "2025-02-01", 100, 1000, 2.0),
        (1, 1, 1, "2025-05-01", 300, 3000, 2.0),
        (1, 2, 1, "2025-06-01", 200, 4000, 1.0),
        (2, 3, 2, "2025-06-01", 50, 500, 1.0),
        (1, 2, 1, "2024-06-01", 999, 9990, 1.0),
    ]
    for farmer_id, product_id, farm_id, harvest_date, volume, value, area in records:
        client.post(
            "/api/yields",
            json={
                "farmer_id": farmer_id,
                "product_id": product_id,
                "farm_id": farm_id,
                "harvest_date": harvest_date,
                "volume": volume,
                "value": value,
                "area_harvested": area,
            },
        )


def test_distribution_per_sector(client, harvests):
    sectors = client.get("/api/reports/yield-distribution", params={"year": 2025}).json()

    by_name = {s["sector_name"]: s for s in sectors}
    rice = by_name["Rice"]
    assert rice["total_yields"] == 3
    assert rice["total_volume"] == 600
    corn = next(p for p in rice["products"] if p["product_name"] == "Corn")
    assert corn["yield_count"] == 2
    assert corn["avg_volume"] == 200
    assert corn["percentage_of_sector_volume"] == pytest.approx(66.67)
    assert corn["percentage_of_sector_value"] == pytest.approx(50.0)
    assert by_name["Fishery"]["total_volume"] == 50


def test_distribution_single_sector(client, harvests):
    sectors = client.get("/api/reports/yield-distribution", params={"sector_id": 2}).json()
    assert [s["sector_name"] for s in sectors] == ["Fishery"]


def test_pending_yields_are_not_counted(client, login_as, farmer_user):
    login_as(farmer_user)
    client.post("/api/yields", json={"farmer_id": 1, "product_id": 1, "farm_id": 1, "volume": 10, "area_harvested": 1})

    stats = client.get("/api/reports/yield-statistics").json()

    assert stats["total_yield"] == 0
    assert stats["top_product"] is None


def test_statistics_for_farmer_and_year(client, harvests):
    stats = client.get("/api/reports/yield-statistics", params={"year": 2025, "farmer_id": 1}).json()

    assert stats["total_yield"] == 600
    assert stats["yield_per_hectare"] == 120
    assert stats["top_product"] == "Corn"
    assert stats["top_product_volume"] == 400


@pytest.mark.parametrize("route", ["/api/reports/yield-distribution", "/api/reports/yield-statistics"])
@pytest.mark.parametrize("year", [0, -5, 9999])
def test_out_of_range_year(client, route, year):
    response = client.get(route, params={"year": year})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"
