"""
Tests for the property query and update endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from rental_api.db.session import build_engine
from rental_api.db.store import DocumentStore
from rental_api.domain.models import (
    GeoCoord,
    Location,
    Management,
    Name,
    Property,
    Rentable,
    Room,
    property_key,
    room_key,
)
from rental_api.main import create_app


def _property(kind="マンション", locality="渋谷区", in_service=True, lat=35.66, lng=139.70):
    return Property(
        name=Name(ja=f"{kind}物件", ja_kata="ブッケン"),
        location=Location(address="東京都渋谷区1-1", geo_coord=GeoCoord(lat=lat, lng=lng), locality=locality),
        kind=kind,
        management=Management(in_service=in_service),
    )


@pytest.fixture
def seeded(store):
    store.put_multi(
        [property_key(str(n)) for n in range(1, 5)],
        [
            _property(),
            _property(in_service=False),
            _property(kind="駐車場", lat=35.1, lng=139.1),
            _property(kind="事務所", locality="新宿区"),
        ],
    )
    store.put_multi(
        [room_key("1", "102"), room_key("1", "101")],
        [Room(layout="2DK", rentable=Rentable(rentable=True)), Room(layout="1K")],
    )
    return store


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_search_without_filters_returns_everything(client, seeded):
    response = client.get("/api/property/search")
    assert response.status_code == 200
    assert [p["nameOrId"] for p in response.json()] == ["ck-1", "ck-2", "ck-3", "ck-4"]


def test_search_combines_filters(client, seeded):
    response = client.get(
        "/api/property/search",
        params={"kind": "マンション", "locality": "渋谷区", "inService": "true"},
    )
    body = response.json()
    assert [p["nameOrId"] for p in body] == ["ck-1"]
    assert body[0]["category"] == "residence"
    assert body[0]["location"]["geoCoord"] == {"lat": 35.66, "lng": 139.70}


def test_search_in_service_false(client, seeded):
    response = client.get("/api/property/search", params={"inService": "false"})
    assert [p["nameOrId"] for p in response.json()] == ["ck-2"]


def test_search_ignores_unrecognised_in_service_value(client, seeded):
    response = client.get("/api/property/search", params={"inService": "yes"})
    assert len(response.json()) == 4


def test_search_is_limited(client, store):
    store.put_multi(
        [property_key(f"{n:03d}") for n in range(30)],
        [_property() for _ in range(30)],
    )
    response = client.get("/api/property/search")
    assert len(response.json()) == 20


def test_distinct(client, seeded):
    body = client.get("/api/property/distinct").json()
    assert sorted(body["kind"]) == ["マンション", "事務所", "駐車場"]
    assert sorted(body["locality"]) == ["新宿区", "渋谷区"]


@pytest.mark.parametrize(
    "category,expected_kinds",
    [
        ("all", ["マンション", "マンション", "駐車場", "事務所"]),
        ("residence", ["マンション", "マンション"]),
        ("parking", ["駐車場"]),
        ("business", ["事務所"]),
    ],
)
def test_geojson_by_category(client, seeded, category, expected_kinds):
    response = client.get(f"/api/property/{category}.geojson")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/geo+json")
    body = response.json()
    assert body["type"] == "FeatureCollection"
    assert [f["properties"]["kind"] for f in body["features"]] == expected_kinds


def test_geojson_coordinates_are_lng_lat(client, seeded):
    features = client.get("/api/property/parking.geojson").json()["features"]
    assert features[0]["geometry"] == {"type": "Point", "coordinates": [139.1, 35.1]}
    assert features[0]["properties"]["name"] == "駐車場物件"


def test_geojson_unknown_category(client, seeded):
    assert client.get("/api/property/castles.geojson").status_code == 404


def test_get_property_with_rooms(client, seeded):
    response = client.get("/api/property/ck-1")

    assert response.status_code == 200
    body = response.json()
    assert body["nameOrId"] == "ck-1"
    assert [r["nameOrId"] for r in body["rooms"]] == ["101", "102"]
    assert body["rooms"][1]["rentable"]["rentable"] is True
    assert body["rooms"][0]["contract"] is None


def test_get_missing_property(client, seeded):
    assert client.get("/api/property/ck-999").status_code == 404


def test_put_merges_nested_fields(client, seeded):
    response = client.put(
        "/api/property/ck-1",
        json={"location": {"geoCoord": {"lat": 35.0}}, "kind": "アパート"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "アパート"
    assert body["location"]["geoCoord"] == {"lat": 35.0, "lng": 139.70}
    assert body["location"]["address"] == "東京都渋谷区1-1"
    assert len(body["rooms"]) == 2

    stored = seeded.get(property_key("1"))
    assert stored.location.geo_coord.lat == 35.0
    assert stored.name.ja == "マンション物件"


def test_put_missing_property(client, seeded):
    response = client.put("/api/property/ck-999", json={"kind": "アパート"})
    assert response.status_code == 404
    assert seeded.query_properties(kind="アパート") == []


def test_unreachable_store_answers_503(settings, tmp_path):
    unreachable = DocumentStore(build_engine(f"sqlite:///{tmp_path / 'missing' / 'rental.db'}"))
    app = create_app(settings=settings, store=unreachable)

    with TestClient(app) as client:
        response = client.get("/api/property/search")

    assert response.status_code == 503


def test_put_null_leaves_required_fields_unchanged(client, seeded):
    response = client.put(
        "/api/property/ck-1",
        json={"kind": None, "name": {"ja": None}, "location": {"geoCoord": {"lat": None}}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "マンション"
    assert body["name"]["ja"] == "マンション物件"
    assert body["location"]["geoCoord"]["lat"] == 35.66

    stored = seeded.get(property_key("1"))
    assert stored.kind == "マンション"
    assert stored.name.ja == "マンション物件"


def test_put_null_clears_management_dates(client, seeded):
    client.put(
        "/api/property/ck-1",
        json={"management": {"startDate": "2023-04-01T00:00:00+09:00"}},
    )
    assert seeded.get(property_key("1")).management.start_date is not None

    response = client.put("/api/property/ck-1", json={"management": {"startDate": None}})

    assert response.status_code == 200
    assert response.json()["management"]["startDate"] is None
    assert seeded.get(property_key("1")).management.start_date is None
    assert seeded.get(property_key("1")).management.in_service is True
