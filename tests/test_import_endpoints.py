"""
Tests for the vendor CSV upload endpoints.
"""
from rental_api.domain.models import property_key


def _upload(data, filename="export.csv"):
    return {"file": (filename, data, "text/csv")}


def test_import_properties(client, store, property_csv, property_rows):
    response = client.post(
        "/api/import/ck-properties",
        files=_upload(property_csv(property_rows(range(1, 202))).getvalue()),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["import_type"] == "ck-properties"
    assert body["rows_read"] == 201
    assert body["records_written"] == 201
    assert [b["size"] for b in body["batches"]] == [200, 1]
    assert store.get(property_key("201")).name.ja == "テストハイツ"


def test_import_properties_rejects_undecodable_upload(client):
    data = "物件No,物件名\r\n".encode("cp932") + b"\xff\xfe,x\r\n"

    response = client.post("/api/import/ck-properties", files=_upload(data))

    assert response.status_code == 400
    assert "detail" in response.json()


def test_import_properties_rejects_ragged_rows(client):
    data = "物件No,物件名\r\n1,a\r\n2\r\n".encode("cp932")
    response = client.post("/api/import/ck-properties", files=_upload(data))
    assert response.status_code == 400
    assert "Row 3" in response.json()["detail"]


def test_import_requires_a_file(client):
    response = client.post("/api/import/ck-properties")
    assert response.status_code == 422


def test_import_managements_reports_missing_properties(
    client, property_csv, property_rows, management_csv
):
    client.post("/api/import/ck-properties", files=_upload(property_csv(property_rows([1])).getvalue()))

    response = client.post(
        "/api/import/ck-property-managements",
        files=_upload(management_csv([["1", "2020/01", ""], ["404", "2020/01", ""]]).getvalue()),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["records_written"] == 1
    assert body["records_failed"] == 1
    assert body["failures"][0]["key"] == "ck-404"

    prop = client.get("/api/property/ck-1").json()
    assert prop["management"]["inService"] is True


def test_import_rooms_pages_with_offset(client, room_csv):
    rows = [["1", f"{n:04d}", "1K", "空　室", "", "", ""] for n in range(1, 251)]
    data = room_csv(rows).getvalue()

    first = client.post("/api/import/ck-rooms", files=_upload(data)).json()
    assert first["records_written"] == 200
    assert first["rows_remaining"] == 50
    assert first["next_offset"] == 200

    second = client.post(
        "/api/import/ck-rooms",
        params={"offset": first["next_offset"]},
        files=_upload(data),
    ).json()
    assert second["records_written"] == 50
    assert second["next_offset"] is None


def test_import_rooms_rejects_negative_offset(client, room_csv):
    response = client.post(
        "/api/import/ck-rooms",
        params={"offset": -1},
        files=_upload(room_csv([]).getvalue()),
    )
    assert response.status_code == 422
