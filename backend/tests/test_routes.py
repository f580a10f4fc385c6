# UID Ops route tests
#
# Tests for:
# - Record patch/create/bulk/query/delete wrappers
# - Plan week endpoints and active Monday
# - Analytics bundle with timeline overrides
# - xlsx export column contract
# - SSE completion stream and health/CORS

import io
from datetime import datetime

from openpyxl import load_workbook


def _text(chunk):
    return chunk.decode() if isinstance(chunk, bytes) else chunk


def _patch(client, record_id, field, value):
    return client.patch(f"/records/{record_id}", json={"field": field, "value": value})


def _create(client, **fields):
    body = {"po_number": "PO1", "sku_code": "SKU1", "uid": "U1", "mobile_bin": "B1"}
    body.update(fields)
    return client.post("/records", json=body)


class TestHealth:

    def test_health_reports_database_and_listeners(self, client, listener):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["ok"] is True
        assert body["database"]["status"] == "healthy"
        assert body["listeners"] == 1

    def test_cors_headers(self, client):
        resp = client.get("/health", headers={"Origin": "https://ops.example.com"})
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_restricted_origin(self, app, client):
        app.config["ALLOWED_ORIGIN"] = "https://ops.netlify.app"
        allowed = client.get("/health", headers={"Origin": "https://preview--ops.netlify.app"})
        assert allowed.headers["Access-Control-Allow-Origin"] == "https://preview--ops.netlify.app"
        denied = client.get("/health", headers={"Origin": "https://evil.example.com"})
        assert "Access-Control-Allow-Origin" not in denied.headers


class TestRecordRoutes:

    def test_patch_until_complete(self, client, listener):
        for field, value in [("po_number", "PO1"), ("sku_code", "SKU1"), ("uid", "U1")]:
            assert _patch(client, "r1", field, value).status_code == 200
        resp = _patch(client, "r1", "mobile_bin", "B1")
        body = resp.get_json()
        assert body["ok"] is True
        assert body["record"]["status"] == "complete"
        assert len(listener.events) == 1

    def test_patch_requires_field(self, client):
        assert client.patch("/records/r1", json={"value": "x"}).status_code == 400
        assert _patch(client, "r1", "status", "complete").status_code == 400

    def test_duplicate_patch_is_ignored(self, client):
        existing = _create(client).get_json()["record"]
        _patch(client, "B", "po_number", "PO1")
        _patch(client, "B", "sku_code", "SKU1")
        body = _patch(client, "B", "uid", "U1").get_json()
        assert body["outcome"] == "duplicate_ignored"
        assert body["record"]["id"] == existing["id"]

        records = client.get("/records").get_json()["records"]
        assert [r["id"] for r in records] == [existing["id"]]

    def test_create_then_upsert(self, client):
        first = _create(client)
        assert first.status_code == 201
        second = _create(client, sscc_label="SS1")
        assert second.status_code == 200
        assert second.get_json()["created"] is False
        assert second.get_json()["record"]["sscc_label"] == "SS1"

    def test_create_missing_bin(self, client):
        assert _create(client, mobile_bin="").status_code == 400
        assert client.post("/records", json=["not", "an", "object"]).status_code == 400

    def test_bulk_accepts_list_or_rows_object(self, client, listener):
        resp = client.post("/records/bulk", json=[
            {"PO": "P1", "SKU": "S1", "UID": "U1", "Mobile Bin": "B1"},
            {"PO": "P1"},
        ])
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["applied"] == 1
        assert body["skipped"] == 1
        assert len(listener.events) == 1

        resp = client.post("/records/bulk", json={"rows": [{"po": "P1", "sku": "S1", "uid": "U1", "sscc": "SS"}]})
        assert resp.get_json()["updated"] == 1
        assert len(listener.events) == 2

        assert client.post("/records/bulk", json={"rows": "nope"}).status_code == 400

    def test_query_filters_and_limit(self, client, fake_now):
        _create(client, uid="U1")
        fake_now.advance(minutes=1)
        _create(client, uid="U2")
        _patch(client, "d1", "uid", "U3")

        records = client.get("/records?status=complete").get_json()["records"]
        assert [r["uid"] for r in records] == ["U2", "U1"]
        assert len(client.get("/records?limit=1").get_json()["records"]) == 1
        assert client.get("/records?status=bogus").status_code == 400
        assert client.get("/records?from=2025-06-05").get_json()["records"] == []

    def test_delete_by_key_single_and_batched(self, client):
        _create(client, uid="U1")
        _create(client, uid="U2")
        _create(client, uid="U3")

        resp = client.delete("/records/by-key", json={"sku_code": "SKU1", "uid": "U1"})
        assert resp.get_json()["deleted"] == 1
        resp = client.delete("/records/by-key", json={"pairs": [
            {"sku_code": "SKU1", "uid": "U2"},
            {"sku_code": "SKU1", "uid": "U3"},
        ]})
        assert resp.get_json()["deleted"] == 2
        resp = client.delete("/records/by-key", json={"sku_code": "SKU1", "uid": "U1"})
        assert resp.get_json()["deleted"] == 0
        assert client.delete("/records/by-key", json={"sku_code": "SKU1"}).status_code == 400

    def test_delete_by_id(self, client):
        _patch(client, "r1", "uid", "U1")
        assert client.delete("/records/r1").get_json()["deleted"] == 1
        assert client.delete("/records/r1").get_json()["deleted"] == 0


class TestPlanRoutes:

    def test_put_get_zero(self, client):
        resp = client.put("/plan/weeks/2025-06-02", json=[
            {"po": "P1", "sku": "S1", "due_date": "2025-06-06", "target_qty": "10"},
        ])
        assert resp.status_code == 200
        assert resp.get_json()[0]["target_qty"] == 10
        assert client.get("/plan/weeks/2025-06-02").get_json()[0]["po_number"] == "P1"

        assert client.delete("/plan/weeks/2025-06-02").get_json() == []
        assert client.get("/plan/weeks/2025-06-02").get_json() == []

    def test_non_monday_rejected(self, client):
        assert client.get("/plan/weeks/2025-06-03").status_code == 400
        assert client.put("/plan/weeks/2025-06-03", json=[]).status_code == 400

    def test_list_weeks(self, client):
        client.put("/plan/weeks/2025-05-26", json=[])
        client.put("/plan/weeks/2025-06-02", json={"rows": []})
        weeks = client.get("/plan/weeks?limit=1").get_json()
        assert [w["week_start"] for w in weeks] == ["2025-06-02"]
        assert client.get("/plan/weeks?limit=0").status_code == 400

    def test_active_monday(self, client):
        body = client.get("/plan/active_monday").get_json()
        assert body == {"ok": True, "tz": "America/Chicago", "week_start": "2025-06-02"}
        assert client.get("/plan/active_monday?tz=Asia/Tokyo").get_json()["week_start"] == "2025-06-02"
        assert client.get("/plan/active_monday?tz=Nowhere/Land").status_code == 400


class TestAnalyticsRoute:

    def test_week_metrics_with_overrides(self, client):
        client.put("/plan/weeks/2025-06-02", json=[{"po": "P1", "sku": "S1", "due_date": "2025-06-06", "target_qty": 2}])
        _create(client, po_number="P1", sku_code="S1", uid="U1")

        resp = client.get("/analytics/weeks/2025-06-02?processing_actual=2025-06-07&completion_pct=55")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["planned_total"] == 2
        assert body["applied_total"] == 1
        assert body["completion_pct"] == 50
        processing = [m for m in body["timeline"]["milestones"] if m["name"] == "processing"][0]
        assert processing["variance_days"] == 1
        assert body["timeline"]["progress_pct"] == 55

    def test_bad_week(self, client):
        assert client.get("/analytics/weeks/not-a-date").status_code == 400


class TestExportRoute:

    def test_xlsx_headers_and_rows(self, client):
        _create(client, uid="U1", sscc_label="SS1")
        _create(client, uid="U2", date_local="2025-06-03")

        resp = client.get("/export/xlsx?date=2025-06-04")
        assert resp.status_code == 200
        assert "uids_2025-06-04.xlsx" in resp.headers["Content-Disposition"]

        ws = load_workbook(io.BytesIO(resp.data)).active
        rows = list(ws.iter_rows(values_only=True))
        assert ws.title == "UIDs"
        assert rows[0] == (
            "Date", "Mobile Bin (BOX)", "SSCC Label (BOX)", "PO_Number",
            "SKU_Code", "UID", "Status", "Completed At",
        )
        assert rows[1] == ("2025-06-04", "B1", "SS1", "PO1", "SKU1", "U1", "complete", "2025-06-04T15:30:00Z")
        assert len(rows) == 2

    def test_defaults_to_business_today_and_rejects_bad_date(self, client):
        resp = client.get("/export/xlsx")
        assert "uids_2025-06-04.xlsx" in resp.headers["Content-Disposition"]
        assert client.get("/export/xlsx?date=June").status_code == 400


class TestEventStream:

    def test_completion_is_streamed(self, app, client, bus):
        app.config["EVENT_STREAM_KEEPALIVE_SECONDS"] = 0.01
        resp = client.get("/events/scan")
        assert resp.mimetype == "text/event-stream"
        assert len(bus) == 1

        bus.publish(datetime(2025, 6, 4, 15, 30))
        chunks = iter(resp.response)
        assert _text(next(chunks)) == "\n"
        assert _text(next(chunks)) == 'data: {"ts": "2025-06-04T15:30:00Z"}\n\n'
        assert _text(next(chunks)) == ": keepalive\n\n"

        resp.close()
        assert len(bus) == 0

    def test_client_that_falls_behind_is_disconnected(self, app, client, bus):
        app.config["EVENT_STREAM_KEEPALIVE_SECONDS"] = 0.01
        app.config["EVENT_STREAM_QUEUE_SIZE"] = 2
        resp = client.get("/events/scan")

        for minute in range(3):
            bus.publish(datetime(2025, 6, 4, 15, minute))
        assert len(bus) == 0

        chunks = iter(resp.response)
        assert _text(next(chunks)) == "\n"
        assert _text(next(chunks)) == 'data: {"ts": "2025-06-04T15:00:00Z"}\n\n'
        assert _text(next(chunks)) == 'data: {"ts": "2025-06-04T15:01:00Z"}\n\n'
        # buffered events are flushed, then the response ends instead of idling on keepalives
        bus.publish(datetime(2025, 6, 4, 15, 5))
        assert next(chunks, None) is None
        resp.close()
