"""
Tests for the program catalog API.
"""
import threading

import pytest

from mortgagematch.services.program_scraper import DEFAULT_SOURCES

from conftest import listing_page, program_item


SEARCH_BODY = {
    "county": "montgomery",
    "city": "any",
    "firstTimeBuyer": True,
    "creditScoreBand": "640-659",
    "householdIncome": 100000,
    "householdSize": 2,
}


# ============================================================================
# LISTING
# ============================================================================

class TestListPrograms:
    """Browsing the catalog."""

    @pytest.mark.asyncio
    async def test_list_active(self, client):
        response = await client.get("/api/programs")
        assert response.status_code == 200
        programs = response.json()
        assert len(programs) == 6
        for program in programs:
            for field in ["id", "name", "description", "eligibility", "status", "metadata"]:
                assert field in program, f"Program missing {field}"
            assert program["status"] == "active"

    @pytest.mark.asyncio
    async def test_outdated_hidden_by_default(self, client, seeded_catalog):
        seeded_catalog.soft_delete("howard-settlement-downpayment")
        ids = [p["id"] for p in (await client.get("/api/programs")).json()]
        assert "howard-settlement-downpayment" not in ids

        response = await client.get("/api/programs", params={"include_outdated": "true"})
        ids = [p["id"] for p in response.json()]
        assert ids[-1] == "howard-settlement-downpayment"

    @pytest.mark.asyncio
    async def test_get_program(self, client):
        response = await client.get("/api/programs/montgomery-hoc")
        assert response.status_code == 200
        program = response.json()
        assert program["eligibility"]["counties"] == ["montgomery"]
        assert program["eligibility"]["incomeLimits"]["2"] == 125000
        assert program["source"] == "manual-entry"

    @pytest.mark.asyncio
    async def test_get_missing_program(self, client):
        response = await client.get("/api/programs/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_stats(self, client):
        response = await client.get("/api/programs/stats")
        assert response.status_code == 200
        stats = response.json()
        assert stats["total"] == 6
        assert stats["byStatus"]["active"] == 6
        assert stats["bySource"]["manual-entry"] == 6
        assert stats["recentDays"] == 30


# ============================================================================
# SEARCH
# ============================================================================

class TestSearch:
    """Applicant search."""

    @pytest.mark.asyncio
    async def test_search_matches(self, client):
        response = await client.post("/api/programs/search", json=SEARCH_BODY)
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["maryland-mortgage-program", "montgomery-hoc"]

    @pytest.mark.asyncio
    async def test_search_income_too_high(self, client):
        body = dict(SEARCH_BODY, householdIncome=200000)
        response = await client.post("/api/programs/search", json=body)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_search_accepts_legacy_form_keys(self, client):
        body = {"county": "montgomery", "firstTimeBuyer": True, "creditScore": "640-699", "income": 100000, "householdSize": 2}
        response = await client.post("/api/programs/search", json=body)
        assert [p["id"] for p in response.json()] == ["maryland-mortgage-program", "montgomery-hoc"]

    @pytest.mark.asyncio
    async def test_search_explain(self, client):
        body = dict(SEARCH_BODY, householdIncome=140000)
        response = await client.post("/api/programs/search", params={"explain": "true"}, json=body)
        assert response.status_code == 200
        report = {m["program"]["id"]: m["qualification"] for m in response.json()}
        assert len(report) == 6
        assert report["maryland-mortgage-program"]["qualifies"] is True
        assert [r["rule"] for r in report["montgomery-hoc"]["reasons"]] == ["income"]

    @pytest.mark.asyncio
    async def test_invalid_profile(self, client):
        body = dict(SEARCH_BODY, householdIncome=-5)
        response = await client.post("/api/programs/search", json=body)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["field"] == "household_income"

    @pytest.mark.asyncio
    async def test_unknown_credit_band(self, client):
        body = dict(SEARCH_BODY, creditScoreBand="great")
        response = await client.post("/api/programs/search", json=body)
        assert response.status_code == 400


# ============================================================================
# CURATION
# ============================================================================

class TestCuration:
    """Create, update, status changes and deletes."""

    @pytest.mark.asyncio
    async def test_create(self, client, program_data):
        response = await client.post("/api/programs", json=program_data())
        assert response.status_code == 201
        program = response.json()
        assert program["status"] == "active"
        assert program["source"] == "manual-entry"
        assert program["metadata"]["version"] == 1

        response = await client.get("/api/programs/test-program")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_create_missing_fields(self, client):
        response = await client.post("/api/programs", json={"name": "Incomplete"})
        assert response.status_code == 400
        assert response.json()["field"] == "description"

    @pytest.mark.asyncio
    async def test_update(self, client):
        response = await client.put("/api/programs/montgomery-hoc", json={"savings": "Up to $12,000"})
        assert response.status_code == 200
        program = response.json()
        assert program["savings"] == "Up to $12,000"
        assert program["metadata"]["version"] == 2
        assert program["metadata"]["changeHistory"][-1]["type"] == "updated"

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, client):
        response = await client.put("/api/programs/montgomery-hoc", json={"colour": "green"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_missing(self, client):
        response = await client.put("/api/programs/nope", json={"savings": "x"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_change_status(self, client):
        response = await client.patch(
            "/api/programs/montgomery-hoc/status",
            json={"status": "outdated", "reason": "Funds exhausted"},
        )
        assert response.status_code == 200
        program = response.json()
        assert program["status"] == "outdated"
        assert program["expiresAt"] is not None
        assert "Funds exhausted" in program["metadata"]["changeHistory"][-1]["details"]

    @pytest.mark.asyncio
    async def test_change_status_invalid(self, client):
        response = await client.patch("/api/programs/montgomery-hoc/status", json={"status": "gone"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_soft_delete(self, client):
        response = await client.delete("/api/programs/montgomery-hoc")
        assert response.status_code == 204

        program = (await client.get("/api/programs/montgomery-hoc")).json()
        assert program["status"] == "outdated"

    @pytest.mark.asyncio
    async def test_hard_delete(self, client):
        response = await client.delete("/api/programs/montgomery-hoc", params={"hard": "true"})
        assert response.status_code == 204

        response = await client.get("/api/programs/montgomery-hoc")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing(self, client):
        response = await client.delete("/api/programs/nope")
        assert response.status_code == 404


# ============================================================================
# STORE WRITES
# ============================================================================

class TestStoreWrites:
    """Catalog saves stay off the event loop thread."""

    @pytest.fixture
    def save_threads(self, client, store):
        threads = []
        real_save = store.save

        def save(records):
            threads.append(threading.get_ident())
            real_save(records)

        store.save = save
        return threads

    @pytest.mark.asyncio
    async def test_curation_saves_in_worker_thread(self, client, save_threads, program_data):
        loop_thread = threading.get_ident()
        await client.post("/api/programs", json=program_data())
        await client.put("/api/programs/test-program", json={"savings": "Up to $2,000"})
        await client.patch("/api/programs/test-program/status", json={"status": "outdated"})
        await client.delete("/api/programs/test-program", params={"hard": "true"})
        assert len(save_threads) == 4
        assert loop_thread not in save_threads

    @pytest.mark.asyncio
    async def test_reconciliation_saves_in_worker_thread(self, client, save_threads, pages):
        pages[DEFAULT_SOURCES[1].url] = listing_page(program_item("HOC DPA"))
        loop_thread = threading.get_ident()
        await client.post("/api/reconciliation/run", params={"source_id": "montgomery-hoc"})
        assert len(save_threads) == 1
        assert loop_thread not in save_threads
