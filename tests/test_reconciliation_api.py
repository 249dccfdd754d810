"""
Tests for the reconciliation API.
"""
import pytest

from mortgagematch.services.program_scraper import DEFAULT_SOURCES

from conftest import listing_page, program_item

MARYLAND, MONTGOMERY, PG_COUNTY = DEFAULT_SOURCES


class TestSources:

    @pytest.mark.asyncio
    async def test_list_sources(self, client):
        response = await client.get("/api/reconciliation/sources")
        assert response.status_code == 200
        sources = {s["id"]: s for s in response.json()}
        assert set(sources) == {"maryland-mortgage", "montgomery-hoc", "pg-county"}
        assert sources["pg-county"]["counties"] == ["prince-georges"]
        assert sources["maryland-mortgage"]["counties"] is None


class TestRun:

    @pytest.mark.asyncio
    async def test_run_all(self, client, pages):
        pages[MARYLAND.url] = listing_page(program_item("MMP Flex"))
        pages[MONTGOMERY.url] = listing_page(program_item("HOC MPP"), program_item("HOC DPA"))
        pages[PG_COUNTY.url] = listing_page()

        response = await client.post("/api/reconciliation/run")
        assert response.status_code == 200
        summary = response.json()
        assert summary["totals"]["new"] == 3
        assert summary["totals"]["errors"] == 0

        listed = (await client.get("/api/programs", params={"include_all": "true"})).json()
        pending = [p["id"] for p in listed if p["status"] == "pending_review"]
        assert sorted(pending) == [
            "maryland-mortgage-mmp-flex",
            "montgomery-hoc-hoc-dpa",
            "montgomery-hoc-hoc-mpp",
        ]

    @pytest.mark.asyncio
    async def test_new_programs_not_public(self, client, pages):
        pages[MONTGOMERY.url] = listing_page(program_item("HOC DPA"))
        await client.post("/api/reconciliation/run", params={"source_id": "montgomery-hoc"})

        ids = [p["id"] for p in (await client.get("/api/programs")).json()]
        assert "montgomery-hoc-hoc-dpa" not in ids

    @pytest.mark.asyncio
    async def test_failed_sources_reported(self, client, pages):
        pages[MONTGOMERY.url] = "<html><body>Page moved</body></html>"

        response = await client.post("/api/reconciliation/run")
        assert response.status_code == 200
        summary = response.json()
        assert summary["totals"]["errors"] == 3
        assert set(summary["failedSources"]) == {"maryland-mortgage", "montgomery-hoc", "pg-county"}

    @pytest.mark.asyncio
    async def test_disappeared_program_outdated(self, client, pages):
        pages[MONTGOMERY.url] = listing_page(program_item("HOC MPP"), program_item("HOC DPA"))
        await client.post("/api/reconciliation/run", params={"source_id": "montgomery-hoc"})

        pages[MONTGOMERY.url] = listing_page(program_item("HOC MPP"))
        response = await client.post("/api/reconciliation/run", params={"source_id": "montgomery-hoc"})
        assert response.json()["totals"]["outdated"] == 1

        program = (await client.get("/api/programs/montgomery-hoc-hoc-dpa")).json()
        assert program["status"] == "outdated"
        assert program["metadata"]["changeHistory"][-1]["type"] == "outdated"

    @pytest.mark.asyncio
    async def test_seeded_manual_program_untouched(self, client, pages):
        pages[MONTGOMERY.url] = listing_page()
        response = await client.post("/api/reconciliation/run", params={"source_id": "montgomery-hoc"})
        assert response.json()["totals"]["outdated"] == 0

        program = (await client.get("/api/programs/montgomery-hoc")).json()
        assert program["status"] == "active"
        assert program["metadata"]["version"] == 1

    @pytest.mark.asyncio
    async def test_unknown_source(self, client):
        response = await client.post("/api/reconciliation/run", params={"source_id": "nowhere"})
        assert response.status_code == 404
