"""Unit tests for the lead directory: filters, normalization, file store, API."""

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from httpx import AsyncClient

from src.main import app
from src.mp_leads.api.router import get_lead_store
from src.mp_leads.domain.models import (
    MAX_RESULTS,
    Lead,
    extract_lead_list,
    filter_leads,
    normalize_leads,
)
from src.mp_leads.infrastructure.file_store import LeadFileStore

LEADS = [
    Lead(id="1", name="Surya Power", sector="Solar EPC", size="SME", city="Pune", state="MH"),
    Lead(id="2", name="Kaveri Cables", sector="Cables", size="Large", city="Chennai"),
    Lead(id="3", name="Delta Switchgear", sector="Switchgear", size="sme", state="Gujarat"),
    Lead(id="4", name="Mid Grid Co", size="Mid"),
]


class TestFilterLeads:
    def test_no_filters_returns_all(self) -> None:
        assert filter_leads(LEADS) == LEADS

    def test_size_is_case_insensitive_equality(self) -> None:
        assert [lead.id for lead in filter_leads(LEADS, size="SME")] == ["1", "3"]

    def test_size_all_is_ignored(self) -> None:
        assert len(filter_leads(LEADS, size="all")) == 4

    def test_q_matches_name_sector_city_state(self) -> None:
        assert [lead.id for lead in filter_leads(LEADS, q="chennai")] == ["2"]
        assert [lead.id for lead in filter_leads(LEADS, q="guj")] == ["3"]
        assert [lead.id for lead in filter_leads(LEADS, q="SOLAR")] == ["1"]

    def test_sector_is_substring(self) -> None:
        assert [lead.id for lead in filter_leads(LEADS, sector="cab")] == ["2"]

    def test_filters_combine(self) -> None:
        assert filter_leads(LEADS, q="power", size="large") == []

    def test_result_capped(self) -> None:
        many = [Lead(id=str(i), name=f"L{i}") for i in range(MAX_RESULTS + 10)]
        assert len(filter_leads(many)) == MAX_RESULTS


class TestNormalizeLeads:
    def test_id_defaults_to_name_slug(self) -> None:
        (lead,) = normalize_leads([{"name": "  Tata  Power Solar "}])
        assert lead.id == "tata-power-solar"
        assert lead.name == "Tata  Power Solar"

    def test_given_id_kept(self) -> None:
        (lead,) = normalize_leads([{"id": "x-9", "name": "A"}])
        assert lead.id == "x-9"

    def test_nameless_and_non_dict_items_dropped(self) -> None:
        assert normalize_leads([{"name": ""}, {"name": "   "}, {"sector": "x"}, "str", 5]) == []

    def test_only_string_optionals_kept(self) -> None:
        (lead,) = normalize_leads([{"name": "A", "city": "Pune", "phone": 98765, "size": None}])
        assert lead.to_dict() == {"id": "a", "name": "A", "city": "Pune"}

    def test_camel_case_logo_url_preserved(self) -> None:
        (lead,) = normalize_leads([{"name": "A", "logoUrl": "/logos/a.png"}])
        assert lead.to_dict()["logoUrl"] == "/logos/a.png"


class TestExtractLeadList:
    def test_bare_array(self) -> None:
        assert extract_lead_list([{"name": "A"}]) == [{"name": "A"}]

    def test_wrapped_array(self) -> None:
        assert extract_lead_list({"leads": []}) == []

    @pytest.mark.parametrize("body", [{"name": "A"}, "text", 3, None, {"leads": "x"}])
    def test_other_shapes(self, body: object) -> None:
        assert extract_lead_list(body) is None


class TestLeadFileStore:
    async def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert await LeadFileStore(tmp_path / "none.json").read() == []

    async def test_malformed_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "leads.json"
        path.write_text("{not json", encoding="utf-8")
        assert await LeadFileStore(path).read() == []

    async def test_non_array_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "leads.json"
        path.write_text('{"leads": []}', encoding="utf-8")
        assert await LeadFileStore(path).read() == []

    async def test_replace_all_writes_atomically(self, tmp_path: Path) -> None:
        path = tmp_path / "public" / "leads.json"
        store = LeadFileStore(path)
        await store.replace_all([Lead(id="a", name="A", sector="Solar")])

        assert json.loads(path.read_text(encoding="utf-8")) == [
            {"id": "a", "name": "A", "sector": "Solar"}
        ]
        assert [p.name for p in path.parent.iterdir()] == ["leads.json"]
        assert await store.read() == [Lead(id="a", name="A", sector="Solar")]


@pytest.fixture
def lead_file(tmp_path: Path) -> Iterator[Path]:
    path = tmp_path / "leads.json"
    app.dependency_overrides[get_lead_store] = lambda: LeadFileStore(path)
    yield path
    app.dependency_overrides.pop(get_lead_store, None)


class TestLeadsApi:
    async def test_post_then_filter_by_size(self, client: AsyncClient, lead_file: Path) -> None:
        resp = await client.post(
            "/api/leads",
            json={"leads": [
                {"name": "Surya Power", "size": "SME"},
                {"name": "Kaveri Cables", "size": "Large"},
                {"name": ""},
            ]},
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"ok": True, "count": 2}

        listed = await client.get("/api/leads", params={"size": "sme"})
        assert [lead["name"] for lead in listed.json()["data"]] == ["Surya Power"]

    async def test_non_array_body_rejected(self, client: AsyncClient, lead_file: Path) -> None:
        resp = await client.post("/api/leads", json={"name": "A"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Expected an array of leads"
        assert not lead_file.exists()

    async def test_all_items_nameless_rejected(self, client: AsyncClient, lead_file: Path) -> None:
        resp = await client.post("/api/leads", json=[{"sector": "x"}, {"name": " "}])
        assert resp.status_code == 400
        assert resp.json()["code"] == 4001

    async def test_invalid_json_rejected(self, client: AsyncClient, lead_file: Path) -> None:
        resp = await client.post(
            "/api/leads", content=b"[{", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid JSON"

    async def test_get_without_file_is_empty(self, client: AsyncClient, lead_file: Path) -> None:
        resp = await client.get("/api/leads")
        assert resp.status_code == 200
        assert resp.json()["data"] == []
