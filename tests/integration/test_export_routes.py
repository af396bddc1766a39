"""
Integration tests for workbook exchange routes -- export downloads and
master/label uploads.
"""
import io
import os
import sys
import pytest

from openpyxl import load_workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
os.environ.setdefault("DATABASE_URL", "")

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from __mocks__.fixtures import make_workbook

pytestmark = pytest.mark.integration

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MASTER_HEADERS = ["PI ID", "PI Title", "Activity ID", "Activity", "Performance Indicator",
                  "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class TestExport:
    def test_master_export(self, client, as_unit):
        response = client.get("/pi/2026/units/st-1/export", headers=as_unit("st-1"))
        assert response.status_code == 200
        assert response.headers["content-type"] == XLSX
        assert "POLICE_STATION_1_ACCOMPLISHMENT_2026.xlsx" in response.headers["content-disposition"]
        ws = load_workbook(io.BytesIO(response.content)).active
        assert [c.value for c in ws[1]] == MASTER_HEADERS

    def test_target_filename(self, client, as_unit):
        response = client.get("/pi/2026/units/st-1/export", headers=as_unit("st-1"), params={"board": "target"})
        assert "TARGET_OUTLOOK_2026" in response.headers["content-disposition"]

    def test_other_station_denied(self, client, as_unit):
        response = client.get("/pi/2026/units/st-1/export", headers=as_unit("st-2"))
        assert response.status_code == 403

    def test_template_export(self, client, as_unit):
        client.put("/pi/2026/units/st-1/templates/PI1/activities/pi1_26_1/months/0",
                   headers=as_unit("st-1"), data={"value": "9"})
        response = client.get("/pi/2026/units/st-1/templates/PI1/export", headers=as_unit("sa-1"))
        assert response.status_code == 200
        ws = load_workbook(io.BytesIO(response.content)).active
        assert ws.cell(row=2, column=3).value == 9

    def test_hidden_template_export(self, client, as_unit):
        client.post("/pi/2026/units/st-1/hidden", headers=as_unit("sa-1"), data={"template_id": "PI2"})
        response = client.get("/pi/2026/units/st-1/templates/PI2/export", headers=as_unit("st-1"))
        assert response.status_code == 404

    def test_unknown_template_export(self, client, as_unit):
        response = client.get("/pi/2026/units/st-1/templates/PI99/export", headers=as_unit("st-1"))
        assert response.status_code == 404


class TestImport:
    def _master(self):
        rows = [["PI1", "Awareness", "pi1_26_1", "Snapshots", "Count"] + [2] * 12]
        return make_workbook(MASTER_HEADERS, rows)

    def test_master_import(self, client, as_unit):
        response = client.post("/pi/2026/units/st-1/import", headers=as_unit("sa-1"),
                               files={"file": ("master.xlsx", self._master(), XLSX)})
        assert response.status_code == 200
        assert response.json()["ok"] is True
        view = client.get("/pi/2026/view", headers=as_unit("st-1")).json()
        assert [t["id"] for t in view["templates"]] == ["PI1"]
        assert view["templates"][0]["activities"][0]["total"] == 24

    def test_master_import_needs_structure_authority(self, client, as_unit):
        response = client.post("/pi/2026/units/st-1/import", headers=as_unit("st-1"),
                               files={"file": ("master.xlsx", self._master(), XLSX)})
        assert response.status_code == 403

    def test_master_import_rejects_garbage(self, client, as_unit):
        response = client.post("/pi/2026/units/st-1/import", headers=as_unit("sa-1"),
                               files={"file": ("master.xlsx", b"not a workbook", XLSX)})
        assert response.status_code == 400
        assert response.json()["error"] == "Import failed, check template format"

    def test_label_import(self, client, as_unit):
        content = make_workbook(["Activity", "Performance Indicator"], [["Renamed", "Counted"]])
        response = client.post("/pi/2026/units/st-1/templates/PI1/labels/import", headers=as_unit("sa-1"),
                               files={"file": ("labels.xlsx", content, XLSX)})
        assert response.status_code == 200
        first = client.get("/pi/2026/view", headers=as_unit("st-1")).json()["templates"][0]["activities"][0]
        assert first["activity"] == "Renamed"

    def test_label_import_bad_file(self, client, as_unit):
        response = client.post("/pi/2026/units/st-1/templates/PI1/labels/import", headers=as_unit("sa-1"),
                               files={"file": ("labels.xlsx", b"junk", XLSX)})
        assert response.status_code == 400
        assert response.json()["ok"] is False
