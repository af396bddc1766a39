"""
Unit tests for pi_dashboard/workbook.py -- master/PI export, filenames and
master/label import.
"""
import io
import os
import sys
import pytest

from openpyxl import load_workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
os.environ.setdefault("DATABASE_URL", "")

from pi_dashboard import mutations, workbook
from pi_dashboard.keys import OverrideKey
from pi_dashboard.pi_templates import STANDARD_PI_IDS
from pi_dashboard.resolver import find_template, resolve_templates, unit_hidden_ids

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from __mocks__.fixtures import SUPER_ADMIN, STATION_1, STATION_2, make_master_row, make_workbook

pytestmark = pytest.mark.unit


def _pi1_rows():
    return [
        make_master_row("PI1", f"pi1_26_{i}", f"Activity {i}", f"Indicator {i}", [i] * 12, title="Awareness")
        for i in range(1, 4)
    ]


class TestExport:
    def test_master_rows_cover_every_activity(self, store):
        templates = resolve_templates(store, "2026", STATION_1)
        rows = workbook.master_rows(templates)
        assert len(rows) == sum(len(t.activities) for t in templates)
        assert rows[0]["PI ID"] == "PI1"
        assert rows[0]["Activity ID"] == "pi1_26_1"

    def test_master_workbook_headers(self, store):
        output = workbook.build_master_workbook(resolve_templates(store, "2026", STATION_1))
        ws = load_workbook(output).active
        headers = [cell.value for cell in ws[1]]
        assert headers == workbook.MASTER_COLUMNS
        assert ws.title == "Master Template"

    def test_pi_workbook_includes_total(self, store):
        mutations.set_accomplishment(store, "2026", STATION_1, "PI1", "pi1_26_1", 0, 4)
        mutations.set_accomplishment(store, "2026", STATION_1, "PI1", "pi1_26_1", 1, 6)
        template = resolve_templates(store, "2026", STATION_1)[0]
        ws = load_workbook(workbook.build_pi_workbook(template)).active
        assert ws.title == "PI1"
        assert ws.cell(row=2, column=len(workbook.PI_COLUMNS)).value == 10

    def test_exported_master_reads_back(self, store):
        output = workbook.build_master_workbook(resolve_templates(store, "2026", STATION_1))
        rows = workbook.read_rows(output.getvalue())
        assert rows[0]["PI ID"] == "PI1"
        assert rows[0]["Jan"] == 0


class TestFilenames:
    def test_2026_accomplishment(self):
        assert workbook.master_filename(STATION_1, "2026") == "POLICE_STATION_1_ACCOMPLISHMENT_2026.xlsx"

    def test_2026_target(self):
        assert workbook.master_filename(STATION_1, 2026, "target") == "POLICE_STATION_1_TARGET_OUTLOOK_2026.xlsx"

    def test_earlier_years(self):
        assert workbook.master_filename(STATION_1, "2025") == "Master_Template_2025.xlsx"

    def test_pi_filename(self):
        assert workbook.pi_filename(STATION_1, "PI4", "2026") == "Police Station 1_PI4_2026.xlsx"


class TestReadRows:
    def test_blank_cells_become_none(self):
        content = make_workbook(["Activity", "Performance Indicator"], [["Only activity", None]])
        assert workbook.read_rows(content) == [{"Activity": "Only activity", "Performance Indicator": None}]

    def test_unreadable_upload(self):
        with pytest.raises(ValueError):
            workbook.read_rows(b"this is not a workbook")


class TestImportMaster:
    def test_labels_values_and_rows(self, store):
        result = workbook.import_master_template(store, "2026", STATION_1, _pi1_rows())
        assert result.ok
        assert result.updated == 3
        pi1 = resolve_templates(store, "2026", STATION_1)[0]
        assert pi1.title == "Awareness"
        assert [a.id for a in pi1.activities] == ["pi1_26_1", "pi1_26_2", "pi1_26_3"]
        assert pi1.activities[1].activity == "Activity 2"
        assert pi1.activities[2].values == [3] * 12

    def test_missing_standard_pis_hidden(self, store):
        workbook.import_master_template(store, "2026", STATION_1, _pi1_rows())
        hidden = unit_hidden_ids(store, STATION_1, "2026")
        assert "PI1" not in hidden
        assert set(hidden) == set(STANDARD_PI_IDS) - {"PI1"}
        assert [t.id for t in resolve_templates(store, "2026", STATION_1)] == ["PI1"]

    def test_unknown_pi_becomes_custom(self, store):
        rows = _pi1_rows() + [make_master_row("PI30", "pi30_a1", "Drone patrols", "Sorties", [2] * 12)]
        workbook.import_master_template(store, "2026", SUPER_ADMIN, rows)
        custom = find_template(store, "2026", "PI30", "sa-1")
        assert custom is not None and custom.custom
        assert custom.activity_ids == ["pi30_a1"]

    def test_custom_pi_stays_with_importing_unit(self, store):
        rows = _pi1_rows() + [make_master_row("PI40", "pi40_a1", "Drone patrols", "Sorties", [2] * 12)]
        workbook.import_master_template(store, "2026", STATION_1, rows)
        assert "PI40" in [t.id for t in resolve_templates(store, "2026", STATION_1)]
        assert "PI40" not in [t.id for t in resolve_templates(store, "2026", STATION_2)]
        assert store.get(OverrideKey.custom_templates("accomplishment", "2026")) is None

    def test_unit_custom_pi_is_editable_by_that_unit(self, store):
        rows = [make_master_row("PI40", "pi40_a1", "Drone patrols", "Sorties", [2] * 12)]
        workbook.import_master_template(store, "2026", STATION_1, rows)
        assert mutations.add_activity_row(store, "2026", STATION_1, "PI40")
        with pytest.raises(mutations.UnknownTemplate):
            mutations.add_activity_row(store, "2026", STATION_2, "PI40")

    def test_reimport_replaces_unit_custom_definition(self, store):
        first = [make_master_row("PI40", "pi40_a1", "Old", "Old", [0] * 12)]
        second = [make_master_row("PI40", "pi40_b1", "New", "New", [0] * 12)]
        workbook.import_master_template(store, "2026", STATION_1, first)
        workbook.import_master_template(store, "2026", STATION_1, second)
        custom = find_template(store, "2026", "PI40", "st-1")
        assert custom.activity_ids == ["pi40_b1"]

    def test_shared_custom_pi_not_copied_to_unit(self, store):
        template = mutations.add_template(store, "2026", "Shared")
        rows = [make_master_row(template.id, "shared_a1", "Row", "Count", [1] * 12)]
        workbook.import_master_template(store, "2026", STATION_1, rows)
        assert store.get(OverrideKey.custom_templates("accomplishment", "2026", unit_id="st-1")) is None
        assert find_template(store, "2026", template.id, "st-2") is not None

    def test_import_leaves_other_years(self, store):
        workbook.import_master_template(store, "2026", STATION_1, _pi1_rows()[:1])
        assert len(resolve_templates(store, "2025", STATION_1)) == len(STANDARD_PI_IDS)
        assert unit_hidden_ids(store, STATION_1, "2025") == []

    def test_rows_without_ids_skipped(self, store):
        rows = _pi1_rows() + [{"PI ID": None, "Activity ID": "x"}, "junk"]
        result = workbook.import_master_template(store, "2026", STATION_1, rows)
        assert result.ok
        assert result.skipped == 2

    def test_nothing_usable(self, store):
        result = workbook.import_master_template(store, "2026", STATION_1, [{"Activity": "x"}])
        assert not result.ok
        assert unit_hidden_ids(store, STATION_1, "2026") == []

    def test_import_from_exported_file(self, store):
        mutations.set_accomplishment(store, "2026", STATION_1, "PI2", "pi2_a1", 0, 12)
        exported = workbook.build_master_workbook(resolve_templates(store, "2026", STATION_1))
        rows = workbook.read_rows(exported.getvalue())
        result = workbook.import_master_template(store, "2026", STATION_1, rows)
        assert result.ok
        assert unit_hidden_ids(store, STATION_1, "2026") == []


class TestImportLabelsFromWorkbook:
    def test_relabels_from_upload(self, store):
        content = make_workbook(["Activity", "Performance Indicator"], [["Renamed", "Counted"]])
        result = workbook.import_labels_from_workbook(store, "2026", STATION_1, "PI1", content)
        assert result.ok
        first = resolve_templates(store, "2026", STATION_1)[0].activities[0]
        assert (first.activity, first.indicator) == ("Renamed", "Counted")

    def test_bad_upload_reports_failure(self, store):
        result = workbook.import_labels_from_workbook(store, "2026", STATION_1, "PI1", b"garbage")
        assert not result.ok
        assert result.message == "Import failed, check template format"
