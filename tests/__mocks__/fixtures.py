"""
Shared test fixtures -- units, headers and workbook helpers for unit and
integration tests.
"""
import io

from openpyxl import Workbook

from pi_dashboard.units import get_unit


# ── Unit fixtures ────────────────────────────────────────────────────

SUPER_ADMIN = get_unit("sa-1")
SUB_ADMIN = get_unit("sub-1")
CHQ_CARMU = get_unit("chq-1")
CHQ_CIU = get_unit("chq-2")
CHQ_TPU = get_unit("chq-7")
STATION_1 = get_unit("st-1")
STATION_2 = get_unit("st-2")
MOBILE_FORCE = get_unit("st-11")


def headers_for(unit_id):
    """Request headers identifying the calling unit."""
    return {"X-Unit-Id": unit_id}


# ── Workbook fixtures ────────────────────────────────────────────────

def make_workbook(columns, rows):
    """Build an .xlsx in memory and return its bytes."""
    wb = Workbook()
    ws = wb.active
    ws.append(list(columns))
    for row in rows:
        ws.append(list(row))
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def make_master_row(pi_id, activity_id, activity, indicator, values=None, title=None):
    """One master-template row as a dict keyed by column header."""
    row = {
        "PI ID": pi_id,
        "PI Title": title or f"Title {pi_id}",
        "Activity ID": activity_id,
        "Activity": activity,
        "Performance Indicator": indicator,
    }
    months = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
    for month, value in zip(months, values or [0] * 12):
        row[month] = value
    return row
