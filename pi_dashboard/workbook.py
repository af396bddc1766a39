"""
Spreadsheet exchange for PI dashboards: master template export/import,
single-PI export and label import from uploaded workbooks.
"""
import io
import logging
from collections.abc import Mapping

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from pi_dashboard.config import BOARD_ACCOMPLISHMENT, MONTHS, MONTHS_PER_YEAR
from pi_dashboard.keys import OverrideKey
from pi_dashboard.mutations import (
    ACTIVITY_COLUMNS, INDICATOR_COLUMN, ImportResult, cell_text,
    import_labels_from_table, set_accomplishment,
)
from pi_dashboard.pi_templates import STANDARD_PI_IDS
from pi_dashboard.resolver import coerce_int, effective_unit_id, ordered_templates

logger = logging.getLogger(__name__)

MASTER_COLUMNS = ['PI ID', 'PI Title', 'Activity ID', 'Activity', INDICATOR_COLUMN] + MONTHS
PI_COLUMNS = ['Activity', INDICATOR_COLUMN] + MONTHS + ['Total']
TITLE_COLUMNS = ('PI Title', 'Strategic Priority', 'Strategic Goal')

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ── Export ───────────────────────────────────────────────────────────

def master_rows(templates) -> list:
    rows = []
    for template in templates:
        for act in template.activities:
            row = {
                'PI ID': template.id,
                'PI Title': template.title,
                'Activity ID': act.id,
                'Activity': act.activity,
                INDICATOR_COLUMN: act.indicator,
            }
            for i, month in enumerate(MONTHS):
                row[month] = act.months[i].value
            rows.append(row)
    return rows


def pi_rows(template) -> list:
    rows = []
    for act in template.activities:
        row = {'Activity': act.activity, INDICATOR_COLUMN: act.indicator}
        for i, month in enumerate(MONTHS):
            row[month] = act.months[i].value
        row['Total'] = act.total
        rows.append(row)
    return rows


def _write_sheet(ws, columns, rows):
    # Header styling
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    for col, header in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = thin_border

    for row_idx, row in enumerate(rows, 2):
        for col_idx, header in enumerate(columns, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=row.get(header))
            cell.border = thin_border

    # Adjust column widths
    for col in ws.columns:
        max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_length + 2, 50)


def build_workbook(sheet_title: str, columns, rows) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    # Sheet titles are capped at 31 characters
    ws.title = sheet_title[:31]
    _write_sheet(ws, columns, rows)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def build_master_workbook(templates) -> io.BytesIO:
    return build_workbook("Master Template", MASTER_COLUMNS, master_rows(templates))


def build_pi_workbook(template) -> io.BytesIO:
    return build_workbook(template.id, PI_COLUMNS, pi_rows(template))


def master_filename(unit, year, board: str = BOARD_ACCOMPLISHMENT) -> str:
    year = str(year)
    if year == '2026':
        suffix = 'ACCOMPLISHMENT_2026' if board == BOARD_ACCOMPLISHMENT else 'TARGET_OUTLOOK_2026'
        clean_name = '_'.join(unit.name.upper().split())
        return f"{clean_name}_{suffix}.xlsx"
    return f"Master_Template_{year}.xlsx"


def pi_filename(unit, template_id: str, year) -> str:
    return f"{unit.name}_{template_id}_{year}.xlsx"


# ── Import ───────────────────────────────────────────────────────────

def read_rows(content: bytes) -> list:
    """
    First sheet of an uploaded workbook as a list of row dicts, blanks as None.
    Raises ValueError when the upload is not a readable workbook.
    """
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
    except Exception as e:
        raise ValueError(f"Unreadable workbook: {e}") from e
    df = df.where(pd.notnull(df), None)
    return df.to_dict(orient='records')


def import_labels_from_workbook(store, year, unit, template_id: str, content: bytes) -> ImportResult:
    try:
        rows = read_rows(content)
    except ValueError as e:
        logger.warning("Label import rejected: %s", e)
        return ImportResult(False, message='Import failed, check template format')
    return import_labels_from_table(store, year, unit, template_id, rows)


def _first_text(row, columns) -> str:
    for col in columns:
        text = cell_text(row.get(col))
        if text:
            return text
    return ''


def import_master_template(store, year, unit, rows) -> ImportResult:
    """
    Load a master template into the unit's scope: labels, titles, values and
    row lists per PI. PI ids the year does not define become custom templates
    visible to this unit only, and standard PIs missing from the file are
    hidden for the unit in that year.
    """
    year = str(year)
    scope_id = effective_unit_id(store, unit)
    shared_ids = {t.id for t in ordered_templates(store, year)}

    found = []
    activity_map = {}
    custom_map = {}
    updated = 0
    skipped = 0

    for row in rows:
        if not isinstance(row, Mapping):
            skipped += 1
            continue
        pi_id = cell_text(row.get('PI ID')).upper()
        activity_id = cell_text(row.get('Activity ID'))
        if not pi_id or not activity_id:
            skipped += 1
            continue

        activity_name = _first_text(row, ACTIVITY_COLUMNS)
        indicator_name = cell_text(row.get(INDICATOR_COLUMN))
        title = _first_text(row, TITLE_COLUMNS) or f"Performance Indicator {pi_id}"

        if pi_id not in found:
            found.append(pi_id)
        ids = activity_map.setdefault(pi_id, [])
        if activity_id not in ids:
            ids.append(activity_id)

        if activity_name:
            store.set(OverrideKey.activity_name(store.board, year, pi_id, activity_id, scope_id), activity_name)
        if indicator_name:
            store.set(OverrideKey.indicator_name(store.board, year, pi_id, activity_id, scope_id), indicator_name)
        store.set(OverrideKey.pi_title(store.board, year, pi_id, scope_id), title)

        if pi_id not in shared_ids:
            definition = custom_map.setdefault(pi_id, {'id': pi_id, 'title': title, 'activities': []})
            if activity_id not in [a['id'] for a in definition['activities']]:
                definition['activities'].append({
                    'id': activity_id,
                    'name': activity_name,
                    'indicator': indicator_name,
                    'defaults': [0] * MONTHS_PER_YEAR,
                })

        for month_idx, month in enumerate(MONTHS):
            value = coerce_int(row.get(month))
            set_accomplishment(store, year, unit, pi_id, activity_id, month_idx, value or 0)
        updated += 1

    if not found:
        return ImportResult(False, updated, skipped, 'Import failed, check template format')

    for pi_id, activity_ids in activity_map.items():
        store.set(OverrideKey.activity_ids(store.board, year, pi_id, scope_id), activity_ids)

    if custom_map:
        custom_key = OverrideKey.custom_templates(store.board, year, scope_id)
        definitions = store.get(custom_key, [])
        if not isinstance(definitions, list):
            definitions = []
        # Re-imported ids replace their earlier definition
        definitions = [d for d in definitions if not (isinstance(d, dict) and d.get('id') in custom_map)]
        definitions.extend(custom_map.values())
        store.set(custom_key, definitions)

    hidden = [pi_id for pi_id in STANDARD_PI_IDS if pi_id not in found]
    store.set(OverrideKey.hidden_for_unit(store.board, year, scope_id), hidden)

    logger.info("Imported %d master rows for %s (%s), %d skipped", updated, unit.id, year, skipped)
    return ImportResult(True, updated, skipped)
