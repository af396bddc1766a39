"""
Mutation API: every operation that writes overrides.

All writes are plain overwrite-or-append on one key; nothing merges. Unit
mutations write through the unit's effective scope, so a sub-admin editing
the target board edits the shared super-admin sheet. Authority is not
checked here; callers gate each call with roles.authorize().
"""
import logging
import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pi_dashboard.config import (
    MONTHS_PER_YEAR, NEW_ACTIVITY_NAME, NEW_INDICATOR_NAME, NEW_TEMPLATE_TITLE, REPORTING_YEARS,
)
from pi_dashboard.keys import OverrideKey
from pi_dashboard.pi_templates import ActivityTemplate, PITemplate
from pi_dashboard.policies import HIDDEN_GROUPS
from pi_dashboard.resolver import (
    coerce_int, effective_unit_id, find_template, group_hidden_ids, ordered_templates,
    resolve_activity_ids, resolve_files, unit_hidden_ids,
)

logger = logging.getLogger(__name__)

LABEL_FIELDS = ('activity', 'indicator')
MOVE_STEPS = {'left': -1, 'up': -1, 'right': 1, 'down': 1}
ACTIVITY_COLUMNS = ('Activity', 'Strategic Activity')
INDICATOR_COLUMN = 'Performance Indicator'

_TEMPLATE_NUMBER = re.compile(r'^PI(\d+)$')


class UnknownTemplate(LookupError):
    """No template with this id exists for the year."""


@dataclass
class ImportResult:
    ok: bool
    updated: int = 0
    skipped: int = 0
    message: str = ''

    def to_dict(self) -> dict:
        return {'ok': self.ok, 'updated': self.updated, 'skipped': self.skipped, 'message': self.message}


def _require_template(store, year, template_id: str, unit=None) -> PITemplate:
    scope_id = effective_unit_id(store, unit) if unit is not None else None
    template = find_template(store, year, template_id, scope_id)
    if template is None:
        raise UnknownTemplate(f"No template {template_id} in {year}")
    return template


def _new_activity_id(template_id: str) -> str:
    return f"{template_id.lower()}_{uuid.uuid4().hex[:8]}"


# ── Cell values and attachments ──────────────────────────────────────

def set_accomplishment(store, year, unit, template_id: str, activity_id: str, month: int, value) -> int:
    """Overwrite one cell. Non-numeric input is stored as 0."""
    number = coerce_int(value)
    if number is None:
        number = 0
    key = OverrideKey.accomplishment(store.board, year, effective_unit_id(store, unit),
                                     template_id, activity_id, month)
    store.set(key, number)
    return number


def make_file_descriptor(name: str, url: str, file_type: str = '',
                         file_id: Optional[str] = None, uploaded_at: Optional[str] = None) -> dict:
    return {
        'id': file_id or uuid.uuid4().hex[:9],
        'name': name,
        'url': url,
        'type': file_type,
        'uploaded_at': uploaded_at or datetime.now(timezone.utc).isoformat(),
    }


def set_files(store, year, unit, template_id: str, activity_id: str, month: int, files: list) -> bool:
    key = OverrideKey.files(store.board, year, effective_unit_id(store, unit), template_id, activity_id, month)
    return store.set(key, list(files))


def add_files(store, year, unit, template_id: str, activity_id: str, month: int, files: list) -> list:
    """Append descriptors to the cell's attachment list."""
    scope_id = effective_unit_id(store, unit)
    updated = resolve_files(store, year, scope_id, template_id, activity_id, month) + list(files)
    set_files(store, year, unit, template_id, activity_id, month, updated)
    return updated


def remove_file(store, year, unit, template_id: str, activity_id: str, month: int, file_id: str) -> list:
    scope_id = effective_unit_id(store, unit)
    existing = resolve_files(store, year, scope_id, template_id, activity_id, month)
    remaining = [f for f in existing if f.get('id') != file_id]
    if len(remaining) != len(existing):
        set_files(store, year, unit, template_id, activity_id, month, remaining)
    return remaining


# ── Labels ───────────────────────────────────────────────────────────

def rename_label(store, year, unit, template_id: str, activity_id: str, field: str, text: str) -> bool:
    if field not in LABEL_FIELDS:
        raise ValueError(f"Unknown label field: {field}")
    factory = OverrideKey.activity_name if field == 'activity' else OverrideKey.indicator_name
    key = factory(store.board, year, template_id, activity_id, unit_id=effective_unit_id(store, unit))
    return store.set(key, text)


def rename_title(store, year, unit, template_id: str, text: str) -> bool:
    key = OverrideKey.pi_title(store.board, year, template_id, unit_id=effective_unit_id(store, unit))
    return store.set(key, text)


def rename_tab_label(store, year, unit, template_id: str, text: str) -> bool:
    key = OverrideKey.tab_label(store.board, year, template_id, unit_id=effective_unit_id(store, unit))
    return store.set(key, text)


# ── Structure ────────────────────────────────────────────────────────

def _next_template_id(existing_ids) -> str:
    numbers = [int(m.group(1)) for m in (_TEMPLATE_NUMBER.match(i) for i in existing_ids) if m]
    return f"PI{max(numbers, default=0) + 1}"


def add_template(store, year, title: str = NEW_TEMPLATE_TITLE) -> PITemplate:
    """Create a custom template with one placeholder row, appended last."""
    year = str(year)
    current_ids = [t.id for t in ordered_templates(store, year)]
    template_id = _next_template_id(current_ids)
    placeholder = ActivityTemplate(_new_activity_id(template_id), NEW_ACTIVITY_NAME, NEW_INDICATOR_NAME,
                                   (0,) * MONTHS_PER_YEAR)
    template = PITemplate(template_id, title, (placeholder,), custom=True)

    custom_key = OverrideKey.custom_templates(store.board, year)
    definitions = store.get(custom_key, [])
    if not isinstance(definitions, list):
        logger.warning("Replacing malformed custom template list for %s", year)
        definitions = []
    definitions.append(template.to_dict())
    store.set(custom_key, definitions)
    store.set(OverrideKey.pi_order(store.board, year), current_ids + [template_id])

    logger.info("Added template %s for %s", template_id, year)
    return template


def add_activity_row(store, year, unit, template_id: str) -> str:
    """Append a fresh activity id to the unit's row list; returns the id."""
    template = _require_template(store, year, template_id, unit)
    scope_id = effective_unit_id(store, unit)
    activity_ids = resolve_activity_ids(store, year, scope_id, template)
    activity_id = _new_activity_id(template_id)
    activity_ids.append(activity_id)
    store.set(OverrideKey.activity_ids(store.board, year, template_id, unit_id=scope_id), activity_ids)
    return activity_id


def remove_activity_row(store, year, unit, template_id: str, activity_id: str) -> bool:
    template = _require_template(store, year, template_id, unit)
    scope_id = effective_unit_id(store, unit)
    activity_ids = resolve_activity_ids(store, year, scope_id, template)
    if activity_id not in activity_ids:
        return False
    activity_ids.remove(activity_id)
    store.set(OverrideKey.activity_ids(store.board, year, template_id, unit_id=scope_id), activity_ids)
    return True


def reorder_templates(store, year, template_id: str, direction: str) -> bool:
    """Swap a template with its neighbour and persist the whole order."""
    step = MOVE_STEPS.get(direction)
    if step is None:
        raise ValueError(f"Unknown direction: {direction}")
    order = [t.id for t in ordered_templates(store, year)]
    if template_id not in order:
        return False
    index = order.index(template_id)
    target = index + step
    if target < 0 or target >= len(order):
        return False
    order[index], order[target] = order[target], order[index]
    store.set(OverrideKey.pi_order(store.board, year), order)
    return True


# ── Hidden sets ──────────────────────────────────────────────────────

def hide_template_for_unit(store, year, unit, template_id: str) -> list:
    hidden = unit_hidden_ids(store, unit, year)
    if template_id not in hidden:
        hidden.append(template_id)
        store.set(OverrideKey.hidden_for_unit(store.board, year, effective_unit_id(store, unit)), hidden)
    return hidden


def unhide_all_for_unit(store, year, unit) -> bool:
    return store.remove(OverrideKey.hidden_for_unit(store.board, year, effective_unit_id(store, unit)))


def hide_template_for_group(store, year, group: str, template_id: str) -> list:
    if group not in HIDDEN_GROUPS:
        raise ValueError(f"Unknown hidden group: {group}")
    hidden = group_hidden_ids(store, group, year)
    if template_id not in hidden:
        hidden.append(template_id)
        store.set(OverrideKey.hidden_for_group(store.board, year, group), hidden)
    return hidden


def unhide_all_for_group(store, year, group: str) -> bool:
    if group not in HIDDEN_GROUPS:
        raise ValueError(f"Unknown hidden group: {group}")
    return store.remove(OverrideKey.hidden_for_group(store.board, year, group))


# ── Bulk data ────────────────────────────────────────────────────────

def _clear_cells(store, year, scope_id: str, template, include_files: bool) -> int:
    cleared = 0
    for activity_id in resolve_activity_ids(store, year, scope_id, template):
        for month in range(MONTHS_PER_YEAR):
            keys = [OverrideKey.accomplishment(store.board, year, scope_id, template.id, activity_id, month)]
            if include_files:
                keys.append(OverrideKey.files(store.board, year, scope_id, template.id, activity_id, month))
            for key in keys:
                if store.has(key):
                    store.remove(key)
                    cleared += 1
    return cleared


def clear_unit_template_data(store, year, unit, template_id: str) -> int:
    """Drop the unit's monthly values under one template. Labels and files stay."""
    template = _require_template(store, year, template_id, unit)
    return _clear_cells(store, str(year), effective_unit_id(store, unit), template, include_files=False)


def reset_unit_data(store, unit, years=REPORTING_YEARS) -> int:
    """Wipe every value and attachment the unit holds across the given years."""
    scope_id = effective_unit_id(store, unit)
    cleared = 0
    for year in years:
        for template in ordered_templates(store, year, scope_id):
            cleared += _clear_cells(store, str(year), scope_id, template, include_files=True)
    logger.info("Reset %d cells for unit %s", cleared, unit.id)
    return cleared


# ── Label import ─────────────────────────────────────────────────────

def cell_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value).strip()


def _label_cells(row):
    """(activity, indicator) texts from a row, or None when the row has no usable shape."""
    if isinstance(row, Mapping):
        if not any(col in row for col in ACTIVITY_COLUMNS + (INDICATOR_COLUMN,)):
            return None
        activity = ''
        for col in ACTIVITY_COLUMNS:
            activity = cell_text(row.get(col))
            if activity:
                break
        return activity, cell_text(row.get(INDICATOR_COLUMN))
    if isinstance(row, (list, tuple)) and len(row) >= 2:
        return cell_text(row[0]), cell_text(row[1])
    return None


def import_labels_from_table(store, year, unit, template_id: str, rows) -> ImportResult:
    """
    Row i relabels the unit's i-th resolved activity. Empty cells keep the
    existing label; rows past the last activity are ignored; malformed rows
    are skipped individually.
    """
    template = _require_template(store, year, template_id, unit)
    scope_id = effective_unit_id(store, unit)
    activity_ids = resolve_activity_ids(store, year, scope_id, template)

    updated = 0
    skipped = 0
    considered = 0
    for index, row in enumerate(rows):
        if index >= len(activity_ids):
            break
        considered += 1
        cells = _label_cells(row)
        if cells is None:
            skipped += 1
            continue
        activity, indicator = cells
        activity_id = activity_ids[index]
        if activity:
            store.set(OverrideKey.activity_name(store.board, year, template_id, activity_id, scope_id), activity)
            updated += 1
        if indicator:
            store.set(OverrideKey.indicator_name(store.board, year, template_id, activity_id, scope_id), indicator)
            updated += 1

    ok = not (considered and skipped == considered)
    message = '' if ok else 'Import failed, check template format'
    return ImportResult(ok, updated, skipped, message)
