"""
Override resolution: builds a unit's effective PI view by layering
unit-scoped overrides over year-wide overrides over the template registry.

Every lookup goes through first_present() with an explicit precedence list,
so no kind can grow its own fallback rules. Stored values that fail their
kind's validator are logged and skipped; resolution never raises on bad
persisted state.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from pi_dashboard import policies
from pi_dashboard.config import MONTHS_PER_YEAR, NEW_ACTIVITY_NAME, NEW_INDICATOR_NAME
from pi_dashboard.keys import OverrideKey
from pi_dashboard.pi_templates import (
    PITemplate, get_base_templates, is_percentage_template, template_from_dict,
)

logger = logging.getLogger(__name__)

_MISSING = object()
_INT_PREFIX = re.compile(r'^\s*[-+]?\d+')


# ── Resolved view types ──────────────────────────────────────────────

@dataclass
class MonthCell:
    value: int
    files: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'value': self.value, 'files': list(self.files)}


@dataclass
class ResolvedActivity:
    id: str
    activity: str
    indicator: str
    months: list
    total: int

    @property
    def values(self) -> list:
        return [cell.value for cell in self.months]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'activity': self.activity,
            'indicator': self.indicator,
            'months': [cell.to_dict() for cell in self.months],
            'total': self.total,
        }


@dataclass
class ResolvedTemplate:
    id: str
    title: str
    tab_label: str
    activities: list
    is_percentage: bool = False
    editable: bool = False
    consolidated: bool = False

    @property
    def column_totals(self) -> list:
        return [
            combine((act.months[month].value for act in self.activities), self.is_percentage)
            for month in range(MONTHS_PER_YEAR)
        ]

    @property
    def grand_total(self) -> int:
        return combine((act.total for act in self.activities), self.is_percentage)

    def activity(self, activity_id: str) -> Optional[ResolvedActivity]:
        for act in self.activities:
            if act.id == activity_id:
                return act
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'tab_label': self.tab_label,
            'is_percentage': self.is_percentage,
            'editable': self.editable,
            'consolidated': self.consolidated,
            'activities': [act.to_dict() for act in self.activities],
            'column_totals': self.column_totals,
            'grand_total': self.grand_total,
        }


# ── Arithmetic ───────────────────────────────────────────────────────

def round_half_up(value: float) -> int:
    """Nearest-integer rounding with halves going up."""
    return int(math.floor(value + 0.5))


def combine(values, percentage: bool) -> int:
    """Sum, or rounded average for percentage-class templates."""
    values = list(values)
    if not values:
        return 0
    if percentage:
        return round_half_up(sum(values) / len(values))
    return sum(values)


# ── Validators ───────────────────────────────────────────────────────

def coerce_int(value) -> Optional[int]:
    """
    Integer reading of a stored or submitted value: ints as-is, floats
    truncated, strings by their leading integer. None when unreadable.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _INT_PREFIX.match(value)
        return int(match.group(0)) if match else None
    return None


def _is_label(value) -> bool:
    return isinstance(value, str) and value.strip() != ''


def _is_id_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _is_int_like(value) -> bool:
    return coerce_int(value) is not None


def _is_file_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(item, dict) and 'id' in item for item in value)


def first_present(store, keys, validate: Optional[Callable] = None, default=None):
    """
    Walk keys in precedence order and return the first stored value that
    passes validate. Malformed values are logged and skipped.
    """
    for key in keys:
        value = store.get(key, _MISSING)
        if value is _MISSING:
            continue
        if validate is None or validate(value):
            return value
        logger.warning("Malformed %s override at %s, falling back", key.kind.value, key)
    return default


def _layered(factory: Callable, unit_id: Optional[str]) -> list:
    """Unit-scoped key first (when there is a unit), then the year-wide key."""
    keys = [factory(unit_id)] if unit_id else []
    keys.append(factory(None))
    return keys


# ── Template set ─────────────────────────────────────────────────────

def effective_unit_id(store, unit) -> str:
    return policies.effective_unit_id(store.board, unit)


def _custom_definitions(store, key) -> list:
    raw = first_present(store, [key], lambda v: isinstance(v, list), [])
    templates = []
    for entry in raw:
        try:
            templates.append(template_from_dict(entry))
        except ValueError:
            logger.warning("Skipping malformed custom template for %s: %r", key.year, entry)
    return templates


def load_custom_templates(store, year, unit_id: Optional[str] = None) -> list:
    """Custom templates for the year, followed by the ones only unit_id imported."""
    templates = _custom_definitions(store, OverrideKey.custom_templates(store.board, year))
    if unit_id:
        templates += _custom_definitions(store, OverrideKey.custom_templates(store.board, year, unit_id))
    return templates


def stored_order(store, year) -> list:
    return first_present(store, [OverrideKey.pi_order(store.board, year)], _is_id_list, [])


def ordered_templates(store, year, unit_id: Optional[str] = None) -> list:
    """
    Base templates plus custom ones, sorted by the stored order list.
    With unit_id, that unit's own imported templates join the set.
    """
    year = str(year)
    templates = get_base_templates(year)
    known = {t.id for t in templates}
    for custom in load_custom_templates(store, year, unit_id):
        if custom.id in known:
            logger.warning("Custom template %s shadows an existing id, ignored", custom.id)
            continue
        known.add(custom.id)
        templates.append(custom)

    order = stored_order(store, year)
    if order:
        position = {}
        for idx, template_id in enumerate(order):
            position.setdefault(template_id, idx)
        # Stable sort: unlisted templates trail in their original order
        templates.sort(key=lambda t: position.get(t.id, len(order)))
    return templates


def find_template(store, year, template_id: str, unit_id: Optional[str] = None) -> Optional[PITemplate]:
    for template in ordered_templates(store, year, unit_id):
        if template.id == template_id:
            return template
    return None


# ── Per-kind lookups ─────────────────────────────────────────────────

def resolve_title(store, year, unit_id, template: PITemplate) -> str:
    keys = _layered(lambda owner: OverrideKey.pi_title(store.board, year, template.id, owner), unit_id)
    return first_present(store, keys, _is_label, template.title)


def resolve_tab_label(store, year, unit_id, template: PITemplate) -> str:
    keys = _layered(lambda owner: OverrideKey.tab_label(store.board, year, template.id, owner), unit_id)
    return first_present(store, keys, _is_label, template.id)


def resolve_activity_ids(store, year, unit_id, template: PITemplate) -> list:
    keys = _layered(lambda owner: OverrideKey.activity_ids(store.board, year, template.id, owner), unit_id)
    return list(first_present(store, keys, _is_id_list, template.activity_ids))


def resolve_activity_labels(store, year, unit_id, template: PITemplate, activity_id: str):
    base = template.activity(activity_id)
    name_keys = _layered(
        lambda owner: OverrideKey.activity_name(store.board, year, template.id, activity_id, owner), unit_id)
    indicator_keys = _layered(
        lambda owner: OverrideKey.indicator_name(store.board, year, template.id, activity_id, owner), unit_id)
    name = first_present(store, name_keys, _is_label, base.name if base else NEW_ACTIVITY_NAME)
    indicator = first_present(store, indicator_keys, _is_label, base.indicator if base else NEW_INDICATOR_NAME)
    return name, indicator


def default_value(template: PITemplate, activity_id: str, month: int, role: str, year) -> int:
    """Value of a cell nobody has written yet."""
    if policies.uses_zero_default(role, year):
        return 0
    base = template.activity(activity_id)
    return base.defaults[month] if base else 0


def resolve_accomplishment(store, year, unit, template: PITemplate, activity_id: str, month: int,
                           role: Optional[str] = None) -> int:
    key = OverrideKey.accomplishment(store.board, year, effective_unit_id(store, unit),
                                     template.id, activity_id, month)
    stored = first_present(store, [key], _is_int_like)
    if stored is not None:
        return coerce_int(stored)
    return default_value(template, activity_id, month, role or unit.role, year)


def resolve_files(store, year, unit_id: str, template_id: str, activity_id: str, month: int) -> list:
    key = OverrideKey.files(store.board, year, unit_id, template_id, activity_id, month)
    return list(first_present(store, [key], _is_file_list, []))


# ── Hidden sets ──────────────────────────────────────────────────────

def unit_hidden_ids(store, unit, year) -> list:
    key = OverrideKey.hidden_for_unit(store.board, year, effective_unit_id(store, unit))
    return list(first_present(store, [key], _is_id_list, []))


def group_hidden_ids(store, group: str, year) -> list:
    return list(first_present(store, [OverrideKey.hidden_for_group(store.board, year, group)], _is_id_list, []))


def hidden_template_ids(store, unit, year) -> set:
    """Unit hidden set, plus the station group set where it applies."""
    hidden = set(unit_hidden_ids(store, unit, year))
    if policies.applies_group_hidden_set(unit, year):
        hidden.update(group_hidden_ids(store, policies.hidden_group_for(unit), year))
    return hidden


def visible_templates(store, year, unit, templates) -> list:
    hidden = hidden_template_ids(store, unit, year)
    return [t for t in templates
            if t.id not in hidden or policies.is_forced_visible(unit, year, t.id)]


# ── Resolution ───────────────────────────────────────────────────────

def resolve_template(store, year, unit, template: PITemplate, role: Optional[str] = None) -> ResolvedTemplate:
    year = str(year)
    role = role or unit.role
    scope_id = effective_unit_id(store, unit)
    percentage = is_percentage_template(template.id)

    activities = []
    for activity_id in resolve_activity_ids(store, year, scope_id, template):
        name, indicator = resolve_activity_labels(store, year, scope_id, template, activity_id)
        months = [
            MonthCell(
                resolve_accomplishment(store, year, unit, template, activity_id, month, role),
                resolve_files(store, year, scope_id, template.id, activity_id, month),
            )
            for month in range(MONTHS_PER_YEAR)
        ]
        activities.append(ResolvedActivity(
            activity_id, name, indicator, months,
            combine((cell.value for cell in months), percentage),
        ))

    return ResolvedTemplate(
        id=template.id,
        title=resolve_title(store, year, scope_id, template),
        tab_label=resolve_tab_label(store, year, scope_id, template),
        activities=activities,
        is_percentage=percentage,
    )


def resolve_templates(store, year, unit, role: Optional[str] = None, include_hidden: bool = False) -> list:
    """
    Effective PI view for one unit: ordered templates with unit/global/base
    labels, activity rows and monthly values. Hidden templates are dropped
    unless include_hidden is set.
    """
    year = str(year)
    templates = ordered_templates(store, year, effective_unit_id(store, unit))
    if not include_hidden:
        templates = visible_templates(store, year, unit, templates)
    return [resolve_template(store, year, unit, template, role) for template in templates]
