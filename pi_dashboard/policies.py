"""
Business-rule tables for override resolution.

Every special case the dashboards honour lives here as a named table entry
rather than as a branch inside the resolver, so each rule can be audited and
tested on its own. Entries marked "confirm" are known exceptions carried over
from production data and still await product-owner sign-off.
"""
from typing import Optional

from pi_dashboard.config import BOARD_TARGET
from pi_dashboard.roles import ROLE_REGIONAL_HQ, ROLE_STATION, ROLE_SUB_ADMIN
from pi_dashboard.units import MOBILE_FORCE_NAME, SUPER_ADMIN_ID

# ── Zero-default policy ──────────────────────────────────────────────
# (role, year) pairs whose cells without a stored value read 0 instead of
# the template's literal default: new units start from a clean baseline.

CLEAN_BASELINE_YEARS = frozenset(['2023', '2024', '2025', '2026'])

# confirm: regional units carry one extra clean-baseline year
REGIONAL_HQ_EXTRA_ZERO_YEARS = frozenset(['2025'])

ZERO_DEFAULT_POLICY = frozenset(
    [(ROLE_STATION, year) for year in CLEAN_BASELINE_YEARS]
    + [(ROLE_REGIONAL_HQ, year) for year in CLEAN_BASELINE_YEARS | REGIONAL_HQ_EXTRA_ZERO_YEARS]
)

# ── Station group hidden sets ────────────────────────────────────────

HIDDEN_GROUP_STATIONS = 'stations'
HIDDEN_GROUP_MOBILE_FORCE = 'mobile-force'
HIDDEN_GROUPS = [HIDDEN_GROUP_STATIONS, HIDDEN_GROUP_MOBILE_FORCE]

HIDDEN_GROUP_BY_UNIT_NAME = {
    MOBILE_FORCE_NAME: HIDDEN_GROUP_MOBILE_FORCE,
}
DEFAULT_HIDDEN_GROUP = HIDDEN_GROUP_STATIONS

# Years where station views are fully unit-scoped (no group filtering)
INDEPENDENT_STATION_YEARS = frozenset(['2026'])

# ── Forced visibility ────────────────────────────────────────────────

# confirm: templates a unit always sees, whatever its hidden sets say
ALWAYS_VISIBLE_BY_UNIT_NAME = {
    'CHQ CIU': frozenset(['PI13', 'PI14', 'PI22']),
}

# confirm: (unit name, year) pairs that ignore hidden sets entirely
FORCED_VISIBLE_UNIT_YEARS = frozenset([
    ('CHQ TPU', '2026'),
])

# ── Shared sheets ────────────────────────────────────────────────────

# (board, role) pairs that read and write through another unit's scope
EFFECTIVE_UNIT_BY_BOARD_ROLE = {
    (BOARD_TARGET, ROLE_SUB_ADMIN): SUPER_ADMIN_ID,
}


def uses_zero_default(role: str, year) -> bool:
    return (role, str(year)) in ZERO_DEFAULT_POLICY


def hidden_group_for(unit) -> Optional[str]:
    """Group hidden-set key for a station; other roles have none."""
    if unit.role != ROLE_STATION:
        return None
    return HIDDEN_GROUP_BY_UNIT_NAME.get(unit.name, DEFAULT_HIDDEN_GROUP)


def applies_group_hidden_set(unit, year) -> bool:
    return unit.role == ROLE_STATION and str(year) not in INDEPENDENT_STATION_YEARS


def is_forced_visible(unit, year, template_id: str) -> bool:
    if (unit.name, str(year)) in FORCED_VISIBLE_UNIT_YEARS:
        return True
    return template_id in ALWAYS_VISIBLE_BY_UNIT_NAME.get(unit.name, ())


def effective_unit_id(board: str, unit) -> str:
    return EFFECTIVE_UNIT_BY_BOARD_ROLE.get((board, unit.role), unit.id)
