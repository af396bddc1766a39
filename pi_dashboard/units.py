"""
Reporting units: the fixed roster of stations, regional headquarters and
administrators, plus the rosters combined by consolidated views.
"""
from dataclasses import dataclass
from typing import Optional

from pi_dashboard.roles import (
    ROLE_SUPER_ADMIN, ROLE_SUB_ADMIN, ROLE_REGIONAL_HQ, ROLE_STATION,
)


@dataclass(frozen=True)
class Unit:
    id: str
    name: str
    role: str

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name, 'role': self.role}


SUPER_ADMIN_ID = 'sa-1'
SUB_ADMIN_ID = 'sub-1'

CHQ_NAMES = [
    'CHQ CARMU',
    'CHQ CIU',
    'CHQ COU',
    'CHQ Logistics',
    'CHQ CCADU',
    'CHQ CIDMU',
    'CHQ TPU',
    'CHQ WCPD',
    'CHQ CICTMU',
]

STATION_COUNT = 11
MOBILE_FORCE_NAME = 'City Mobile Force Company'


def _station_name(index: int) -> str:
    # The last station slot is the mobile force company
    if index == STATION_COUNT - 1:
        return MOBILE_FORCE_NAME
    return f'Police Station {index + 1}'


UNITS = [
    Unit(SUPER_ADMIN_ID, 'Super Admin', ROLE_SUPER_ADMIN),
    Unit(SUB_ADMIN_ID, 'COCPO CPSMU', ROLE_SUB_ADMIN),
    *[Unit(f'chq-{i + 1}', name, ROLE_REGIONAL_HQ) for i, name in enumerate(CHQ_NAMES)],
    *[Unit(f'st-{i + 1}', _station_name(i), ROLE_STATION) for i in range(STATION_COUNT)],
]

UNITS_BY_ID = {unit.id: unit for unit in UNITS}

REGIONAL_HQ_IDS = [unit.id for unit in UNITS if unit.role == ROLE_REGIONAL_HQ]
STATION_IDS = [unit.id for unit in UNITS if unit.role == ROLE_STATION]

# Canonical unit per administrative role (used when no viewer is given)
ROLE_HOME_UNIT = {
    ROLE_SUPER_ADMIN: SUPER_ADMIN_ID,
    ROLE_SUB_ADMIN: SUB_ADMIN_ID,
}


def get_unit(unit_id: str) -> Optional[Unit]:
    """Look up a unit by id; returns None for unknown ids."""
    if not unit_id:
        return None
    return UNITS_BY_ID.get(unit_id.strip())


def units_with_role(role: str) -> list:
    return [unit for unit in UNITS if unit.role == role]
