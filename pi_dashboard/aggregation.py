"""
Consolidated roll-ups across the unit roster for administrative views.
"""
import logging
from enum import Enum
from typing import Optional

from pi_dashboard.config import MONTHS_PER_YEAR
from pi_dashboard.pi_templates import is_percentage_template
from pi_dashboard.resolver import (
    MonthCell, ResolvedActivity, ResolvedTemplate,
    combine, effective_unit_id, ordered_templates, resolve_accomplishment,
    resolve_activity_ids, resolve_activity_labels, resolve_tab_label, resolve_templates,
    resolve_title, round_half_up,
)
from pi_dashboard.roles import ADMIN_ROLES, ROLE_SUB_ADMIN, can_edit_values
from pi_dashboard.units import (
    REGIONAL_HQ_IDS, ROLE_HOME_UNIT, STATION_IDS, SUPER_ADMIN_ID, get_unit,
)

logger = logging.getLogger(__name__)


class DashboardScope(str, Enum):
    ALL_UNITS = 'ALL_UNITS'
    REGIONAL_HQ_ONLY = 'REGIONAL_HQ_ONLY'
    STATION_ONLY = 'STATION_ONLY'


SCOPE_MEMBERS = {
    DashboardScope.ALL_UNITS: STATION_IDS + REGIONAL_HQ_IDS,
    DashboardScope.REGIONAL_HQ_ONLY: list(REGIONAL_HQ_IDS),
    DashboardScope.STATION_ONLY: list(STATION_IDS),
}


def member_units(scope: DashboardScope) -> list:
    return [get_unit(unit_id) for unit_id in SCOPE_MEMBERS[DashboardScope(scope)]]


def is_consolidated_view(viewer, subject) -> bool:
    """Admins looking at themselves or at a sub-admin get the roll-up."""
    return viewer.role in ADMIN_ROLES and (subject.id == viewer.id or subject.role == ROLE_SUB_ADMIN)


def resolve_consolidated(store, year, role: str, scope: DashboardScope = DashboardScope.ALL_UNITS,
                         viewer=None) -> list:
    """
    Sum (or average, for percentage-class templates) every member unit's
    resolved values. Labels and rows come from the viewer's layer; hidden
    sets never apply and nothing is editable.
    """
    year = str(year)
    if role not in ADMIN_ROLES:
        logger.warning("Consolidated view resolved for non-admin role %s", role)
    if viewer is None:
        viewer = get_unit(ROLE_HOME_UNIT.get(role, SUPER_ADMIN_ID))
    scope_id = effective_unit_id(store, viewer)
    members = member_units(scope)

    resolved = []
    for template in ordered_templates(store, year, scope_id):
        percentage = is_percentage_template(template.id)
        activities = []
        for activity_id in resolve_activity_ids(store, year, scope_id, template):
            name, indicator = resolve_activity_labels(store, year, scope_id, template, activity_id)
            months = []
            for month in range(MONTHS_PER_YEAR):
                total = sum(resolve_accomplishment(store, year, member, template, activity_id, month)
                            for member in members)
                if percentage and members:
                    total = round_half_up(total / len(members))
                months.append(MonthCell(total))
            activities.append(ResolvedActivity(
                activity_id, name, indicator, months,
                combine((cell.value for cell in months), percentage),
            ))

        resolved.append(ResolvedTemplate(
            id=template.id,
            title=resolve_title(store, year, scope_id, template),
            tab_label=resolve_tab_label(store, year, scope_id, template),
            activities=activities,
            is_percentage=percentage,
            editable=False,
            consolidated=True,
        ))
    return resolved


def resolve_view(store, year, viewer, subject, scope: DashboardScope = DashboardScope.ALL_UNITS) -> list:
    """
    What viewer sees when opening subject's dashboard: the consolidated
    roll-up when the trigger applies, otherwise subject's own view with
    edit capability set from viewer's authority.
    """
    if is_consolidated_view(viewer, subject):
        return resolve_consolidated(store, year, viewer.role, scope, viewer=subject)

    templates = resolve_templates(store, year, subject)
    editable = can_edit_values(viewer, subject)
    for template in templates:
        template.editable = editable
    return templates
