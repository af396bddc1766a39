"""
PI dashboard routes: resolved views and every override mutation.
"""
import re
from typing import Optional

from fastapi import APIRouter, Request, Form
from fastapi.responses import JSONResponse

from pi_dashboard import mutations
from pi_dashboard.aggregation import (
    DashboardScope, is_consolidated_view, resolve_consolidated, resolve_view,
)
from pi_dashboard.config import DEFAULT_YEAR, MONTHS_PER_YEAR, NEW_TEMPLATE_TITLE, REPORTING_YEARS
from pi_dashboard.dependencies import guard, require_admin, resolve_request, get_board, get_store
from pi_dashboard.policies import HIDDEN_GROUPS
from pi_dashboard.resolver import effective_unit_id, find_template
from pi_dashboard.roles import (
    ACTION_EDIT_STRUCTURE, ACTION_EDIT_VALUES, can_access_files, get_role_display_name,
)
from pi_dashboard.units import UNITS, units_with_role

router = APIRouter()

_YEAR = re.compile(r'^\d{4}$')


def _bad_request(message: str):
    return JSONResponse({"error": message}, status_code=400)


def _not_found(message: str):
    return JSONResponse({"error": message}, status_code=404)


def _parse_scope(raw: Optional[str]) -> Optional[DashboardScope]:
    try:
        return DashboardScope((raw or DashboardScope.ALL_UNITS.value).upper())
    except ValueError:
        return None


def _check_template(store, year: str, template_id: str, unit):
    """Validate year and template as the unit sees them; returns an error response or None."""
    if not _YEAR.match(year):
        return _bad_request("Invalid year")
    if find_template(store, year, template_id, effective_unit_id(store, unit)) is None:
        return _not_found("Template not found")
    return None


def _check_cell(store, year: str, template_id: str, month: int, unit):
    if not 0 <= month < MONTHS_PER_YEAR:
        return _bad_request("Month must be between 0 and 11")
    return _check_template(store, year, template_id, unit)


def _view_payload(year, board, subject, templates, show_files: bool) -> dict:
    payload = []
    for template in templates:
        data = template.to_dict()
        if not show_files:
            for act in data['activities']:
                for cell in act['months']:
                    cell['files'] = []
        payload.append(data)
    return {
        "year": year,
        "board": board,
        "subject": subject.to_dict(),
        "consolidated": any(t.consolidated for t in templates),
        "templates": payload,
    }


# ============================================================
# Read path
# ============================================================

@router.get("/units")
async def list_units(request: Request, role: Optional[str] = None):
    """Unit roster, optionally filtered by role."""
    roster = units_with_role(role.upper()) if role else UNITS
    return JSONResponse({
        "units": [dict(unit.to_dict(), role_display=get_role_display_name(unit.role)) for unit in roster]
    })


@router.get("/years")
async def list_years(request: Request):
    return JSONResponse({"years": REPORTING_YEARS, "default": DEFAULT_YEAR})


@router.get("/{year}/view")
async def get_view(request: Request, year: str, subject_id: Optional[str] = None, scope: Optional[str] = None):
    """Resolved dashboard for subject (defaults to the caller)."""
    actor, subject, store, error = resolve_request(request, subject_id)
    if error:
        return error
    if not _YEAR.match(year):
        return _bad_request("Invalid year")
    dashboard_scope = _parse_scope(scope)
    if dashboard_scope is None:
        return _bad_request("Unknown scope")

    templates = resolve_view(store, year, actor, subject, dashboard_scope)
    return JSONResponse(_view_payload(year, store.board, subject, templates, can_access_files(actor, subject)))


@router.get("/{year}/consolidated")
async def get_consolidated(request: Request, year: str, scope: Optional[str] = None):
    """Explicit roll-up across a unit roster. Admins only."""
    unit, error = require_admin(request)
    if error:
        return error
    board = get_board(request)
    if not board:
        return _bad_request("Unknown board")
    if not _YEAR.match(year):
        return _bad_request("Invalid year")
    dashboard_scope = _parse_scope(scope)
    if dashboard_scope is None:
        return _bad_request("Unknown scope")

    store = get_store(board)
    templates = resolve_consolidated(store, year, unit.role, dashboard_scope, viewer=unit)
    payload = _view_payload(year, board, unit, templates, show_files=False)
    payload["scope"] = dashboard_scope.value
    return JSONResponse(payload)


# ============================================================
# Cell values and attachments
# ============================================================

@router.put("/{year}/units/{unit_id}/templates/{template_id}/activities/{activity_id}/months/{month}")
async def put_accomplishment(request: Request, year: str, unit_id: str, template_id: str,
                             activity_id: str, month: int, value: str = Form("")):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_VALUES, is_consolidated_view(actor, subject))
             or _check_cell(store, year, template_id, month, subject))
    if error:
        return error

    stored = mutations.set_accomplishment(store, year, subject, template_id, activity_id, month, value)
    return JSONResponse({"status": "success", "value": stored})


@router.post("/{year}/units/{unit_id}/templates/{template_id}/activities/{activity_id}/months/{month}/files")
async def post_file(request: Request, year: str, unit_id: str, template_id: str, activity_id: str,
                    month: int, name: str = Form(...), url: str = Form(...), type: str = Form("")):
    """Attach an already-uploaded file to a cell."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_VALUES, is_consolidated_view(actor, subject))
             or _check_cell(store, year, template_id, month, subject))
    if error:
        return error

    descriptor = mutations.make_file_descriptor(name, url, type)
    files = mutations.add_files(store, year, subject, template_id, activity_id, month, [descriptor])
    return JSONResponse({"status": "success", "file": descriptor, "files": files})


@router.delete("/{year}/units/{unit_id}/templates/{template_id}/activities/{activity_id}/months/{month}/files/{file_id}")
async def delete_file(request: Request, year: str, unit_id: str, template_id: str, activity_id: str,
                      month: int, file_id: str):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_VALUES, is_consolidated_view(actor, subject))
             or _check_cell(store, year, template_id, month, subject))
    if error:
        return error

    files = mutations.remove_file(store, year, subject, template_id, activity_id, month, file_id)
    return JSONResponse({"status": "success", "files": files})


@router.delete("/{year}/units/{unit_id}/templates/{template_id}/data")
async def delete_template_data(request: Request, year: str, unit_id: str, template_id: str):
    """Clear the unit's monthly values under one template."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_VALUES, is_consolidated_view(actor, subject))
    if error:
        return error

    try:
        cleared = mutations.clear_unit_template_data(store, year, subject, template_id)
    except mutations.UnknownTemplate:
        return _not_found("Template not found")
    return JSONResponse({"status": "success", "cleared": cleared})


@router.post("/units/{unit_id}/reset")
async def reset_unit(request: Request, unit_id: str):
    """Wipe all values and attachments a unit holds. Super admin only."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    cleared = mutations.reset_unit_data(store, subject)
    return JSONResponse({"status": "success", "cleared": cleared})


# ============================================================
# Labels
# ============================================================

@router.put("/{year}/units/{unit_id}/templates/{template_id}/activities/{activity_id}/labels")
async def put_label(request: Request, year: str, unit_id: str, template_id: str, activity_id: str,
                    field: str = Form(...), text: str = Form(...)):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_STRUCTURE)
             or _check_template(store, year, template_id, subject))
    if error:
        return error
    if field not in mutations.LABEL_FIELDS:
        return _bad_request("Field must be 'activity' or 'indicator'")

    mutations.rename_label(store, year, subject, template_id, activity_id, field, text)
    return JSONResponse({"status": "success"})


@router.put("/{year}/units/{unit_id}/templates/{template_id}/title")
async def put_title(request: Request, year: str, unit_id: str, template_id: str, text: str = Form(...)):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_STRUCTURE)
             or _check_template(store, year, template_id, subject))
    if error:
        return error

    mutations.rename_title(store, year, subject, template_id, text)
    return JSONResponse({"status": "success"})


@router.put("/{year}/units/{unit_id}/templates/{template_id}/tab-label")
async def put_tab_label(request: Request, year: str, unit_id: str, template_id: str, text: str = Form(...)):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = (guard(actor, subject, ACTION_EDIT_STRUCTURE)
             or _check_template(store, year, template_id, subject))
    if error:
        return error

    mutations.rename_tab_label(store, year, subject, template_id, text)
    return JSONResponse({"status": "success"})


# ============================================================
# Structure
# ============================================================

@router.post("/{year}/templates")
async def post_template(request: Request, year: str, title: str = Form("")):
    actor, _, store, error = resolve_request(request)
    if error:
        return error
    error = guard(actor, None, ACTION_EDIT_STRUCTURE)
    if error:
        return error
    if not _YEAR.match(year):
        return _bad_request("Invalid year")

    template = mutations.add_template(store, year, title or NEW_TEMPLATE_TITLE)
    return JSONResponse({"status": "success", "template": template.to_dict()})


@router.post("/{year}/templates/{template_id}/move")
async def move_template(request: Request, year: str, template_id: str, direction: str = Form(...)):
    actor, _, store, error = resolve_request(request)
    if error:
        return error
    error = guard(actor, None, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    try:
        moved = mutations.reorder_templates(store, year, template_id, direction)
    except ValueError as e:
        return _bad_request(str(e))
    return JSONResponse({"status": "success", "moved": moved})


@router.post("/{year}/units/{unit_id}/templates/{template_id}/activities")
async def post_activity(request: Request, year: str, unit_id: str, template_id: str):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    try:
        activity_id = mutations.add_activity_row(store, year, subject, template_id)
    except mutations.UnknownTemplate:
        return _not_found("Template not found")
    return JSONResponse({"status": "success", "activity_id": activity_id})


@router.delete("/{year}/units/{unit_id}/templates/{template_id}/activities/{activity_id}")
async def delete_activity(request: Request, year: str, unit_id: str, template_id: str, activity_id: str):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    try:
        removed = mutations.remove_activity_row(store, year, subject, template_id, activity_id)
    except mutations.UnknownTemplate:
        return _not_found("Template not found")
    if not removed:
        return _not_found("Activity not found")
    return JSONResponse({"status": "success"})


# ============================================================
# Hidden sets
# ============================================================

@router.post("/{year}/units/{unit_id}/hidden")
async def post_hidden(request: Request, year: str, unit_id: str, template_id: str = Form(...)):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    if not _YEAR.match(year):
        return _bad_request("Invalid year")

    hidden = mutations.hide_template_for_unit(store, year, subject, template_id)
    return JSONResponse({"status": "success", "hidden": hidden})


@router.delete("/{year}/units/{unit_id}/hidden")
async def delete_hidden(request: Request, year: str, unit_id: str):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    if not _YEAR.match(year):
        return _bad_request("Invalid year")

    mutations.unhide_all_for_unit(store, year, subject)
    return JSONResponse({"status": "success", "hidden": []})


@router.post("/{year}/groups/{group}/hidden")
async def post_group_hidden(request: Request, year: str, group: str, template_id: str = Form(...)):
    actor, _, store, error = resolve_request(request)
    if error:
        return error
    error = guard(actor, None, ACTION_EDIT_STRUCTURE)
    if error:
        return error
    if group not in HIDDEN_GROUPS:
        return _not_found("Group not found")
    if not _YEAR.match(year):
        return _bad_request("Invalid year")

    hidden = mutations.hide_template_for_group(store, year, group, template_id)
    return JSONResponse({"status": "success", "hidden": hidden})


@router.delete("/{year}/groups/{group}/hidden")
async def delete_group_hidden(request: Request, year: str, group: str):
    actor, _, store, error = resolve_request(request)
    if error:
        return error
    error = guard(actor, None, ACTION_EDIT_STRUCTURE)
    if error:
        return error
    if group not in HIDDEN_GROUPS:
        return _not_found("Group not found")
    if not _YEAR.match(year):
        return _bad_request("Invalid year")

    mutations.unhide_all_for_group(store, year, group)
    return JSONResponse({"status": "success", "hidden": []})
