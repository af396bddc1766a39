"""
Override keys: a tagged key type covering every kind of scoped fact the
dashboards persist, with an exhaustive, collision-free string form.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pi_dashboard.config import MONTHS_PER_YEAR


class Kind(str, Enum):
    ACTIVITY_NAME = 'activity-name'
    INDICATOR_NAME = 'indicator-name'
    PI_TITLE = 'pi-title'
    TAB_LABEL = 'tab-label'
    ACCOMPLISHMENT = 'accomplishment-value'
    FILES = 'file-list'
    ACTIVITY_IDS = 'activity-id-set'
    PI_ORDER = 'pi-order'
    HIDDEN_PIS = 'hidden-pi-set'
    CUSTOM_PIS = 'custom-pi-definitions'


class Scope(str, Enum):
    GLOBAL = 'global'
    UNIT = 'unit'
    GROUP = 'group'


@dataclass(frozen=True)
class OverrideKey:
    board: str
    kind: Kind
    scope: Scope
    year: Optional[str] = None
    owner: Optional[str] = None
    template_id: Optional[str] = None
    activity_id: Optional[str] = None
    month: Optional[int] = None

    def __post_init__(self):
        if not self.year:
            raise ValueError("Override keys need a year")
        if self.scope == Scope.GLOBAL and self.owner is not None:
            raise ValueError("Global keys cannot carry an owner")
        if self.scope != Scope.GLOBAL and not self.owner:
            raise ValueError(f"{self.scope.value} keys need an owner")
        if self.month is not None and not 0 <= self.month < MONTHS_PER_YEAR:
            raise ValueError(f"Month index out of range: {self.month}")

    def serialize(self) -> str:
        """Encode every field; absent fields become JSON null."""
        return json.dumps([
            self.board,
            self.kind.value,
            self.scope.value,
            self.year,
            self.owner,
            self.template_id,
            self.activity_id,
            self.month,
        ], separators=(',', ':'))

    @classmethod
    def parse(cls, raw: str) -> 'OverrideKey':
        parts = json.loads(raw)
        if not isinstance(parts, list) or len(parts) != 8:
            raise ValueError(f"Not an override key: {raw!r}")
        board, kind, scope, year, owner, template_id, activity_id, month = parts
        return cls(board, Kind(kind), Scope(scope), year, owner, template_id, activity_id, month)

    def __str__(self):
        return self.serialize()

    # -- constructors -------------------------------------------------

    @staticmethod
    def _scoped(unit_id):
        return (Scope.UNIT, unit_id) if unit_id else (Scope.GLOBAL, None)

    @classmethod
    def accomplishment(cls, board, year, unit_id, template_id, activity_id, month):
        return cls(board, Kind.ACCOMPLISHMENT, Scope.UNIT, str(year), unit_id,
                   template_id, activity_id, month)

    @classmethod
    def files(cls, board, year, unit_id, template_id, activity_id, month):
        return cls(board, Kind.FILES, Scope.UNIT, str(year), unit_id,
                   template_id, activity_id, month)

    @classmethod
    def activity_name(cls, board, year, template_id, activity_id, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.ACTIVITY_NAME, scope, str(year), owner, template_id, activity_id)

    @classmethod
    def indicator_name(cls, board, year, template_id, activity_id, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.INDICATOR_NAME, scope, str(year), owner, template_id, activity_id)

    @classmethod
    def pi_title(cls, board, year, template_id, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.PI_TITLE, scope, str(year), owner, template_id)

    @classmethod
    def tab_label(cls, board, year, template_id, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.TAB_LABEL, scope, str(year), owner, template_id)

    @classmethod
    def activity_ids(cls, board, year, template_id, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.ACTIVITY_IDS, scope, str(year), owner, template_id)

    @classmethod
    def pi_order(cls, board, year):
        return cls(board, Kind.PI_ORDER, Scope.GLOBAL, str(year))

    @classmethod
    def custom_templates(cls, board, year, unit_id=None):
        scope, owner = cls._scoped(unit_id)
        return cls(board, Kind.CUSTOM_PIS, scope, str(year), owner)

    @classmethod
    def hidden_for_unit(cls, board, year, unit_id):
        return cls(board, Kind.HIDDEN_PIS, Scope.UNIT, str(year), unit_id)

    @classmethod
    def hidden_for_group(cls, board, year, group):
        return cls(board, Kind.HIDDEN_PIS, Scope.GROUP, str(year), group)
