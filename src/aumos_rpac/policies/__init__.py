"""Policy units and their YAML parser."""
from __future__ import annotations

from aumos_rpac.policies.parser import PolicyParser, TablePolicy
from aumos_rpac.policies.unit import (
    STANDARD_ACTIONS,
    ActionKind,
    ActionSpec,
    PolicyUnit,
    normalize_roles,
)

__all__ = [
    "STANDARD_ACTIONS",
    "ActionKind",
    "ActionSpec",
    "PolicyParser",
    "PolicyUnit",
    "TablePolicy",
    "normalize_roles",
]
