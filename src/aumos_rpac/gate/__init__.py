"""Role-only request gate."""
from __future__ import annotations

from aumos_rpac.gate.role_gate import ROLE_DELIMITER, RoleGate, parse_roles

__all__ = ["ROLE_DELIMITER", "RoleGate", "parse_roles"]
