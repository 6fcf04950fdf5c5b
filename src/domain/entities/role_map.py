"""
Role Map Column Type

RoleMapType keeps the role map typed as ``Dict[RoleScope, str]`` on the Python
side while persisting it as a portable JSON object keyed by scope id.
"""

from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator

from .enums import RoleScope


class RoleMapType(TypeDecorator):
    """Role map stored as JSON, e.g. ``{RoleScope.api: "OWNER"}`` <-> ``{"3": "OWNER"}``"""

    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: Optional[Dict[Any, str]], dialect
    ) -> Optional[Dict[str, str]]:
        if value is None:
            return None
        return {str(RoleScope(int(scope)).value): name for scope, name in value.items()}

    def process_result_value(
        self, value: Optional[Dict[str, str]], dialect
    ) -> Optional[Dict[RoleScope, str]]:
        if value is None:
            return None
        return {RoleScope(int(scope)): name for scope, name in value.items()}

    @property
    def python_type(self) -> type:
        return dict
