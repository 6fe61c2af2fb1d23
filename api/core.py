"""
API Core - Shared router configuration
"""
from dataclasses import dataclass
from typing import Callable


@dataclass
class RouterConfig:
    """Configuration object for router setup - avoids passing many arguments"""
    get_current_user: Callable
    get_optional_user: Callable
    require_role: Callable

    def role(self, *roles: str) -> Callable:
        """Shorthand for require_role"""
        return self.require_role(*roles)
