from dataclasses import dataclass, field

from services.errors import AuthorizationError


@dataclass(frozen=True)
class TenantContext:
    """Who is acting, for which company, and what they may touch.

    Built once per request from the session and handed to every service call.
    """

    company_id: int
    root_company_id: int
    is_parent: bool
    permissions: frozenset = field(default_factory=frozenset)
    user_id: int | None = None

    def can(self, area: str) -> bool:
        return area in self.permissions

    def require(self, area: str, *, parent_only: bool = True) -> None:
        if not self.can(area):
            raise AuthorizationError("You do not have access to this section")
        if parent_only and not self.is_parent:
            raise AuthorizationError("Only the parent company can perform this operation")
