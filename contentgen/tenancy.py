"""Account context guard.

Every store operation is bounded to one account. An AccountContext is built
at the API edge (or by a trusted caller such as the batch runner) and passed
down explicitly; nothing reads the current account from global state.
"""

from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from contentgen.errors import AccessDenied


class AccountContext(BaseModel):
    """Request-scoped identity: which account, which user."""

    model_config = ConfigDict(frozen=True)

    account_id: UUID
    user_id: Optional[Union[UUID, str]] = None
    is_system_operator: bool = False

    @classmethod
    def system(cls, account_id: UUID) -> "AccountContext":
        """Context for internal callers acting on behalf of one account."""
        return cls(account_id=account_id, user_id="system")


def require_account(
    ctx: Optional[AccountContext],
    account_id: Optional[UUID],
) -> UUID:
    """Return account_id if ctx is allowed to act on it, else AccessDenied."""
    if ctx is None or account_id is None:
        raise AccessDenied("Account context is required")
    if ctx.account_id != account_id:
        raise AccessDenied(
            "Account context does not match the requested account",
            details={"account_id": str(account_id)},
        )
    return account_id


def require_system_operator(ctx: Optional[AccountContext]) -> None:
    """Unfiltered (cross-account) reads are reserved for system operators."""
    if ctx is None or not ctx.is_system_operator:
        raise AccessDenied("System operator privileges are required")
