"""Per-ledger context: roles, system accounts, clock and hooks."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from estate_ledger.config import Settings
from estate_ledger.exceptions import AuthorizationError


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class AdminRole:
    """The single administrative identity, checked on every privileged call."""
    address: str

    def check(self, caller: str, action: str) -> None:
        if caller != self.address:
            raise AuthorizationError(f"Only the admin may {action}", caller=caller)

    def is_admin(self, caller: str) -> bool:
        return caller == self.address


# Called with the executed proposal when it passes; the ledger itself applies no payload.
ProposalExecutor = Callable[[Any], None]


def _noop_executor(proposal: Any) -> None:
    return None


@dataclass
class LedgerContext:
    """Everything a service needs besides the database session."""
    settings: Settings
    admin: AdminRole
    clock: Callable[[], datetime] = utcnow
    proposal_executor: ProposalExecutor = _noop_executor

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
        proposal_executor: Optional[ProposalExecutor] = None,
    ) -> "LedgerContext":
        return cls(
            settings=settings,
            admin=AdminRole(settings.admin_address),
            clock=clock or utcnow,
            proposal_executor=proposal_executor or _noop_executor,
        )

    def now(self) -> datetime:
        return self.clock()

    @property
    def registry_account(self) -> str:
        return self.settings.registry_account

    @property
    def insurance_fund_account(self) -> str:
        return self.settings.insurance_fund_account

    @property
    def pool_account(self) -> str:
        return self.settings.pool_account

    @property
    def wrap_vault_account(self) -> str:
        return self.settings.wrap_vault_account
