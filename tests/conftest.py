"""Pytest configuration and fixtures for Estate Ledger tests"""
import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from dotenv import load_dotenv

from estate_ledger.config import Settings
from estate_ledger.main import create_app
from estate_ledger.models.property import PropertyType, RiskLevel
from estate_ledger.services.ledger import Ledger
from estate_ledger.services.property_registry import PropertyRegistry
from estate_ledger.services.token_ledger import TokenLedger

# Load environment variables
load_dotenv()

ADMIN = "0xAdmin"
OWNER = "0xOwner"
ALICE = "0xAlice"
BOB = "0xBob"
CAROL = "0xCarol"
FEE_RECIPIENT = "0xFeeRecipient"
REGISTRY = "0xPropertyRegistry"
INSURANCE_FUND = "0xInsuranceFund"
POOL_TREASURY = "0xPoolTreasury"
WRAP_VAULT = "0xWrappedVault"


class MutableClock:
    """Deterministic clock that tests move forward explicitly"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def settings() -> Settings:
    """In-memory database, fixed system accounts and an enabled faucet"""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        admin_address=ADMIN,
        registry_account=REGISTRY,
        insurance_fund_account=INSURANCE_FUND,
        pool_account=POOL_TREASURY,
        wrap_vault_account=WRAP_VAULT,
        fee_recipient=FEE_RECIPIENT,
        fee_bps=250,
        min_investment=100,
        token_cap=10_000_000,
        proposal_threshold=1000,
        quorum_bps=1000,
        faucet_enabled=True,
        faucet_amount=5_000,
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def executed_proposals() -> list:
    return []


@pytest_asyncio.fixture(scope="function")
async def ledger(settings: Settings, clock: MutableClock, executed_proposals: list) -> AsyncGenerator[Ledger, None]:
    """A fresh ledger with its schema created and seeded for each test"""
    ledger = Ledger.from_settings(settings, clock=clock, proposal_executor=executed_proposals.append)
    await ledger.init_schema()
    try:
        yield ledger
    finally:
        await ledger.close()


@pytest.fixture
def fund(ledger: Ledger):
    """Issue tokens to an account from the admin"""

    async def _fund(account: str, amount: int) -> int:
        async with ledger.transaction() as db:
            return await TokenLedger(db, ledger.ctx).issue(ADMIN, account, amount)

    return _fund


@pytest.fixture
def approve(ledger: Ledger):
    async def _approve(owner: str, spender: str, amount: int) -> None:
        async with ledger.transaction() as db:
            await TokenLedger(db, ledger.ctx).approve(owner, spender, amount)

    return _approve


@pytest.fixture
def balance_of(ledger: Ledger):
    async def _balance_of(account: str) -> int:
        async with ledger.transaction() as db:
            return await TokenLedger(db, ledger.ctx).balance_of(account)

    return _balance_of


@pytest.fixture
def shares_of(ledger: Ledger):
    async def _shares_of(property_id: int, account: str) -> int:
        async with ledger.transaction() as db:
            return await PropertyRegistry(db, ledger.ctx).shares_of(property_id, account)

    return _shares_of


@pytest.fixture
def verified_property(ledger: Ledger):
    """List and verify a property: 1,000,000 valuation over 1,000 shares (price 1,000)"""

    async def _verified_property(total_valuation: int = 1_000_000, total_shares: int = 1_000) -> int:
        async with ledger.transaction() as db:
            registry = PropertyRegistry(db, ledger.ctx)
            prop = await registry.list_property(
                owner=OWNER,
                metadata_uri="ipfs://property-metadata",
                total_valuation=total_valuation,
                total_shares=total_shares,
                property_type=PropertyType.RESIDENTIAL,
                risk_level=RiskLevel.LOW,
            )
            await registry.verify(ADMIN, prop.id)
            return prop.id

    return _verified_property


@pytest.fixture
def buy_shares(ledger: Ledger, fund, approve):
    """Fund a buyer, approve the registry and purchase shares at the listing price"""

    async def _buy_shares(buyer: str, property_id: int, share_count: int) -> None:
        async with ledger.transaction() as db:
            prop = await PropertyRegistry(db, ledger.ctx).get_property(property_id)
            cost = prop.share_price * share_count
        await fund(buyer, cost)
        await approve(buyer, REGISTRY, cost)
        async with ledger.transaction() as db:
            await PropertyRegistry(db, ledger.ctx).purchase_shares(buyer, property_id, share_count)

    return _buy_shares


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings, ledger: Ledger) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client bound to the test ledger"""
    app = create_app(settings=settings, ledger=ledger)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
