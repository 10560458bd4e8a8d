"""
Shared fixtures: a SQLite database per test (SAVEPOINT-capable), a session,
row factories and an HTTP client bound to the same session.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.deps import CurrentUser, get_current_user
from app.core.database import Base, get_db
from app.main import app
from app.models import Customer, Payment, Quotation, Vendor
from app.models.enums import (
    BalanceType, EntryType, PartyType, PaymentRecordStatus, QuotationType,
)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")

    # pysqlite/aiosqlite transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def business_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


class Factory:
    """Creates persisted rows for one business"""

    def __init__(self, db: AsyncSession, business_id: uuid.UUID):
        self.db = db
        self.business_id = business_id

    async def _save(self, obj: Any) -> Any:
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def customer(
        self,
        name: str = "Asha Mehta",
        opening_balance: Optional[str] = None,
        balance_type: Optional[BalanceType] = None,
        created_at: Optional[datetime] = None,
        **kwargs,
    ) -> Customer:
        return await self._save(Customer(
            business_id=kwargs.pop("business_id", self.business_id),
            name=name,
            email=f"{name.split()[0].lower()}@example.com",
            phone="+91 98200 00000",
            opening_balance=Decimal(opening_balance) if opening_balance is not None else None,
            balance_type=balance_type,
            created_at=created_at or datetime(2026, 1, 1, 9, 0),
            **kwargs,
        ))

    async def vendor(
        self,
        company_name: str = "Skyline Air Consolidators",
        opening_balance: Optional[str] = None,
        balance_type: Optional[BalanceType] = None,
        created_at: Optional[datetime] = None,
        **kwargs,
    ) -> Vendor:
        return await self._save(Vendor(
            business_id=kwargs.pop("business_id", self.business_id),
            company_name=company_name,
            opening_balance=Decimal(opening_balance) if opening_balance is not None else None,
            balance_type=balance_type,
            created_at=created_at or datetime(2026, 1, 1, 9, 0),
            **kwargs,
        ))

    async def quotation(
        self,
        customer: Optional[Customer] = None,
        vendor: Optional[Vendor] = None,
        total_amount: str = "1000",
        form_fields: Any = None,
        created_at: Optional[datetime] = None,
        **kwargs,
    ) -> Quotation:
        return await self._save(Quotation(
            business_id=kwargs.pop("business_id", self.business_id),
            customer_id=customer.id if customer else None,
            vendor_id=vendor.id if vendor else None,
            quotation_type=kwargs.pop("quotation_type", QuotationType.FLIGHT),
            total_amount=Decimal(total_amount),
            form_fields=form_fields if form_fields is not None else {},
            created_at=created_at or datetime(2026, 1, 5, 10, 0),
            **kwargs,
        ))

    async def payment(
        self,
        party: Any,
        amount: str = "1000",
        entry_type: EntryType = EntryType.CREDIT,
        payment_date: Optional[datetime] = None,
        **kwargs,
    ) -> Payment:
        """Unallocated payment row for ``party`` (a Customer or Vendor)"""
        party_type = PartyType.CUSTOMER if isinstance(party, Customer) else PartyType.VENDOR
        return await self._save(Payment(
            business_id=kwargs.pop("business_id", self.business_id),
            party=party_type,
            party_id=party.id,
            amount=Decimal(amount),
            unallocated_amount=Decimal(amount),
            entry_type=entry_type,
            status=PaymentRecordStatus.APPROVED,
            payment_date=payment_date or datetime(2026, 1, 10, 12, 0),
            **kwargs,
        ))


@pytest.fixture
def factory(db, business_id) -> Factory:
    return Factory(db, business_id)


def _override_db(db: AsyncSession):
    async def override():
        yield db
    return override


@pytest.fixture
async def client(db, business_id, user_id):
    """HTTP client authenticated as ``user_id`` of ``business_id``"""
    app.dependency_overrides[get_db] = _override_db(db)
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        id=user_id, business_id=business_id
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client(db):
    """HTTP client without an auth override (real token checks)"""
    app.dependency_overrides[get_db] = _override_db(db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
