"""
budget/store.py -- SQLAlchemy-backed persistence layer for budget tracking.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in budget/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. BudgetStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Route
handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = BudgetStore()                               # DATABASE_URL or SQLite default
    store = BudgetStore("postgresql://user:pw@host/db") # PostgreSQL
    ba_id = store.create_budget_authority(authority)
    summary = store.dashboard_summary()
    store.close()
"""

import uuid
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine

from budget.models import BudgetAuthority, Commitment, Expenditure, MTWReserve
from core.config import get_settings


def _money(name: str, **kwargs) -> Column:
    # asdecimal=False: SQLite has no native DECIMAL, floats are what callers want
    return Column(name, Numeric(14, 2, asdecimal=False), **kwargs)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_budget_authorities = Table(
    "budget_authority",
    metadata,
    Column("id", String(36), primary_key=True),
    _money("total_budget_amount", nullable=False),
    Column("fiscal_year", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False, default=False),
    Column("effective_date", String(10), nullable=False),
    Column("expiration_date", String(10)),
    Column("notes", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_mtw_reserves = Table(
    "mtw_reserves",
    metadata,
    Column("id", String(36), primary_key=True),
    _money("reserve_amount", nullable=False),
    Column("as_of_date", String(10), nullable=False),
    Column("percentage_of_budget_authority", Numeric(5, 2, asdecimal=False)),
    _money("minimum_reserve_level"),
    Column("notes", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_commitments = Table(
    "commitments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("commitment_number", String(100), nullable=False),
    Column("activity_description", String(255), nullable=False),
    Column("commitment_type", String(30), nullable=False),
    Column("account_type", String(100)),
    Column("commitment_date", String(10)),
    Column("obligation_date", String(10)),
    Column("status", String(30), nullable=False, default="planned"),
    _money("amount_committed", nullable=False),
    _money("amount_obligated", nullable=False, default=0),
    _money("amount_expended", nullable=False, default=0),
    Column("projected_full_expenditure_date", String(10)),
    Column("notes", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_expenditures = Table(
    "hap_expenditures",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("expenditure_date", String(10), nullable=False),
    Column("expenditure_type", String(30), nullable=False),
    _money("amount", nullable=False),
    Column("description", String(255)),
    Column("notes", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns the store owns. Callers may not set these through update_*().
_READONLY_COLUMNS = {"id", "created_at", "updated_at"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _round2(value) -> float:
    return round(float(value or 0), 2)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BudgetStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # SQLite requires check_same_thread=False when FastAPI runs sync
            # route handlers in its thread pool.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Generic helpers shared by every entity table
    # ------------------------------------------------------------------

    def _insert(self, table: Table, record) -> str:
        values = {k: v for k, v in asdict(record).items() if k not in _READONLY_COLUMNS}
        record_id = str(uuid.uuid4())
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(table.insert().values(id=record_id, created_at=now, updated_at=now, **values))
            conn.commit()
        return record_id

    def _get(self, table: Table, record_id: str):
        with self.engine.connect() as conn:
            return conn.execute(table.select().where(table.c.id == record_id)).fetchone()

    def _update(self, table: Table, record_id: str, fields: dict) -> bool:
        """Update the given columns. Returns False if record_id was not found.

        Raises ValueError for unknown or store-owned column names.
        """
        unknown = set(fields) - (set(table.c.keys()) - _READONLY_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown {table.name} fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                table.update().where(table.c.id == record_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def _delete(self, table: Table, record_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(table.delete().where(table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Budget authorities
    # ------------------------------------------------------------------

    def create_budget_authority(self, authority: BudgetAuthority) -> str:
        return self._insert(_budget_authorities, authority)

    def get_budget_authority(self, authority_id: str) -> Optional[BudgetAuthority]:
        row = self._get(_budget_authorities, authority_id)
        return _row_to_budget_authority(row) if row is not None else None

    def list_budget_authorities(self) -> list[BudgetAuthority]:
        """Return all budget authorities, newest fiscal year first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _budget_authorities.select().order_by(_budget_authorities.c.fiscal_year.desc())
            ).fetchall()
        return [_row_to_budget_authority(r) for r in rows]

    def update_budget_authority(self, authority_id: str, **fields) -> bool:
        return self._update(_budget_authorities, authority_id, fields)

    def delete_budget_authority(self, authority_id: str) -> bool:
        return self._delete(_budget_authorities, authority_id)

    # ------------------------------------------------------------------
    # MTW reserves
    # ------------------------------------------------------------------

    def create_mtw_reserve(self, reserve: MTWReserve) -> str:
        return self._insert(_mtw_reserves, reserve)

    def get_mtw_reserve(self, reserve_id: str) -> Optional[MTWReserve]:
        row = self._get(_mtw_reserves, reserve_id)
        return _row_to_mtw_reserve(row) if row is not None else None

    def list_mtw_reserves(self) -> list[MTWReserve]:
        """Return all reserve snapshots, latest as_of_date first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_mtw_reserves.select().order_by(_mtw_reserves.c.as_of_date.desc())).fetchall()
        return [_row_to_mtw_reserve(r) for r in rows]

    def update_mtw_reserve(self, reserve_id: str, **fields) -> bool:
        return self._update(_mtw_reserves, reserve_id, fields)

    def delete_mtw_reserve(self, reserve_id: str) -> bool:
        return self._delete(_mtw_reserves, reserve_id)

    # ------------------------------------------------------------------
    # Commitments
    # ------------------------------------------------------------------

    def create_commitment(self, commitment: Commitment) -> str:
        return self._insert(_commitments, commitment)

    def get_commitment(self, commitment_id: str) -> Optional[Commitment]:
        row = self._get(_commitments, commitment_id)
        return _row_to_commitment(row) if row is not None else None

    def list_commitments(
        self,
        commitment_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Commitment]:
        """Return commitments, optionally filtered, latest commitment_date first."""
        stmt = _commitments.select()
        if commitment_type is not None:
            stmt = stmt.where(_commitments.c.commitment_type == commitment_type)
        if status is not None:
            stmt = stmt.where(_commitments.c.status == status)
        stmt = stmt.order_by(_commitments.c.commitment_date.desc(), _commitments.c.created_at.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_commitment(r) for r in rows]

    def update_commitment(self, commitment_id: str, **fields) -> bool:
        return self._update(_commitments, commitment_id, fields)

    def delete_commitment(self, commitment_id: str) -> bool:
        return self._delete(_commitments, commitment_id)

    # ------------------------------------------------------------------
    # Expenditures
    # ------------------------------------------------------------------

    def create_expenditure(self, expenditure: Expenditure) -> str:
        return self._insert(_expenditures, expenditure)

    def get_expenditure(self, expenditure_id: str) -> Optional[Expenditure]:
        row = self._get(_expenditures, expenditure_id)
        return _row_to_expenditure(row) if row is not None else None

    def list_expenditures(
        self,
        expenditure_type: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> list[Expenditure]:
        """Return expenditures, optionally filtered by type and inclusive date range.

        start / end are YYYY-MM-DD strings; ISO dates compare correctly as text.
        """
        stmt = _expenditures.select()
        if expenditure_type is not None:
            stmt = stmt.where(_expenditures.c.expenditure_type == expenditure_type)
        if start is not None:
            stmt = stmt.where(_expenditures.c.expenditure_date >= start)
        if end is not None:
            stmt = stmt.where(_expenditures.c.expenditure_date <= end)
        stmt = stmt.order_by(_expenditures.c.expenditure_date.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_expenditure(r) for r in rows]

    def update_expenditure(self, expenditure_id: str, **fields) -> bool:
        return self._update(_expenditures, expenditure_id, fields)

    def delete_expenditure(self, expenditure_id: str) -> bool:
        return self._delete(_expenditures, expenditure_id)

    # ------------------------------------------------------------------
    # Aggregations
    # ------------------------------------------------------------------

    def expenditure_summary_by_type(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> dict[str, dict]:
        """Return {expenditure_type: {"total": float, "count": int}} for the range.

        Types with no expenditures in the range are omitted.
        """
        stmt = select(
            _expenditures.c.expenditure_type,
            func.coalesce(func.sum(_expenditures.c.amount), 0).label("total"),
            func.count().label("count"),
        )
        if start is not None:
            stmt = stmt.where(_expenditures.c.expenditure_date >= start)
        if end is not None:
            stmt = stmt.where(_expenditures.c.expenditure_date <= end)
        stmt = stmt.group_by(_expenditures.c.expenditure_type)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {r.expenditure_type: {"total": _round2(r.total), "count": r.count} for r in rows}

    def monthly_expenditure_summary(self, year: int) -> list[dict]:
        """Return twelve {"month": 1..12, "total": float} rows for the given year.

        Months without expenditures report a total of 0.0.
        """
        month = func.substr(_expenditures.c.expenditure_date, 6, 2)
        stmt = (
            select(month.label("month"), func.sum(_expenditures.c.amount).label("total"))
            .where(_expenditures.c.expenditure_date >= f"{year:04d}-01-01")
            .where(_expenditures.c.expenditure_date <= f"{year:04d}-12-31")
            .group_by(month)
        )
        with self.engine.connect() as conn:
            totals = {int(r.month): _round2(r.total) for r in conn.execute(stmt)}
        return [{"month": m, "total": totals.get(m, 0.0)} for m in range(1, 13)]

    def dashboard_summary(self, today: Optional[date] = None) -> Optional[dict]:
        """Roll up the numbers shown on the dashboard landing page.

        Returns None when no budget authority is active -- the route turns
        that into 404. Otherwise:
          budget_authority  -- the active authority with the latest fiscal year
          mtw_reserve       -- latest snapshot plus its share of the budget (%)
          ytd_expenditures  -- sum of expenditures since Jan 1 of today's year
          commitments       -- committed / obligated / expended / pending totals
          available_budget  -- total budget minus everything committed

        pending counts only commitments still in the "planned" state.
        """
        today = today or date.today()
        with self.engine.connect() as conn:
            ba_row = conn.execute(
                _budget_authorities.select()
                .where(_budget_authorities.c.is_active.is_(True))
                .order_by(_budget_authorities.c.fiscal_year.desc())
                .limit(1)
            ).fetchone()
            if ba_row is None:
                return None
            reserve_row = conn.execute(
                _mtw_reserves.select().order_by(_mtw_reserves.c.as_of_date.desc()).limit(1)
            ).fetchone()
            ytd = conn.execute(
                select(func.coalesce(func.sum(_expenditures.c.amount), 0)).where(
                    _expenditures.c.expenditure_date >= date(today.year, 1, 1).isoformat()
                )
            ).scalar()
            totals = conn.execute(
                select(
                    func.coalesce(func.sum(_commitments.c.amount_committed), 0),
                    func.coalesce(func.sum(_commitments.c.amount_obligated), 0),
                    func.coalesce(func.sum(_commitments.c.amount_expended), 0),
                )
            ).one()
            pending = conn.execute(
                select(func.coalesce(func.sum(_commitments.c.amount_committed), 0)).where(
                    _commitments.c.status == "planned"
                )
            ).scalar()

        authority = _row_to_budget_authority(ba_row)
        total_committed, total_obligated, total_expended = (_round2(v) for v in totals)

        reserve = None
        if reserve_row is not None:
            percentage = 0.0
            if authority.total_budget_amount:
                percentage = reserve_row.reserve_amount / authority.total_budget_amount * 100
            reserve = {
                "id": reserve_row.id,
                "amount": _round2(reserve_row.reserve_amount),
                "as_of_date": reserve_row.as_of_date,
                "percentage": round(percentage, 2),
            }

        return {
            "budget_authority": {
                "id": authority.id,
                "total_budget_amount": authority.total_budget_amount,
                "fiscal_year": authority.fiscal_year,
                "effective_date": authority.effective_date,
                "expiration_date": authority.expiration_date,
            },
            "mtw_reserve": reserve,
            "ytd_expenditures": _round2(ytd),
            "commitments": {
                "total": total_committed,
                "obligated": total_obligated,
                "expended": total_expended,
                "pending": _round2(pending),
            },
            "available_budget": _round2(authority.total_budget_amount - total_committed),
        }

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_budget_authority(row) -> BudgetAuthority:
    return BudgetAuthority(
        id=row.id,
        total_budget_amount=_round2(row.total_budget_amount),
        fiscal_year=row.fiscal_year,
        is_active=bool(row.is_active),
        effective_date=row.effective_date,
        expiration_date=row.expiration_date,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_mtw_reserve(row) -> MTWReserve:
    return MTWReserve(
        id=row.id,
        reserve_amount=_round2(row.reserve_amount),
        as_of_date=row.as_of_date,
        percentage_of_budget_authority=row.percentage_of_budget_authority,
        minimum_reserve_level=row.minimum_reserve_level,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_commitment(row) -> Commitment:
    return Commitment(
        id=row.id,
        commitment_number=row.commitment_number,
        activity_description=row.activity_description,
        commitment_type=row.commitment_type,
        account_type=row.account_type,
        commitment_date=row.commitment_date,
        obligation_date=row.obligation_date,
        status=row.status,
        amount_committed=_round2(row.amount_committed),
        amount_obligated=_round2(row.amount_obligated),
        amount_expended=_round2(row.amount_expended),
        projected_full_expenditure_date=row.projected_full_expenditure_date,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_expenditure(row) -> Expenditure:
    return Expenditure(
        id=row.id,
        expenditure_date=row.expenditure_date,
        expenditure_type=row.expenditure_type,
        amount=_round2(row.amount),
        description=row.description,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
