"""Persistence of each user's normalized grant set."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from esop_advisor.models import EsopGrant

from .records import NormalizedRecord

logger = logging.getLogger(__name__)


def _decimal(value: Any) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def _to_model(owner_id: str, position: int, record: NormalizedRecord) -> EsopGrant:
    return EsopGrant(
        owner_id=owner_id,
        position=position,
        ticker=record.ticker,
        company=record.company,
        grant_date=record.grant_date,
        vesting_start_date=record.vesting_start_date,
        vesting_end_date=record.vesting_end_date,
        quantity=record.quantity,
        vested=record.vested,
        strike_price=record.strike_price,
        exercise_price=record.exercise_price,
        current_price=record.current_price,
        fmv=record.fmv,
        sale_price=record.sale_price,
        sale_date=record.sale_date,
        status=record.status.value,
        type=record.type,
        notes=record.notes or None,
    )


async def replace_grants(
    session: AsyncSession,
    owner_id: str,
    records: Sequence[NormalizedRecord],
) -> list[EsopGrant]:
    """Replace the owner's stored grants with ``records`` in one transaction."""

    result = await session.execute(delete(EsopGrant).where(EsopGrant.owner_id == owner_id))
    models = [_to_model(owner_id, position, record) for position, record in enumerate(records)]
    session.add_all(models)
    await session.commit()
    logger.info(
        "Replaced grants for owner %s: removed %s, stored %d",
        owner_id,
        result.rowcount,
        len(models),
    )
    return models


async def list_grants(session: AsyncSession, owner_id: str) -> list[EsopGrant]:
    result = await session.execute(
        select(EsopGrant).where(EsopGrant.owner_id == owner_id).order_by(EsopGrant.position, EsopGrant.id)
    )
    return list(result.scalars().all())


async def count_grants(session: AsyncSession, owner_id: str) -> int:
    result = await session.execute(select(func.count()).select_from(EsopGrant).where(EsopGrant.owner_id == owner_id))
    return int(result.scalar_one())


async def delete_grants(session: AsyncSession, owner_id: str) -> int:
    result = await session.execute(delete(EsopGrant).where(EsopGrant.owner_id == owner_id))
    await session.commit()
    return result.rowcount or 0


def grant_to_raw_record(grant: EsopGrant) -> dict[str, Any]:
    """Render a stored grant in upload form so it can re-enter the pipeline."""

    def _date(value: Any) -> str | None:
        return value.isoformat() if value is not None else None

    def _number(value: Any) -> str | None:
        decimal = _decimal(value)
        return str(decimal) if decimal is not None else None

    return {
        "ticker": grant.ticker,
        "company": grant.company,
        "grantDate": _date(grant.grant_date),
        "vestingStartDate": _date(grant.vesting_start_date),
        "vestingEndDate": _date(grant.vesting_end_date),
        "quantity": _number(grant.quantity),
        "vested": _number(grant.vested),
        "strikePrice": _number(grant.strike_price),
        "exercisePrice": _number(grant.exercise_price),
        "currentPrice": _number(grant.current_price),
        "fmv": _number(grant.fmv),
        "status": grant.status,
        "type": grant.type,
        "salePrice": _number(grant.sale_price),
        "saleDate": _date(grant.sale_date),
        "notes": grant.notes or "",
    }


def grants_to_raw_records(grants: Sequence[EsopGrant]) -> list[dict[str, Any]]:
    return [grant_to_raw_record(grant) for grant in grants]


__all__ = [
    "replace_grants",
    "list_grants",
    "count_grants",
    "delete_grants",
    "grant_to_raw_record",
    "grants_to_raw_records",
]
