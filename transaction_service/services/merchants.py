"""Merchant resolution."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transaction_service.models.merchant import Merchant
from transaction_service.utils.errors import BadRequestError, ConflictError

logger = logging.getLogger(__name__)


def get_merchant_by_code(db: Session, code: str) -> Merchant | None:
    stmt = select(Merchant).where(Merchant.code == code).limit(1)
    return db.scalars(stmt).first()


def check_merchant(db: Session, code: str | None, name: str | None) -> Merchant:
    """Return the merchant registered under ``code``, registering it first if needed.

    The insert runs in a savepoint: when another writer registers the same code
    first, only the savepoint is rolled back and their row is returned.
    """

    if not code:
        raise BadRequestError("A merchant code is required for merchant transactions.")

    existing = get_merchant_by_code(db, code)
    if existing:
        return existing

    merchant = Merchant(code=code, name=name or code)
    try:
        with db.begin_nested():
            db.add(merchant)
            db.flush()
    except IntegrityError:
        existing = get_merchant_by_code(db, code)
        if existing is None:
            raise ConflictError(f"Merchant {code} could not be registered.")
        logger.info("Merchant registered concurrently", extra={"merchant_id": existing.id, "merchant_code": code})
        return existing

    logger.info("Merchant created", extra={"merchant_id": merchant.id, "merchant_code": code})
    return merchant


__all__ = ["check_merchant", "get_merchant_by_code"]
