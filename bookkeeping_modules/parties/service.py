"""
Party Service -- registers payees and suppliers.

Flush-only: the caller owns the transaction boundary.

Usage:
    service = PartyService(session)
    payee = service.create_payee(
        name="Acme Studio", invoice_prefix="ACME", actor_id=actor_id,
    )
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from bookkeeping_kernel.exceptions import PayeeNotFoundError
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.parties.models import Payee, Supplier
from bookkeeping_modules.parties.orm import PayeeModel, SupplierModel

logger = get_logger("modules.parties.service")


class PartyService:

    def __init__(self, session: Session):
        self._session = session

    def create_payee(
        self,
        name: str,
        invoice_prefix: str,
        actor_id: UUID,
        next_invoice_number: int = 1,
        address: str | None = None,
        city: str | None = None,
        postal_code: str | None = None,
        country: str | None = None,
        tax_id: str | None = None,
    ) -> PayeeModel:
        dto = Payee(
            id=uuid4(),
            name=name,
            invoice_prefix=invoice_prefix.strip(),
            next_invoice_number=next_invoice_number,
            address=address,
            city=city,
            postal_code=postal_code,
            country=country,
            tax_id=tax_id,
        )
        payee = PayeeModel.from_dto(dto, created_by_id=actor_id)
        self._session.add(payee)
        self._session.flush()
        logger.info(
            "payee_created",
            extra={
                "payee_id": str(payee.id),
                "invoice_prefix": payee.invoice_prefix,
                "next_invoice_number": payee.next_invoice_number,
            },
        )
        return payee

    def create_supplier(
        self,
        name: str,
        actor_id: UUID,
        tax_id: str | None = None,
        email: str | None = None,
    ) -> SupplierModel:
        dto = Supplier(id=uuid4(), name=name, tax_id=tax_id, email=email)
        supplier = SupplierModel.from_dto(dto, created_by_id=actor_id)
        self._session.add(supplier)
        self._session.flush()
        logger.info("supplier_created", extra={"supplier_id": str(supplier.id)})
        return supplier

    def get_payee(self, payee_id: UUID) -> PayeeModel:
        """
        Raises:
            PayeeNotFoundError: If the payee does not exist.
        """
        payee = self._session.get(PayeeModel, payee_id)
        if payee is None:
            raise PayeeNotFoundError(str(payee_id))
        return payee
