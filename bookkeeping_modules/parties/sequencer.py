"""
InvoiceNumberSequencer -- per-payee sequential invoice numbers.

Responsibility:
    Issues the next invoice number for a payee (``ACME-00007``) and
    advances that payee's counter by exactly one.

Architecture position:
    Modules > Parties.  Called by the document finalization workflow and
    by ``InvoiceService.preview_invoice_number`` (peek only).

Invariants enforced:
    - The counter is advanced with a single atomic
      ``UPDATE payees SET next_invoice_number = next_invoice_number + 1``.
      The row lock taken by that UPDATE is held until the caller's
      transaction ends, so concurrent issuers for one payee serialize and
      every issued number is distinct with no gaps.  Different payees lock
      different rows and never contend.
    - Flush only.  The sequencer never commits; if the caller's transaction
      (or savepoint) rolls back, the number returns to the sequence.

Failure modes:
    - PayeeNotFoundError if the payee does not exist.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from bookkeeping_config.schema import InvoicingConfig
from bookkeeping_kernel.exceptions import PayeeNotFoundError
from bookkeeping_kernel.logging_config import get_logger
from bookkeeping_modules.parties.orm import PayeeModel

logger = get_logger("modules.parties.sequencer")


def format_invoice_number(prefix: str, number: int, separator: str = "-", padding: int = 5) -> str:
    """``format_invoice_number("ACME", 7) == "ACME-00007"``."""
    return f"{prefix}{separator}{number:0{padding}d}"


class InvoiceNumberSequencer:
    """
    Service for issuing per-payee invoice numbers.

    Contract:
        ``issue_number`` returns the formatted current counter value and
        leaves the counter at value + 1, inside the caller's transaction.

    Guarantees:
        - Two sequential calls for one payee return consecutive numbers.
        - N concurrent calls for one payee return N distinct consecutive
          numbers once all callers commit.
    """

    def __init__(self, session: Session, settings: InvoicingConfig | None = None):
        self._session = session
        self._settings = settings or InvoicingConfig.with_defaults()

    def format(self, prefix: str, number: int) -> str:
        return format_invoice_number(
            prefix,
            number,
            separator=self._settings.number_separator,
            padding=self._settings.number_padding,
        )

    def issue_number(self, payee_id: UUID) -> str:
        """
        Consume and return the next invoice number for ``payee_id``.

        Raises:
            PayeeNotFoundError: If the payee does not exist.
        """
        result = self._session.execute(
            update(PayeeModel)
            .where(PayeeModel.id == payee_id)
            .values(next_invoice_number=PayeeModel.next_invoice_number + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise PayeeNotFoundError(str(payee_id))

        prefix, next_value = self._session.execute(
            select(PayeeModel.invoice_prefix, PayeeModel.next_invoice_number)
            .where(PayeeModel.id == payee_id)
        ).one()

        # A loaded payee would otherwise keep its pre-UPDATE counter, and
        # nothing expires it if the enclosing savepoint rolls back.
        cached = self._session.identity_map.get(identity_key(PayeeModel, payee_id))
        if cached is not None:
            self._session.expire(cached, ["next_invoice_number"])

        issued = next_value - 1
        invoice_number = self.format(prefix, issued)

        logger.info(
            "invoice_number_issued",
            extra={
                "payee_id": str(payee_id),
                "invoice_number": invoice_number,
                "sequence_value": issued,
            },
        )
        return invoice_number

    def peek_number(self, payee_id: UUID) -> str:
        """
        Format the next number without consuming it.

        Raises:
            PayeeNotFoundError: If the payee does not exist.
        """
        payee = self._session.get(PayeeModel, payee_id)
        if payee is None:
            raise PayeeNotFoundError(str(payee_id))
        return self.format(payee.invoice_prefix, payee.next_invoice_number)
