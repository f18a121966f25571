"""
Typed Exception Hierarchy for the Bookkeeping Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (admin actions, scheduled jobs, the batch reconciliation engine) need
to decide whether to surface, skip, or retry a failure.  They must be able to
do that by type and by ``code``, never by parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        engine.generate_invoice_for_transaction(txn_id, actor_id)
    except AlreadyInvoicedError as e:
        notify(f"Transaction {e.transaction_id} already invoiced")
    except ReconciliationError as e:
        log.warning("reconciliation_failed", extra={"code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BookkeepingError (base)
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- MissingPayeeError
    |   +-- NotFinalizableError
    |   +-- DocumentNotFinalizedError
    |   +-- DocumentLockedError
    |   +-- InvoiceNumberConflictError
    |
    +-- DocumentError
    |   +-- DocumentGenerationFailedError
    |   +-- DocumentNotFoundError
    |
    +-- ReconciliationError
    |   +-- IncompleteTransactionError
    |   +-- AlreadyInvoicedError
    |   +-- IncompletePeriodError
    |   +-- TransactionNotFoundError
    |
    +-- PartyError
    |   +-- PayeeNotFoundError
    |
    +-- CurrencyError
        +-- InvalidCurrencyError
        +-- CurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_TRANSITION          | State machine rejects current -> target
                | MISSING_PAYEE               | Review/pay/finalize without a payee
                | NOT_FINALIZABLE             | Finalize from a non-finalizable state
                | DOCUMENT_NOT_FINALIZED      | Regenerate a document never finalized
                | DOCUMENT_LOCKED             | Edit items of a finalized invoice
                | INVOICE_NUMBER_CONFLICT     | Issued number already held by an invoice
----------------|-----------------------------|-----------------------------------------
Document        | DOCUMENT_GENERATION_FAILED  | Renderer/storage collaborator failed
                | DOCUMENT_NOT_FOUND          | Bill/invoice ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Reconciliation  | INCOMPLETE_TRANSACTION      | Transaction lacks required details
                | ALREADY_INVOICED            | Transaction already linked to an item
                | INCOMPLETE_PERIOD           | Period has incomplete transactions
                | TRANSACTION_NOT_FOUND       | Transaction ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Party           | PAYEE_NOT_FOUND             | Payee ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Currency        | INVALID_CURRENCY            | Not a valid ISO 4217 code
                | CURRENCY_MISMATCH           | Mixed currencies in operation

===============================================================================
PROPAGATION
===============================================================================

Guard and precondition failures are raised synchronously and are never
retried by the kernel.  Batch entry points convert them into result values
(see ``bookkeeping_services.reconciliation_service``) so that one failure
never aborts its siblings.
"""


class BookkeepingError(Exception):
    """
    Base exception for all bookkeeping errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BOOKKEEPING_ERROR"


# Workflow-related exceptions


class WorkflowError(BookkeepingError):
    """Base exception for document lifecycle errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """The state machine does not allow moving from current to target."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, current_status: str, target_status: str):
        self.workflow = workflow
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Invalid {workflow} transition: {current_status} -> {target_status}"
        )


class MissingPayeeError(WorkflowError):
    """Document must be assigned to a payee before this action."""

    code: str = "MISSING_PAYEE"

    def __init__(self, document_type: str, document_id: str, action: str):
        self.document_type = document_type
        self.document_id = document_id
        self.action = action
        super().__init__(
            f"{document_type} {document_id} must be assigned to a payee "
            f"before it can be {action}"
        )


class NotFinalizableError(WorkflowError):
    """Document cannot be finalized in its current state."""

    code: str = "NOT_FINALIZABLE"

    def __init__(self, document_type: str, document_id: str, status: str, reason: str):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        self.reason = reason
        super().__init__(
            f"{document_type} {document_id} cannot be finalized "
            f"(status={status}): {reason}"
        )


class DocumentNotFinalizedError(WorkflowError):
    """Regeneration requested for a document that was never finalized."""

    code: str = "DOCUMENT_NOT_FINALIZED"

    def __init__(self, document_type: str, document_id: str, status: str):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"{document_type} {document_id} is not finalized (status={status})"
        )


class DocumentLockedError(WorkflowError):
    """A finalized document can only be regenerated, not edited."""

    code: str = "DOCUMENT_LOCKED"

    def __init__(self, document_type: str, document_id: str, status: str):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"{document_type} {document_id} is finalized (status={status}) "
            "and can no longer be edited"
        )


class InvoiceNumberConflictError(WorkflowError):
    """The number issued for a payee is already held by another of its invoices."""

    code: str = "INVOICE_NUMBER_CONFLICT"

    def __init__(self, payee_id: str, invoice_number: str, holder_id: str | None = None):
        self.payee_id = payee_id
        self.invoice_number = invoice_number
        self.holder_id = holder_id
        super().__init__(
            f"Invoice number {invoice_number} is already used by invoice {holder_id} "
            f"of payee {payee_id}; advance the payee's counter past it"
        )


# Document-related exceptions


class DocumentError(BookkeepingError):
    """Base exception for document errors."""

    code: str = "DOCUMENT_ERROR"


class DocumentGenerationFailedError(DocumentError):
    """The document generator collaborator failed."""

    code: str = "DOCUMENT_GENERATION_FAILED"

    def __init__(self, document_type: str, document_id: str, reason: str):
        self.document_type = document_type
        self.document_id = document_id
        self.reason = reason
        super().__init__(
            f"Document generation failed for {document_type} {document_id}: {reason}"
        )


class DocumentNotFoundError(DocumentError):
    """Bill or invoice with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} not found: {document_id}")


# Reconciliation-related exceptions


class ReconciliationError(BookkeepingError):
    """Base exception for transaction-to-invoice reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class IncompleteTransactionError(ReconciliationError):
    """Transaction is missing details required to invoice it."""

    code: str = "INCOMPLETE_TRANSACTION"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(
            f"Cannot generate invoice: transaction {transaction_id} "
            "is missing required details"
        )


class AlreadyInvoicedError(ReconciliationError):
    """Transaction is already linked to an invoice item."""

    code: str = "ALREADY_INVOICED"

    def __init__(self, transaction_id: str, invoice_item_id: str | None = None):
        self.transaction_id = transaction_id
        self.invoice_item_id = invoice_item_id
        super().__init__(
            f"Cannot generate invoice: transaction {transaction_id} "
            "has already been invoiced"
        )


class IncompletePeriodError(ReconciliationError):
    """A billing period still has incomplete transactions."""

    code: str = "INCOMPLETE_PERIOD"

    def __init__(self, payee_id: str, year: int, month: int, incomplete_ids: list[str]):
        self.payee_id = payee_id
        self.year = year
        self.month = month
        self.incomplete_ids = incomplete_ids
        super().__init__(
            f"Cannot generate invoices for {year}-{month:02d}: "
            f"{len(incomplete_ids)} incomplete transaction(s) found"
        )


class TransactionNotFoundError(ReconciliationError):
    """Stripe transaction with given ID was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


# Party-related exceptions


class PartyError(BookkeepingError):
    """Base exception for payee/supplier errors."""

    code: str = "PARTY_ERROR"


class PayeeNotFoundError(PartyError):
    """Payee with given ID was not found."""

    code: str = "PAYEE_NOT_FOUND"

    def __init__(self, payee_id: str):
        self.payee_id = payee_id
        super().__init__(f"Payee not found: {payee_id}")


# Currency-related exceptions


class CurrencyError(BookkeepingError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError, ValueError):
    """Invalid ISO 4217 currency code provided."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class CurrencyMismatchError(CurrencyError):
    """Attempted operation on mismatched currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str):
        self.currency1 = currency1
        self.currency2 = currency2
        super().__init__(f"Currency mismatch: {currency1} vs {currency2}")
