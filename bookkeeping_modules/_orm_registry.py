"""
Module ORM Registry (``bookkeeping_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.  ``bookkeeping_kernel.db.engine.create_tables()`` calls
``import_all_orm_models()`` first.

Usage
-----
Scripts, entrypoints, and ``tests/conftest.py`` all go through
``create_tables()`` -- one orchestration function for every consumer.
"""


def import_all_orm_models() -> None:
    """Import every ``bookkeeping_modules.*.orm`` module to register ORM models.

    Order follows foreign keys: parties before the documents and Stripe
    tables that reference them.

    This function is idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import bookkeeping_modules.parties.orm  # noqa: F401
    import bookkeeping_modules.bills.orm  # noqa: F401
    import bookkeeping_modules.invoices.orm  # noqa: F401
    import bookkeeping_modules.stripe.orm  # noqa: F401
