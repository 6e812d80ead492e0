"""
Module ORM Registry (``purchasing_modules._orm_registry``).

Imports every ORM model so ``Base.metadata`` holds the full schema before
``create_tables()`` runs.  Kernel tables are registered first because the
document tables carry foreign keys to projects and vendors.

MUST NOT be imported at module level by ``purchasing_kernel``; the engine
imports it lazily inside ``create_tables``/``drop_tables``.
"""


def import_all_orm_models() -> None:
    """Idempotent; repeated calls are harmless."""
    import purchasing_kernel.models  # noqa: F401
    import purchasing_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    # fmt: off
    import purchasing_modules.requests.orm  # noqa: F401
    import purchasing_modules.orders.orm  # noqa: F401
    import purchasing_modules.receiving.orm  # noqa: F401
