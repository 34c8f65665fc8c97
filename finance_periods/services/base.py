"""
BaseService -- common base for flush-only services.

Responsibility:
    Provides the constructor and session-handling contract shared by the
    store, the audit trail and the opening balance service.  They persist
    with ``session.flush()`` and never ``session.commit()``.

Architecture position:
    Services -- imperative shell infrastructure.  Only the composition root
    (FiscalPeriodService) commits or rolls back.

Failure modes:
    - A subclass that commits on its own breaks the all-or-nothing write of
      a fiscal year and its twelve periods.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for flush-only services.

    Guarantees:
        - The service never calls ``session.commit()``; the caller controls
          transaction boundaries.
    """

    def __init__(self, session: Session):
        self.session = session
