from tutorix.services.common.unit_of_work import TransactionError, UnitOfWork

__all__ = ["UnitOfWork", "TransactionError"]
