from .tag_record_repository import SQLAlchemyTagRecordRepository

__all__ = ["SQLAlchemyTagRecordRepository"]
