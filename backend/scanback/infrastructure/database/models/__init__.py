from .tag_record import TagRecordModel

__all__ = ["TagRecordModel"]
