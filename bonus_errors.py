"""Errors surfaced to callers of the bonus pipeline"""


class BonusProcessingError(Exception):
    """A run could not produce a complete computation set"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def to_dict(self) -> dict:
        return {"error": self.reason, "type": type(self).__name__}


class MissingInputError(BonusProcessingError):
    """A mandatory cohort workbook was not supplied"""
