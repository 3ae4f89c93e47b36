"""Domain exceptions raised by the record store and the medicine/dose services"""


class RecordStoreError(Exception):
    """Raised when the backing record store cannot complete an operation"""
    pass


class MedicineNotFoundError(Exception):
    """Raised when a medicine does not exist or belongs to another user"""
    pass


class DoseNotFoundError(Exception):
    """Raised when a dose does not exist or belongs to another user"""
    pass


class PrescriptionExtractionError(Exception):
    """Raised when a prescription image cannot be fetched or analyzed"""

    def __init__(self, message: str, upstream: bool = False):
        super().__init__(message)
        # upstream=True means the image host or the AI service failed
        self.upstream = upstream
