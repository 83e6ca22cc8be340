"""Custom exception classes for the receiver."""


class TransferException(Exception):
    """
    Base exception class for all transfer-related errors.
    """
    pass


class InvalidInputError(TransferException):
    """
    Raised for caller-fixable input problems: bad filename, non-positive
    chunk size, negative sizes, chunk index out of range.
    """
    pass


class TransferNotFoundError(TransferException):
    """
    Raised when a transfer id does not name an active transfer.
    """
    pass


class IncompleteTransferError(TransferException):
    """
    Raised when completion is requested before every chunk has arrived.
    """

    def __init__(self, message: str, missing_chunks=None):
        super().__init__(message)
        self.missing_chunks = list(missing_chunks or [])


class StorageFailureError(TransferException):
    """
    Raised when the filesystem fails while writing a chunk or
    reassembling the final file.
    """
    pass


class ChecksumMismatchError(TransferException):
    """
    Raised when a verified chunk does not match its declared checksum.
    """
    pass


class BatchNotFoundError(TransferException):
    """
    Raised when no completed upload carries the requested batch id.
    """
    pass


class SharedFileNotFoundError(TransferException):
    """
    Raised when a requested file is not present in the shared directory.
    """
    pass
