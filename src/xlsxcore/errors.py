"""Exception hierarchy for xlsxcore."""


class XlsxCoreError(Exception):
    """Base class for all errors raised by xlsxcore."""
    pass


class InvalidCellReferenceError(XlsxCoreError, ValueError):
    """Raised when a string is not a valid cell or range reference."""

    def __init__(self, ref: str, reason: str = ""):
        self.ref = ref
        message = f"invalid cell reference {ref!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidCoordinatesError(XlsxCoreError, ValueError):
    """Raised when numeric coordinates fall outside the sheet grid."""

    def __init__(self, col: int, row: int):
        self.col = col
        self.row = row
        super().__init__(f"invalid cell coordinates [{col}, {row}]")


class RowLimitExceededError(XlsxCoreError):
    """Raised when a shift would move content past the last row."""
    pass


class ColumnLimitExceededError(XlsxCoreError):
    """Raised when a shift would move content past the last column."""
    pass


class SheetNotFoundError(XlsxCoreError, KeyError):
    """Raised when a worksheet name is not part of the workbook."""

    def __init__(self, sheet: str):
        self.sheet = sheet
        super().__init__(f"sheet {sheet} does not exist")

    def __str__(self) -> str:
        return self.args[0]


class DecryptionError(XlsxCoreError):
    """Base class for decryption failures."""
    pass


class MalformedContainerError(DecryptionError):
    """The compound file is unreadable or its streams are truncated."""
    pass


class UnsupportedEncryptionMechanismError(DecryptionError):
    """The encryption version or algorithm is not supported."""
    pass


class MalformedEncryptionDescriptorError(DecryptionError):
    """The EncryptionInfo stream could not be parsed."""
    pass


class CipherInitializationError(DecryptionError):
    """The block cipher rejected the derived key or IV."""
    pass


class InvalidPasswordError(DecryptionError):
    """The password verifier does not match."""
    pass
