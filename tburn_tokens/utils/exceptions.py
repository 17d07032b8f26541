from typing import Any, Dict, Optional


class ErrorCodes:
    """Numeric error codes attached to TBurnTokensError instances"""
    UNSUPPORTED_STANDARD = 1001
    INVALID_ADDRESS = 1002
    RPC_ERROR = 2001
    RPC_TIMEOUT = 2002
    CONFIG_FILE_NOT_FOUND = 3001
    CONFIG_VALIDATION_FAILED = 3002
    PERSISTENCE_FAILED = 4001


class TBurnTokensError(Exception):
    """Base exception class for the token deployment service"""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result


class UnsupportedStandardError(TBurnTokensError):
    """Token standard outside the closed TBC-20/721/1155 set (caller bug)"""

    def __init__(self, standard: Any):
        super().__init__(
            f"Unsupported token standard: {standard}",
            code=ErrorCodes.UNSUPPORTED_STANDARD,
            details={"standard": str(standard)}
        )


class InvalidAddressError(TBurnTokensError):
    """Address that cannot be interpreted in any known format"""

    def __init__(self, address: str, reason: str = "unrecognized address format"):
        super().__init__(
            f"Invalid address {address!r}: {reason}",
            code=ErrorCodes.INVALID_ADDRESS,
            details={"address": address}
        )


class APIError(TBurnTokensError):
    """Chain RPC call error"""

    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        details = {"method": method} if method else None
        super().__init__(message, code=code, details=details)


class ConfigurationError(TBurnTokensError):
    """Configuration loading or validation error"""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        field: Optional[str] = None,
        code: int = ErrorCodes.CONFIG_VALIDATION_FAILED
    ):
        details = {}
        if config_file:
            details["config_file"] = config_file
        if field:
            details["field"] = field
        super().__init__(message, code=code, details=details)


class PersistenceError(TBurnTokensError):
    """Durable store write failure"""

    def __init__(self, message: str, contract_address: Optional[str] = None, cause: Optional[Exception] = None):
        details = {"contract_address": contract_address} if contract_address else None
        super().__init__(
            message,
            code=ErrorCodes.PERSISTENCE_FAILED,
            details=details,
            cause=cause
        )
