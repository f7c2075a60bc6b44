"""Exception hierarchy for the memecoin sniper.

Library code raises these; the long-running service loops catch them,
log them and decide whether to retry, skip or give up.
"""


class SniperError(Exception):
    """Base class for every error raised by this package."""


class RpcError(SniperError):
    """A Starknet JSON-RPC request could not be completed."""


class TransientFetchError(RpcError):
    """Network hiccup, timeout or 5xx from the RPC node.

    Safe to retry with the same request and an unchanged cursor.
    """


class ContractCallError(RpcError):
    """The node answered but the call itself failed (JSON-RPC error object)."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class InvalidTokenError(SniperError):
    """The address does not describe a token we are willing to report on.

    Raised when the factory does not recognize the token or when the
    token was launched on an exchange other than the configured one.
    Never retried.
    """

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Invalid token {address}: {reason}")
        self.address = address
        self.reason = reason


class TokenNotLaunchedError(InvalidTokenError):
    """The token is known to the factory but has no locked liquidity yet."""

    def __init__(self, address: str) -> None:
        super().__init__(address, "token has not been launched")


class DecodeError(SniperError):
    """A result buffer was malformed or shorter than its schema."""

    def __init__(self, message: str, index: int | None = None) -> None:
        if index is not None:
            message = f"{message} (at word {index})"
        super().__init__(message)
        self.index = index


class ExternalServiceError(SniperError):
    """An off-chain HTTP service failed or returned unusable data."""


class QuoteUnavailableError(ExternalServiceError):
    """The quoting service failed or returned non-numeric data."""


class ExplorerUnavailableError(ExternalServiceError):
    """The holder/balance explorer API failed or returned unusable data."""


class DivisionByZero(SniperError, ZeroDivisionError):
    """A Fraction was built with, or divided by, a zero value."""


class InvalidAccountError(SniperError):
    """The explorer does not know the address as an account."""

    def __init__(self, account: str) -> None:
        super().__init__(f"{account} is not a valid account")
        self.account = account
