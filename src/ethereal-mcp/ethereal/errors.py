from typing import Any, Optional


class EtherealError(Exception):
    """Base class for every error raised by ethereal."""


class NotFound(EtherealError, KeyError):
    """Cache miss: the key is absent or its entry has expired."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else "not found"


class InvalidArgument(EtherealError, ValueError):
    pass


class UnsupportedChain(EtherealError, ValueError):
    def __init__(self, chain: Any) -> None:
        super().__init__(f"Unsupported chain '{chain}'.")
        self.chain = chain


class ConfigurationError(EtherealError, ValueError):
    pass


class CacheTypeError(EtherealError, TypeError):
    pass


class DecodeError(EtherealError, ValueError):
    pass


class TransportError(EtherealError):
    pass


class UpstreamError(EtherealError):
    """The remote API reported a failure; ``message`` is kept verbatim."""

    def __init__(self, message: str, result: Optional[Any] = None, source: str = "Etherscan") -> None:
        detail = f"{source} error: {message}"
        if isinstance(result, str) and result and result != message:
            detail = f"{detail} ({result})"
        super().__init__(detail)
        self.message = message
        self.result = result


class RateLimitError(UpstreamError):
    pass
