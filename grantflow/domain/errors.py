"""Domain-level exceptions for grantflow."""

from enum import Enum


class GrantflowError(Exception):
    """Base class for grantflow errors."""

    pass


class ProviderErrorKind(str, Enum):
    """Status class of a failed provider call."""

    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    TRANSPORT = "transport"
    OTHER = "other"


class ProviderError(GrantflowError):
    """Raised when a provider fails (throttling, network, auth, bad request).

    Attributes:
        kind: Status class used by the gateway to pick a retry policy
        status_code: HTTP status, when the provider answered at all
        retry_after: Server-suggested delay in seconds, if any
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ProviderErrorKind = ProviderErrorKind.OTHER,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def transient(self) -> bool:
        return self.kind != ProviderErrorKind.OTHER


class StoreError(GrantflowError):
    """Raised when a store cannot read or write a record."""

    pass


class GrantNotFoundError(StoreError):
    """Raised when a grant id is not present in the store."""

    def __init__(self, org_id: str, grant_id: str):
        self.org_id = org_id
        self.grant_id = grant_id
        super().__init__(f"Grant '{grant_id}' not found for org '{org_id}'")


class UnknownGateError(GrantflowError):
    """Raised when an approval references a gate that is not registered."""

    def __init__(self, gate_key: str, available: list[str]):
        self.gate_key = gate_key
        self.available = available
        super().__init__(
            f"Gate '{gate_key}' is not registered. "
            f"Available gates: {', '.join(available) or 'none'}"
        )
