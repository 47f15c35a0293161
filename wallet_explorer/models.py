"""
Wallet Explorer Data Models - Transactions, classifications and token metadata.

Classifications are derived per request and never persisted. Token metadata
is owned by the metadata cache and immutable once stored.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


DEFAULT_DECIMALS = 18
MAX_DECIMALS = 255


class TransferKind(Enum):
    """What a transaction moved."""
    NATIVE_TRANSFER = "native_transfer"
    DIRECT_TOKEN_TRANSFER = "direct_token_transfer"
    PROXIED_TOKEN_TRANSFER = "proxied_token_transfer"
    UNKNOWN = "unknown"


class Direction(Enum):
    """Direction of a transfer relative to a reference address."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    UNKNOWN = "unknown"


class MetadataSource(Enum):
    """Which resolution tier produced a token's symbol."""
    ONCHAIN = "onchain"
    BYTES32_FALLBACK = "bytes32_fallback"
    EXPLORER_TOKEN_INFO = "explorer_token_info"
    EXPLORER_SOURCE = "explorer_source"
    PLACEHOLDER = "placeholder"


def _to_int(value: Any, default: int = 0) -> int:
    """Parse explorer numeric fields, which arrive as decimal strings."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class RawTransaction:
    """One transaction record as sourced from the explorer."""
    hash: str
    from_address: str
    to_address: Optional[str]  # None for contract creation
    value_wei: int
    input_data: str
    block_number: int
    timestamp: int
    gas_used: int = 0
    gas_price: int = 0
    transaction_index: int = 0
    is_error: bool = False
    gas_limit: int = 0
    block_hash: Optional[str] = None

    @classmethod
    def from_explorer(cls, row: dict[str, Any]) -> "RawTransaction":
        """Create from an explorer ``txlist`` row."""
        return cls(
            hash=row.get("hash", ""),
            from_address=row.get("from", "") or "",
            to_address=row.get("to") or None,
            value_wei=_to_int(row.get("value")),
            input_data=row.get("input") or "",
            block_number=_to_int(row.get("blockNumber")),
            timestamp=_to_int(row.get("timeStamp")),
            gas_used=_to_int(row.get("gasUsed")),
            gas_price=_to_int(row.get("gasPrice")),
            transaction_index=_to_int(row.get("transactionIndex")),
            is_error=str(row.get("isError", "0")) != "0",
            gas_limit=_to_int(row.get("gas")),
            block_hash=row.get("blockHash") or None,
        )


@dataclass(frozen=True)
class ClassifiedTransfer:
    """
    Classification of one transaction.

    Token kinds always carry both the token contract and the raw amount
    (smallest unit, before decimals).
    """
    kind: TransferKind
    direction: Direction
    token_contract: Optional[str] = None
    token_amount_raw: Optional[int] = None

    def __post_init__(self) -> None:
        if self.is_token_transfer and (
            self.token_contract is None or self.token_amount_raw is None
        ):
            raise ValueError(
                f"{self.kind.value} requires token_contract and token_amount_raw"
            )

    @property
    def is_token_transfer(self) -> bool:
        return self.kind in (
            TransferKind.DIRECT_TOKEN_TRANSFER,
            TransferKind.PROXIED_TOKEN_TRANSFER,
        )


@dataclass(frozen=True)
class TokenMetadata:
    """Resolved display metadata for a token contract."""
    contract_address: str
    symbol: str
    decimals: int = DEFAULT_DECIMALS
    name: Optional[str] = None
    source: MetadataSource = MetadataSource.ONCHAIN

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= MAX_DECIMALS:
            raise ValueError(f"decimals out of uint8 range: {self.decimals}")
        if not self.symbol:
            raise ValueError("symbol must be non-empty")

    @property
    def is_placeholder(self) -> bool:
        """True when no source could name the token."""
        return self.source == MetadataSource.PLACEHOLDER

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "contract_address": self.contract_address,
            "decimals": self.decimals,
            "symbol": self.symbol,
            "name": self.name,
            "source": self.source.value,
        }


@dataclass
class AnnotatedTransaction:
    """A classified transaction decorated with human-readable fields."""
    transaction_hash: str
    from_address: str
    to_address: Optional[str]
    value: str
    transaction_type: str
    block_number: int
    timestamp: int
    date: str
    status: int
    type: str
    token_amount: Optional[str] = None
    token_amount_raw: Optional[int] = None
    token_symbol: Optional[str] = None
    token_decimals: Optional[int] = None
    token_contract: Optional[str] = None
    token_type: Optional[str] = None
    gas_price: int = 0
    gas_limit: int = 0
    gas_used: int = 0
    block_hash: Optional[str] = None
    transaction_index: int = 0
    classification: Optional[ClassifiedTransfer] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "transaction_hash": self.transaction_hash,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "value": self.value,
            "token_amount": self.token_amount,
            "token_amount_raw": (
                str(self.token_amount_raw) if self.token_amount_raw is not None else None
            ),
            "token_symbol": self.token_symbol,
            "token_decimals": self.token_decimals,
            "token_contract": self.token_contract,
            "token_type": self.token_type,
            "transaction_type": self.transaction_type,
            "gas_price": str(self.gas_price),
            "gas_limit": str(self.gas_limit),
            "gas_used": str(self.gas_used),
            "block_number": self.block_number,
            "block_hash": self.block_hash,
            "timestamp": self.timestamp,
            "date": self.date,
            "transaction_index": self.transaction_index,
            "status": self.status,
            "type": self.type,
        }


@dataclass
class TransactionStats:
    """Incoming/outgoing counts for a set of transactions."""
    incoming_count: int = 0
    outgoing_count: int = 0
    total_transactions: Optional[int] = None
    is_limit_reached: bool = False
    limit_warning: Optional[dict[str, str]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_transactions": self.total_transactions,
            "incoming_count": self.incoming_count,
            "outgoing_count": self.outgoing_count,
            "is_limit_reached": self.is_limit_reached,
            "limit_warning": self.limit_warning,
        }


@dataclass
class Pagination:
    """Pagination state of one transaction page."""
    current_page: int
    page_size: int
    has_next_page: bool
    has_prev_page: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "currentPage": self.current_page,
            "pageSize": self.page_size,
            "totalTransactions": None,
            "totalPages": None,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


@dataclass
class TransactionPage:
    """One page of annotated wallet transactions."""
    transactions: list[AnnotatedTransaction] = field(default_factory=list)
    stats: TransactionStats = field(default_factory=TransactionStats)
    pagination: Optional[Pagination] = None
    warning: Optional[dict[str, str]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transactions": [tx.to_dict() for tx in self.transactions],
            "stats": self.stats.to_dict(),
            "pagination": self.pagination.to_dict() if self.pagination else None,
            "warning": self.warning,
        }


@dataclass(frozen=True)
class BalanceResult:
    """Current balance of an address."""
    address: str
    balance: str
    block_number: int
    unit: str = "ETH"

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "balance": self.balance,
            "blockNumber": self.block_number,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class BalanceAtDate:
    """Balance of an address at the last block on or before a date."""
    balance: str
    block_number: int
    timestamp: int
    date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": self.balance,
            "blockNumber": self.block_number,
            "timestamp": self.timestamp,
            "date": self.date,
        }


@dataclass(frozen=True)
class TokenTransferLog:
    """An ERC-20 ``Transfer`` event decoded from a receipt."""
    token_contract: str
    token_symbol: str
    token_decimals: int
    token_amount: str
    token_amount_raw: int
    from_address: str
    to_address: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_contract": self.token_contract,
            "token_symbol": self.token_symbol,
            "token_decimals": self.token_decimals,
            "token_amount": self.token_amount,
            "token_amount_raw": str(self.token_amount_raw),
            "from": self.from_address,
            "to": self.to_address,
        }


@dataclass(frozen=True)
class MetadataResolution:
    """
    Outcome of one metadata resolution.

    A placeholder with no ``failures`` means the token has no discoverable
    name; a placeholder with failures means lookups could not complete.
    """
    metadata: TokenMetadata
    from_cache: bool = False
    failures: tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return self.metadata.is_placeholder and bool(self.failures)
