"""
Stream Event Schemas

This module defines the Pydantic models a Zaif stream message decodes into.

Key Principle:
    One WebSocket text message decodes to exactly one StreamEvent. Fields the
    message omits (or sends as null) decode to their empty value, so consumers
    never need to distinguish "absent" from "empty".

Models:
    - LastPrice: Most recent traded price and its side
    - StreamTrade: One executed trade
    - StreamEvent: Full message (order book levels, trades, last price)

All models are frozen: a decoded event is shared with the consumer as-is
and cannot be mutated after delivery.

Wire example:
    {
        "asks": [[5010000.0, 0.01], [5011000.0, 0.2]],
        "bids": [[5005000.0, 0.05]],
        "target_users": [],
        "trades": [{"currenty_pair": "btc_jpy", "trade_type": "bid",
                    "price": 5010000.0, "tid": 123, "amount": 0.01,
                    "date": 1704110400}],
        "last_price": {"action": "bid", "price": 5010000.0},
        "currency_pair": "btc_jpy",
        "timestamp": "2024-01-01 21:00:00.123456"
    }
"""

import json
from datetime import datetime
from typing import Any, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from core.utils.time import parse_exchange_timestamp, to_utc_datetime


# [price, amount]
PriceLevel = Tuple[float, float]


class _WireModel(BaseModel):
    """Common config: frozen, extra keys ignored, nulls treated as absent."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# ============================================
# Last Price
# ============================================

class LastPrice(_WireModel):
    """
    Last traded price.

    Attributes:
        action: Taker side of the last trade ("ask" or "bid"; empty if unknown)
        price: Last traded price
    """

    action: str = Field(default="", description="Taker side of the last trade")
    price: float = Field(default=0.0, description="Last traded price")


# ============================================
# Trade Record
# ============================================

class StreamTrade(_WireModel):
    """
    One executed trade carried by a stream message.

    The exchange sends the pair under the misspelled key "currenty_pair";
    either spelling populates currency_pair.

    Attributes:
        currency_pair: Market of the trade (e.g., "btc_jpy")
        trade_type: Taker side ("ask" or "bid")
        price: Execution price
        amount: Executed amount in base currency
        tid: Exchange trade sequence id
        date: Execution time, seconds since epoch
    """

    currency_pair: str = Field(
        default="",
        validation_alias=AliasChoices("currency_pair", "currenty_pair"),
        description="Market of the trade"
    )
    trade_type: str = Field(default="", description="Taker side")
    price: float = Field(default=0.0, description="Execution price")
    amount: float = Field(default=0.0, description="Executed amount")
    tid: int = Field(default=0, description="Trade sequence id")
    date: int = Field(default=0, description="Execution time (unix seconds)")

    @property
    def executed_at(self) -> Optional[datetime]:
        """Execution time as a UTC datetime, or None when date is unset."""
        if not self.date:
            return None
        return to_utc_datetime(self.date)


# ============================================
# Stream Event
# ============================================

class StreamEvent(_WireModel):
    """
    Decoded Zaif stream message.

    Attributes:
        asks: Ask levels, best first, as (price, amount)
        bids: Bid levels, best first, as (price, amount)
        target_users: User ids the message is addressed to (usually empty)
        trades: Recent trades, in wire order
        last_price: Last traded price
        currency_pair: Market the message belongs to
        timestamp: Server timestamp string as sent (exchange local time)

    Example:
        >>> event = StreamEvent.from_message('{"currency_pair": "btc_jpy"}')
        >>> event.currency_pair, event.asks, event.last_price.price
        ('btc_jpy', (), 0.0)
    """

    asks: Tuple[PriceLevel, ...] = Field(default=(), description="Ask levels")
    bids: Tuple[PriceLevel, ...] = Field(default=(), description="Bid levels")
    target_users: Tuple[str, ...] = Field(default=(), description="Addressed users")
    trades: Tuple[StreamTrade, ...] = Field(default=(), description="Recent trades")
    last_price: LastPrice = Field(default_factory=LastPrice, description="Last traded price")
    currency_pair: str = Field(default="", description="Originating trading pair")
    timestamp: str = Field(default="", description="Server timestamp")

    @classmethod
    def from_message(cls, raw: Union[str, bytes]) -> "StreamEvent":
        """
        Decode one wire message.

        Raises:
            json.JSONDecodeError: If the payload is not JSON
            pydantic.ValidationError: If the JSON is not an event object
        """
        return cls.model_validate(json.loads(raw))

    @property
    def server_time(self) -> Optional[datetime]:
        """Server timestamp as a UTC datetime, or None if the message had none."""
        return parse_exchange_timestamp(self.timestamp)

    @property
    def best_ask(self) -> Optional[PriceLevel]:
        return self.asks[0] if self.asks else None

    @property
    def best_bid(self) -> Optional[PriceLevel]:
        return self.bids[0] if self.bids else None
