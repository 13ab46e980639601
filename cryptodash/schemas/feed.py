"""
Feed schemas using Pydantic for validation and serialization.
"""

from pydantic import AliasChoices, BaseModel, Field
from typing import List, Literal, Optional

class TradeRecord(BaseModel):
    """Single trade from a `{"type":"trade"}` frame."""
    price: float = Field(validation_alias=AliasChoices("p", "price"))
    volume: float = Field(validation_alias=AliasChoices("v", "volume"))
    timestamp: int = Field(validation_alias=AliasChoices("t", "timestamp"))   # feed-native epoch units (ms for finnhub)
    symbol: Optional[str] = Field(default=None, validation_alias=AliasChoices("s", "symbol"))

class ControlFrame(BaseModel):
    """Subscribe/unsubscribe control message sent to the feed."""
    type: Literal["subscribe", "unsubscribe"]
    symbol: str

class FeedHealth(BaseModel):
    """Live feed status."""
    state: str                      # ConnectionState value
    connected: bool
    last_error: Optional[str] = None
    symbols: List[str]
    reconnect_attempt: int
    reconnects: int
    messages_received: int
    frames_dropped: int
    sink_size: int
    sink_capacity: int
    last_message_s_ago: Optional[float] = None

class SymbolsUpdate(BaseModel):
    """Request body for replacing the subscription set."""
    symbols: List[str]
