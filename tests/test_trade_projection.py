"""
Trade Projection Tests
"""

from cryptodash.schemas.feed import TradeRecord
from cryptodash.services.trade_projection import extract_trades, latest_price_by_symbol


TRADE_FRAME = {
    "type": "trade",
    "data": [
        {"p": 42000.5, "v": 0.01, "t": 1700000000000, "s": "BINANCE:BTCUSDT"},
        {"p": 2200.0, "v": 1.5, "t": 1700000000100, "s": "BINANCE:ETHUSDT"},
    ],
}


def test_extracts_trade_records_in_order():
    trades = extract_trades([TRADE_FRAME])

    assert trades == [
        TradeRecord(price=42000.5, volume=0.01, timestamp=1700000000000, symbol="BINANCE:BTCUSDT"),
        TradeRecord(price=2200.0, volume=1.5, timestamp=1700000000100, symbol="BINANCE:ETHUSDT"),
    ]


def test_symbol_is_optional():
    trades = extract_trades([{"type": "trade", "data": [{"p": 1, "v": 2, "t": 3}]}])

    assert trades[0].symbol is None
    assert trades[0].price == 1.0


def test_skips_non_trade_and_malformed():
    messages = [
        {"type": "ping"},
        "opaque",
        42,
        {"type": "trade", "data": "nope"},
        {"type": "trade", "data": [{"p": "x", "v": 1, "t": 1}, {"v": 1, "t": 1}, None]},
        {"type": "trade", "data": [{"p": 5, "v": 1, "t": 9, "s": "X"}]},
    ]

    trades = extract_trades(messages)

    assert [(t.symbol, t.price) for t in trades] == [("X", 5.0)]


def test_latest_price_by_symbol():
    later = {"type": "trade", "data": [{"p": 43000, "v": 0.2, "t": 1700000001000, "s": "BINANCE:BTCUSDT"}]}
    anonymous = {"type": "trade", "data": [{"p": 1, "v": 1, "t": 1}]}

    prices = latest_price_by_symbol([TRADE_FRAME, later, anonymous])

    assert prices == {"BINANCE:BTCUSDT": 43000.0, "BINANCE:ETHUSDT": 2200.0}


def test_record_serializes_with_field_names():
    record = TradeRecord.model_validate({"p": 1.5, "v": 2, "t": 10, "s": "X"})

    assert record.model_dump() == {"price": 1.5, "volume": 2.0, "timestamp": 10, "symbol": "X"}
