"""
Tests for swap, whale and liquidity extractors.
"""

from __future__ import annotations

import pytest

from backend_hookrelay.extractors import (
    EventKind,
    LiquidityExtractor,
    LiquidityKind,
    SwapExtractor,
    WhaleExtractor,
    extract_all,
)
from backend_hookrelay.ingestion import parse_batch
from payloads import RECIPIENT, SENDER, TOKEN_X, TOKEN_Y, batch, block, credit, debit, liquidity_event, swap_event, tx

THRESHOLD = 1_000_000


def _tx(**kwargs):
    """Parse a single transaction at block 200."""
    parsed = parse_batch(batch("test:x", apply=[block(200, [tx("0xtx", **kwargs)])]))
    return parsed.apply[0].transactions[0]


# -----------------------------------------------------------------------------
# Swap
# -----------------------------------------------------------------------------

def test_swap_event_extracted():
    events = SwapExtractor().extract(_tx(events=[swap_event(dx=1000, dy="u2500")]))
    assert len(events) == 1
    e = events[0]
    assert e.kind == EventKind.SWAP
    assert (e.amount_in, e.amount_out) == (1000, 2500)
    assert (e.token_in, e.token_out) == (TOKEN_X, TOKEN_Y)
    assert e.block_height == 200
    assert e.tx_hash == "0xtx"
    assert e.sender == SENDER


def test_failed_transaction_is_inert():
    """A failed transaction with a well-formed swap receipt yields nothing."""
    t = _tx(success=False, events=[swap_event()], operations=[credit(RECIPIENT, THRESHOLD * 10)])
    assert SwapExtractor().extract(t) == ()
    assert WhaleExtractor(THRESHOLD).extract(t) == ()
    assert LiquidityExtractor().extract(t) == ()


@pytest.mark.parametrize("event", [
    swap_event(dx="lots"),
    swap_event(dy=None),
    swap_event(token_x=""),
    swap_event(token_y=123),
    {"data": {"topic": "transfer", "dx": 1, "dy": 2, "token_x": "a", "token_y": "b"}},
])
def test_swap_incomplete_event_ignored(event):
    assert SwapExtractor().extract(_tx(events=[event])) == ()


def test_multiple_swaps_in_one_transaction():
    events = SwapExtractor().extract(_tx(events=[swap_event(dx=1), swap_event(dx=2)]))
    assert [e.amount_in for e in events] == [1, 2]


# -----------------------------------------------------------------------------
# Whale
# -----------------------------------------------------------------------------

def test_whale_threshold_boundary():
    """Exactly the threshold emits; one unit below does not."""
    extractor = WhaleExtractor(THRESHOLD)
    at = extractor.extract(_tx(operations=[credit(RECIPIENT, THRESHOLD)]))
    below = extractor.extract(_tx(operations=[credit(RECIPIENT, THRESHOLD - 1)]))
    assert len(at) == 1
    assert at[0].kind == EventKind.WHALE_TRANSFER
    assert at[0].amount == THRESHOLD
    assert at[0].from_sender == SENDER
    assert at[0].to_account == RECIPIENT
    assert at[0].currency == "STX"
    assert below == ()


def test_whale_ignores_debits():
    assert WhaleExtractor(THRESHOLD).extract(_tx(operations=[debit(SENDER, THRESHOLD * 5)])) == ()


def test_whale_uses_absolute_value():
    t = _tx(operations=[credit(RECIPIENT, -THRESHOLD)])
    events = WhaleExtractor(THRESHOLD).extract(t)
    assert [e.amount for e in events] == [THRESHOLD]


def test_whale_currency_filter():
    extractor = WhaleExtractor(THRESHOLD, currency="STX")
    assert extractor.extract(_tx(operations=[credit(RECIPIENT, THRESHOLD, currency="ALEX")])) == ()
    assert len(extractor.extract(_tx(operations=[credit(RECIPIENT, THRESHOLD)]))) == 1


def test_whale_rejects_negative_threshold():
    with pytest.raises(ValueError):
        WhaleExtractor(-1)


# -----------------------------------------------------------------------------
# Liquidity
# -----------------------------------------------------------------------------

def test_liquidity_mint_and_burn():
    t = _tx(events=[
        liquidity_event("mint", pool="pool-1"),
        liquidity_event("burn", sender="SP_LP", token_x="a", token_y="b"),
        liquidity_event("swap-x-for-y"),
    ])
    events = LiquidityExtractor().extract(t)
    assert [e.liquidity_kind for e in events] == [LiquidityKind.ADD, LiquidityKind.REMOVE]
    assert events[0].actor == SENDER
    assert events[0].pool == "pool-1"
    assert events[1].actor == "SP_LP"
    assert events[1].pool == "a/b"


def test_liquidity_without_actor_ignored():
    assert LiquidityExtractor().extract(_tx(sender="", events=[liquidity_event("mint")])) == ()


# -----------------------------------------------------------------------------
# Combined
# -----------------------------------------------------------------------------

def test_one_transaction_feeds_several_extractors():
    """No precedence: a swap that also moves a large credit yields both events."""
    t = _tx(operations=[credit(RECIPIENT, THRESHOLD)], events=[swap_event(), liquidity_event("mint")])
    events = extract_all([SwapExtractor(), WhaleExtractor(THRESHOLD), LiquidityExtractor()], [t])
    assert [e.kind for e in events] == [EventKind.SWAP, EventKind.WHALE_TRANSFER, EventKind.LIQUIDITY]


def test_extractor_exception_degrades_to_no_events():
    class Broken(SwapExtractor):
        def _extract(self, transaction):
            raise KeyError("schema drift")

    assert Broken().extract(_tx(events=[swap_event()])) == ()


def test_event_to_dict():
    e = SwapExtractor().extract(_tx(events=[swap_event()]))[0]
    d = e.to_dict()
    assert d["kind"] == "swap"
    assert d["tx_hash"] == "0xtx"
    assert d["block_height"] == 200
