import time

import pytest

from starchain.errors import InvalidInput, NoPendingRequest
from starchain.mempool import Ed25519Verifier, RequestMempool

WINDOW_MS = 300 * 1000


def test_request_creates_entry(mempool, clock, wallet):
    view = mempool.request_validation(wallet.address)
    ts = int(clock.now * 1000)
    assert view == {
        "walletAddress": wallet.address,
        "requestTimeStamp": ts,
        "message": f"{wallet.address}:{ts}:starRegistry",
        "validationWindow": WINDOW_MS,
    }
    entry = mempool.lookup(wallet.address)
    assert entry.expire_at == ts + WINDOW_MS


def test_repeat_request_keeps_first_message(mempool, clock, wallet):
    first = mempool.request_validation(wallet.address)
    clock.advance(42)
    second = mempool.request_validation(wallet.address)

    assert second["message"] == first["message"]
    assert second["requestTimeStamp"] == first["requestTimeStamp"]
    assert second["validationWindow"] == first["validationWindow"] - 42_000


def test_request_requires_address(mempool):
    with pytest.raises(InvalidInput):
        mempool.request_validation("")


def test_entry_expires_after_window(mempool, clock, wallet):
    mempool.request_validation(wallet.address)
    clock.advance(299)
    assert mempool.lookup(wallet.address) is not None

    clock.advance(1)
    assert mempool.lookup(wallet.address) is None
    assert wallet.address not in mempool.mempool

    with pytest.raises(NoPendingRequest):
        mempool.verify_and_grant(wallet.address, wallet.sign("anything"))


def test_request_after_expiry_starts_new_window(mempool, clock, wallet):
    first = mempool.request_validation(wallet.address)
    clock.advance(301)
    second = mempool.request_validation(wallet.address)
    assert second["requestTimeStamp"] > first["requestTimeStamp"]
    assert second["validationWindow"] == WINDOW_MS


def test_verify_without_request(mempool, wallet):
    with pytest.raises(NoPendingRequest):
        mempool.verify_and_grant(wallet.address, "00")


@pytest.mark.parametrize("address,signature", [("", "00"), ("abc", ""), (None, None)])
def test_verify_requires_fields(mempool, address, signature):
    with pytest.raises(InvalidInput):
        mempool.verify_and_grant(address, signature)


def test_bad_signature_leaves_request_pending(mempool, wallet, other_wallet):
    view = mempool.request_validation(wallet.address)

    res = mempool.verify_and_grant(wallet.address, other_wallet.sign(view["message"]))
    assert not res.verified
    assert res.msg == "invalid/unverified message"
    assert not mempool.has_grant(wallet.address)
    assert mempool.lookup(wallet.address) is not None

    res = mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))
    assert res.verified
    assert mempool.has_grant(wallet.address)


def test_grant_keeps_request_pending(mempool, clock, wallet):
    view = mempool.request_validation(wallet.address)
    clock.advance(10)
    res = mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))

    assert res.to_dict() == {
        "registerStar": True,
        "status": {
            "address": wallet.address,
            "requestTimeStamp": view["requestTimeStamp"],
            "message": view["message"],
            "validationWindow": WINDOW_MS - 10_000,
            "messageSignature": True,
        },
    }
    assert mempool.lookup(wallet.address) is not None


def test_grant_outlives_request(mempool, clock, wallet):
    view = mempool.request_validation(wallet.address)
    mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))
    clock.advance(600)
    assert mempool.lookup(wallet.address) is None
    assert mempool.has_grant(wallet.address)


def test_consume_and_revoke_are_idempotent(mempool, wallet):
    view = mempool.request_validation(wallet.address)
    mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))

    for _ in range(2):
        mempool.consume_grant(wallet.address)
        mempool.revoke_request(wallet.address)

    assert not mempool.has_grant(wallet.address)
    assert mempool.lookup(wallet.address) is None


def test_prune_expired(mempool, clock, wallet, other_wallet):
    mempool.request_validation(wallet.address)
    clock.advance(200)
    mempool.request_validation(other_wallet.address)
    clock.advance(100)

    assert mempool.prune_expired() == 1
    assert set(mempool.snapshot()["mempool"]) == {other_wallet.address}


def test_snapshot(mempool, wallet):
    view = mempool.request_validation(wallet.address)
    mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))
    snap = mempool.snapshot()
    assert snap["mempool"][wallet.address]["message"] == view["message"]
    assert snap["access_granted"] == {wallet.address: True}


def test_background_sweeper(clock, wallet):
    m = RequestMempool(window_sec=300, clock=clock)
    m.request_validation(wallet.address)
    clock.advance(301)
    m.start_sweeper(0.01)
    try:
        deadline = time.time() + 5
        while wallet.address in m.mempool and time.time() < deadline:
            time.sleep(0.01)
        assert wallet.address not in m.mempool
    finally:
        m.stop()


def test_verifier_rejects_malformed_input(wallet):
    v = Ed25519Verifier()
    sig = wallet.sign("hello")
    assert v.verify("hello", wallet.address, sig)
    assert not v.verify("hello!", wallet.address, sig)
    assert not v.verify("hello", wallet.address, "zz")
    assert not v.verify("hello", "abcd", sig)
    assert not v.verify("hello", "not-hex", sig)
    assert not v.verify("hello", wallet.address, sig[:-2])


@pytest.mark.parametrize("address", [{"a": 1}, ["x"], 42])
def test_non_string_address_rejected(mempool, address):
    with pytest.raises(InvalidInput):
        mempool.request_validation(address)
    with pytest.raises(InvalidInput):
        mempool.verify_and_grant(address, "00")


def test_non_string_signature_rejected(mempool, wallet):
    mempool.request_validation(wallet.address)
    with pytest.raises(InvalidInput):
        mempool.verify_and_grant(wallet.address, ["00"])


def test_grants_returns_copy(mempool, wallet, other_wallet):
    assert mempool.grants() == {}
    view = mempool.request_validation(wallet.address)
    mempool.verify_and_grant(wallet.address, wallet.sign(view["message"]))
    mempool.request_validation(other_wallet.address)

    grants = mempool.grants()
    assert grants == {wallet.address: True}
    grants[other_wallet.address] = True
    assert not mempool.has_grant(other_wallet.address)

    mempool.consume_grant(wallet.address)
    assert mempool.grants() == {}
