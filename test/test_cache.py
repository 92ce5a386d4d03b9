from gastimator.core.cache import InMemoryGasCache
from gastimator.core.gas import AtLeastWithEstimate
from gastimator.core.transaction import CanonicalTransaction, TransactionKind

SENDER = "0x000000000000000000000000000000000000dEaD"
TOKEN = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


def call(nonce=1, gas_limit=None, sender=SENDER):
    return CanonicalTransaction(nonce=nonce, from_=sender, to=TOKEN, gas_limit=gas_limit, input=b"\xa9\x05\x9c\xbb")


def usage(estimate):
    return AtLeastWithEstimate(kind=TransactionKind.CONTRACT_CALL, at_least=700, estimate=estimate)


def test_store_then_lookup():
    cache = InMemoryGasCache()
    cache.store(call(), usage(50_000))
    assert cache.lookup(call()) == usage(50_000)
    assert len(cache) == 1


def test_non_cacheable_never_stored():
    cache = InMemoryGasCache()
    no_nonce = call(nonce=None)
    no_sender = call(sender=None)
    cache.store(no_nonce, usage(1))
    cache.store(no_sender, usage(1))
    assert cache.lookup(no_nonce) is None
    assert cache.lookup(no_sender) is None
    assert len(cache) == 0


def test_first_writer_wins():
    cache = InMemoryGasCache()
    cache.store(call(), usage(50_000))
    cache.store(call(), usage(90_000))
    assert cache.lookup(call()).estimate == 50_000


def test_gas_limit_is_part_of_the_key():
    cache = InMemoryGasCache()
    cache.store(call(gas_limit=100_000), usage(50_000))
    assert cache.lookup(call(gas_limit=200_000)) is None
    assert cache.lookup(call()) is None
    cache.store(call(gas_limit=200_000), usage(60_000))
    assert len(cache) == 2


def test_lru_bound_evicts_least_recently_used():
    cache = InMemoryGasCache(max_entries=2)
    cache.store(call(nonce=1), usage(1))
    cache.store(call(nonce=2), usage(2))
    # Touch nonce 1 so nonce 2 becomes the eviction candidate
    assert cache.lookup(call(nonce=1)) is not None
    cache.store(call(nonce=3), usage(3))
    assert len(cache) == 2
    assert cache.lookup(call(nonce=2)) is None
    assert cache.lookup(call(nonce=1)) is not None
    assert cache.lookup(call(nonce=3)) is not None


def test_zero_max_entries_is_unbounded():
    cache = InMemoryGasCache(max_entries=0)
    for nonce in range(50):
        cache.store(call(nonce=nonce), usage(nonce))
    assert len(cache) == 50


def test_rejected_overwrite_does_not_evict():
    cache = InMemoryGasCache(max_entries=2)
    cache.store(call(nonce=1), usage(1))
    cache.store(call(nonce=2), usage(2))
    cache.store(call(nonce=2), usage(99))
    assert len(cache) == 2
    assert cache.lookup(call(nonce=1)).estimate == 1
    assert cache.lookup(call(nonce=2)).estimate == 2
