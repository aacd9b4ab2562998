import pytest

from rabbitsim.requests_pool import UNSET_DATA, PoolError, RequestPool


def test_new_request_is_reset():
    pool = RequestPool(4)
    rq = pool.get_new_request()
    assert rq.tid == 1
    assert rq.done is False
    assert rq.rcv_data == 0xDEADDEAD
    assert rq.rcv_data == UNSET_DATA


def test_tids_are_distinct():
    pool = RequestPool(5)
    tids = [pool.get_new_request().tid for _ in range(5)]
    assert sorted(tids) == [1, 2, 3, 4, 5]


def test_lookup_by_tid():
    pool = RequestPool(3)
    first = pool.get_new_request()
    second = pool.get_new_request()
    assert pool.get_request_by_tid(second.tid) is second
    assert pool.get_request_by_tid(first.tid) is first
    assert pool.get_request_by_tid(3) is None


def test_free_makes_pool_empty():
    pool = RequestPool(2)
    rq = pool.get_new_request()
    assert not pool.is_empty()
    pool.free_request(rq)
    assert pool.is_empty()
    assert pool.get_request_by_tid(rq.tid) is None


def test_freed_request_is_reused_first():
    pool = RequestPool(3)
    first = pool.get_new_request()
    pool.get_new_request()
    pool.free_request(first)
    assert pool.get_new_request() is first


def test_reused_request_is_reset():
    pool = RequestPool(1)
    rq = pool.get_new_request()
    rq.done = True
    rq.rcv_data = 7
    pool.free_request(rq)
    again = pool.get_new_request()
    assert again.done is False
    assert again.rcv_data == UNSET_DATA


def test_exhausted_pool_raises():
    pool = RequestPool(2)
    pool.get_new_request()
    pool.get_new_request()
    with pytest.raises(PoolError):
        pool.get_new_request()


def test_free_unknown_request_raises():
    pool = RequestPool(2)
    rq = pool.get_new_request()
    pool.free_request(rq)
    with pytest.raises(PoolError):
        pool.free_request(rq)


def test_wait_empty_with_outstanding_request_raises():
    pool = RequestPool(2)
    pool.get_new_request()
    with pytest.raises(PoolError):
        pool.get_new_request(wait_empty=True)


def test_wait_empty_on_empty_pool_succeeds():
    pool = RequestPool(2)
    rq = pool.get_new_request(wait_empty=True)
    assert pool.get_request_by_tid(rq.tid) is rq