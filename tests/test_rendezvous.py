import threading

import pytest

from oidc_test_cli.rendezvous import ChannelClosed, OneShot


def test_value_is_delivered_once():
    channel = OneShot()
    assert channel.send("abc123") is True
    assert channel.send("other") is False
    assert channel.close() is False
    assert channel.receive(timeout=1) == "abc123"


def test_close_without_value_raises():
    channel = OneShot()
    assert channel.close() is True
    assert channel.send("late") is False
    with pytest.raises(ChannelClosed):
        channel.receive(timeout=1)


def test_receive_times_out():
    with pytest.raises(TimeoutError):
        OneShot().receive(timeout=0.05)


def test_racing_senders_deliver_exactly_one_value():
    channel = OneShot()
    barrier = threading.Barrier(8)
    results = []

    def sender(value):
        barrier.wait()
        results.append(channel.send(value))

    threads = [threading.Thread(target=sender, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert channel.consumed
    assert channel.receive(timeout=1) in range(8)


def test_receiver_blocks_until_sender_runs():
    channel = OneShot()
    timer = threading.Timer(0.05, channel.send, args=("late-code",))
    timer.start()
    try:
        assert channel.receive(timeout=5) == "late-code"
    finally:
        timer.cancel()
