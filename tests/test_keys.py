import asyncio
import io
import os

import pytest

from trading_hud.keys import QUIT_KEYS, KeyPoller

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs a POSIX pseudo-terminal")


@pytest.fixture
def pseudo_terminal():
    pty = pytest.importorskip("pty")
    master, slave = pty.openpty()
    stream = open(slave, "rb", buffering=0, closefd=False)
    try:
        yield master, slave, stream
    finally:
        stream.close()
        os.close(slave)
        os.close(master)


def test_non_terminal_stream_never_reports_keys():
    stream = io.StringIO("q")

    with KeyPoller(stream) as poller:
        assert poller.poll(0.0) is None
        assert poller.quit_requested(0.0) is False
        assert asyncio.run(poller.wait_for_quit(0.0)) is False


def test_poller_outside_context_is_disabled():
    poller = KeyPoller(io.StringIO())

    assert poller.poll(0.01) is None


def test_quit_keys():
    assert "q" in QUIT_KEYS
    assert "Q" in QUIT_KEYS
    assert "x" not in QUIT_KEYS


@posix_only
def test_terminal_keypress_requests_quit_and_restores_settings(pseudo_terminal):
    import termios

    master, slave, stream = pseudo_terminal
    saved = termios.tcgetattr(slave)

    with KeyPoller(stream) as poller:
        assert termios.tcgetattr(slave)[3] & termios.ICANON == 0
        assert poller.poll(0.05) is None

        os.write(master, b"x")
        assert poller.quit_requested(0.5) is False

        os.write(master, b"q")
        assert poller.quit_requested(0.5) is True

    assert termios.tcgetattr(slave) == saved


@posix_only
def test_wait_for_quit_polls_off_the_event_loop(pseudo_terminal):
    master, _, stream = pseudo_terminal

    async def _run():
        ticks = 0

        async def _ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.01)

        ticker = asyncio.create_task(_ticker())
        try:
            idle = await poller.wait_for_quit(0.2)
        finally:
            ticker.cancel()
        os.write(master, b"Q")
        pressed = await poller.wait_for_quit(0.5)
        return idle, pressed, ticks

    with KeyPoller(stream) as poller:
        idle, pressed, ticks = asyncio.run(_run())

    assert idle is False
    assert pressed is True
    # The loop kept running while the key poll was waiting.
    assert ticks > 3
