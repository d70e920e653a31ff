"""Tests for the reader/writer lock."""

from __future__ import annotations

import threading
import time

from shinkan.storage import ReadWriteLock


def test_readers_overlap_and_writer_excludes():
    lock = ReadWriteLock()
    events = []
    lock.acquire_read()
    lock.acquire_read()

    def writer():
        with lock.write():
            events.append("write")

    thread = threading.Thread(target=writer)
    thread.start()
    time.sleep(0.05)
    assert events == []

    lock.release_read()
    lock.release_read()
    thread.join(timeout=2)
    assert events == ["write"]


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    events = []
    lock.acquire_read()

    def writer():
        with lock.write():
            events.append("write")

    def reader():
        with lock.read():
            events.append("read")

    writer_thread = threading.Thread(target=writer)
    writer_thread.start()
    time.sleep(0.05)
    reader_thread = threading.Thread(target=reader)
    reader_thread.start()
    time.sleep(0.05)
    assert events == []

    lock.release_read()
    writer_thread.join(timeout=2)
    reader_thread.join(timeout=2)
    assert events == ["write", "read"]
