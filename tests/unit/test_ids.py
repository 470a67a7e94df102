from __future__ import annotations

import threading

from tutoring_admin.tables.ids import IdGenerator, default_id_generator


def test_adopts_clock_when_it_moves_forward():
    ticks = iter([100, 250])
    gen = IdGenerator(clock=lambda: next(ticks))
    assert gen.next_id() == 100
    assert gen.next_id() == 250


def test_bumps_on_clock_collision_or_regression():
    ticks = iter([5, 5, 5, 10, 3])
    gen = IdGenerator(clock=lambda: next(ticks))
    assert [gen.next_id() for _ in range(5)] == [5, 6, 7, 10, 11]


def test_real_clock_sequence_is_strictly_increasing():
    gen = IdGenerator()
    ids = [gen.next_id() for _ in range(500)]
    assert all(a < b for a, b in zip(ids, ids[1:]))


def test_ids_unique_across_threads():
    gen = IdGenerator(clock=lambda: 42)
    issued: list[int] = []
    lock = threading.Lock()

    def worker():
        local = [gen.next_id() for _ in range(250)]
        with lock:
            issued.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(issued)) == 1000
    assert max(issued) == 42 + 999


def test_default_generator_is_shared():
    assert default_id_generator() is default_id_generator()
