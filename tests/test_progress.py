from __future__ import annotations

import threading

import pytest

from core.image_pdf.progress import ProgressSnapshot, ProgressTracker, Stream


def test_fraction_merges_both_streams() -> None:
    tracker = ProgressTracker(4, archive_enabled=True)
    tracker.advance(Stream.DOCUMENT, 2)
    snapshot = tracker.advance(Stream.ARCHIVE, 1)
    assert snapshot.fraction == pytest.approx(3 / 8)
    assert snapshot.label == "PDF: 2/4, ZIP: 1/4"


def test_counts_never_go_backwards_or_past_total() -> None:
    tracker = ProgressTracker(2, archive_enabled=False)
    tracker.advance(Stream.DOCUMENT, 2)
    assert tracker.advance(Stream.DOCUMENT, 1).document_done == 2
    assert tracker.advance(Stream.DOCUMENT, 9).fraction == 1.0


def test_concurrent_updates_deliver_monotonic_sequence() -> None:
    seen: list[ProgressSnapshot] = []
    tracker = ProgressTracker(200, archive_enabled=True, callback=seen.append)

    def run(stream: Stream) -> None:
        tick = tracker.callback_for(stream)
        for done in range(1, 201):
            tick(done)

    threads = [threading.Thread(target=run, args=(stream,)) for stream in Stream]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    fractions = [snap.fraction for snap in seen]
    assert len(fractions) == 400
    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0
    assert tracker.snapshot().fraction == 1.0
