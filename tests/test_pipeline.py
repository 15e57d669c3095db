import threading
import time

import numpy as np
import pytest

from pi_vision.errors import FrameError
from pi_vision.pipeline import start_vision_thread, vision_thread_fn
from pi_vision.sources import ImageFrameSource
from pi_vision.telemetry import MemoryTable
from pi_vision.vision import TargetPipeline

from conftest import blank_frame, paint_cross


class RecordingStore(MemoryTable):
    def __init__(self):
        super().__init__()
        self.results = []

    def publish(self, result):
        self.results.append(result)
        super().publish(result)


class FlakySource:
    """Fails on the first read, then replays its frames."""

    def __init__(self, frames):
        self.inner = ImageFrameSource(frames)
        self.failed = False

    def next_frame(self):
        if not self.failed:
            self.failed = True
            raise FrameError("camera hiccup")
        return self.inner.next_frame()


@pytest.fixture
def target_frame():
    return paint_cross(blank_frame(), 160, 120)


@pytest.mark.unit
def test_one_publish_per_frame(target_frame):
    store = RecordingStore()
    source = ImageFrameSource([target_frame, blank_frame()])
    published = vision_thread_fn(threading.Event(), source, TargetPipeline(), store)

    assert published == 2
    assert [r.count for r in store.results] == [1, 0]
    assert store.get("targetCount") == 0
    assert store.get("offsetX") == 0.0


@pytest.mark.unit
def test_invalid_frame_skipped(target_frame):
    store = RecordingStore()
    source = ImageFrameSource([np.zeros((0, 0, 3), dtype=np.uint8), target_frame])
    published = vision_thread_fn(threading.Event(), source, TargetPipeline(), store)

    assert published == 1
    assert store.results[0].count == 1


@pytest.mark.unit
def test_grayscale_frame_skipped(target_frame):
    store = RecordingStore()
    source = ImageFrameSource([np.zeros((240, 320), dtype=np.uint8), target_frame])
    published = vision_thread_fn(threading.Event(), source, TargetPipeline(), store)

    assert published == 1
    assert store.results[0].count == 1


@pytest.mark.unit
def test_source_error_skipped(target_frame):
    store = RecordingStore()
    published = vision_thread_fn(threading.Event(), FlakySource([target_frame]), TargetPipeline(), store)
    assert published == 1


@pytest.mark.unit
def test_stop_checked_before_reading(target_frame):
    stop_event = threading.Event()
    stop_event.set()
    store = RecordingStore()
    source = ImageFrameSource([target_frame], loop=True)
    assert vision_thread_fn(stop_event, source, TargetPipeline(), store) == 0
    assert store.results == []


@pytest.mark.integration
def test_vision_thread_publishes_until_stopped(target_frame):
    store = MemoryTable()
    stop_event = threading.Event()
    source = ImageFrameSource([target_frame], loop=True)
    thread = start_vision_thread(stop_event, source, TargetPipeline(), store)
    try:
        deadline = time.time() + 5.0
        while store.get("targetCount") != 1 and time.time() < deadline:
            time.sleep(0.01)
        snapshot = store.snapshot()
    finally:
        stop_event.set()
        thread.join(timeout=2.0)

    assert not thread.is_alive()
    assert snapshot["targetCount"] == 1
    assert snapshot["offsetX"] == pytest.approx(0.0, abs=1.0)
    assert snapshot["offsetY"] == pytest.approx(0.0, abs=1.0)


@pytest.mark.unit
def test_image_source_from_files(tmp_path, target_frame):
    import cv2

    path = tmp_path / "frame.png"
    cv2.imwrite(str(path), target_frame)
    source = ImageFrameSource.from_files([path])
    assert np.array_equal(source.next_frame(), target_frame)
    with pytest.raises(StopIteration):
        source.next_frame()


@pytest.mark.unit
def test_image_source_missing_file(tmp_path):
    with pytest.raises(FrameError):
        ImageFrameSource.from_files([tmp_path / "nope.png"])
