"""Threads that feed camera frames into the decision pipeline."""

import logging
import queue
import threading
import time
from typing import Callable, Optional, Protocol

from .frame import Frame
from .pipeline import TouchPipeline

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def read(self) -> Optional[Frame]: ...

    def release(self) -> None: ...


class DecisionLoop:
    """Runs capture and decision on two dedicated threads.

    The capture thread keeps only the newest frame in a one-slot queue, so a
    slow decision cycle never builds a backlog. The decision thread processes
    frames one at a time in capture order.
    """

    def __init__(self, source: FrameSource, pipeline: TouchPipeline, max_frames: Optional[int] = None):
        self.source = source
        self.pipeline = pipeline
        self.max_frames = max_frames
        self.frames_delivered = 0
        self.frames_replaced = 0
        self._frame_queue: "queue.Queue[Frame]" = queue.Queue(maxsize=1)
        self._shutdown_event = threading.Event()
        self._capture_done = threading.Event()
        self._threads: list[threading.Thread] = []
        self._released = False

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads) and not self._shutdown_event.is_set()

    def _capture_loop(self) -> None:
        """Dedicated thread for camera capture"""
        while not self._shutdown_event.is_set():
            try:
                frame = self.source.read()
            except Exception as e:
                logger.error(f"Camera capture error: {e}")
                break
            if frame is None:
                logger.warning("Camera stopped delivering frames")
                break

            try:
                self._frame_queue.put_nowait(frame)
            except queue.Full:
                # Drop the stale frame, keep the newest
                try:
                    self._frame_queue.get_nowait()
                    self.frames_replaced += 1
                except queue.Empty:
                    pass
                # Single producer, so the slot is free again
                self._frame_queue.put_nowait(frame)
        self._capture_done.set()

    def _decision_loop(self) -> None:
        """Dedicated thread for the decision pipeline"""
        while not self._shutdown_event.is_set():
            try:
                frame = self._frame_queue.get(timeout=0.1)
            except queue.Empty:
                if not self._capture_done.is_set():
                    continue
                # The last frame may have landed after the timeout
                try:
                    frame = self._frame_queue.get_nowait()
                except queue.Empty:
                    break

            try:
                self.pipeline.process_frame(frame)
            except Exception:
                logger.exception("Frame processing error")

            self.frames_delivered += 1
            if self.max_frames is not None and self.frames_delivered >= self.max_frames:
                logger.info(f"Processed frame limit of {self.max_frames} reached")
                self._shutdown_event.set()
        self._shutdown_event.set()

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("DecisionLoop already started")
        self._threads = [
            threading.Thread(target=self._capture_loop, name="camera_capture", daemon=True),
            threading.Thread(target=self._decision_loop, name="decision", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def run(self, on_tick: Optional[Callable[[], bool]] = None, interval: float = 0.03) -> None:
        """Start the threads and block until they stop.

        ``on_tick`` runs on the calling thread every ``interval`` seconds;
        returning False stops the loop.
        """
        self.start()
        try:
            while self.running:
                if on_tick is not None and not on_tick():
                    break
                time.sleep(interval)
        except KeyboardInterrupt:
            logger.info("Detection interrupted by keyboard")
        finally:
            self.stop()

    def stop(self, timeout: float = 2.0) -> None:
        self._shutdown_event.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=timeout)
        if not self._released:
            self._released = True
            self.source.release()
