"""
Image Source Abstraction
Provides unified interface for static image files and the live camera feed.
The camera source runs acquisition on a dedicated thread and hands every
reader an independent copy of the latest frame.
"""

import cv2
import numpy as np
import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional
from enum import Enum
import logging

from ..config.defaults import EngineDefaults
from ..config.settings import InspectionSettings
from ..exceptions import CameraOpenError
from ..utils.timer import FrameRateMeter
from .camera_negotiation import (
    CaptureCandidate, ResolutionNegotiator, default_candidates,
    measure_capture_fps, parse_resolution_hint
)

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_API = cv2.CAP_DSHOW if os.name == 'nt' else cv2.CAP_ANY

# (settings attribute, capture property)
CAMERA_PROPERTY_MAP = [
    ('auto_focus', cv2.CAP_PROP_AUTOFOCUS),
    ('auto_exposure', cv2.CAP_PROP_AUTO_EXPOSURE),
    ('focus', cv2.CAP_PROP_FOCUS),
    ('exposure', cv2.CAP_PROP_EXPOSURE),
    ('brightness', cv2.CAP_PROP_BRIGHTNESS),
    ('contrast', cv2.CAP_PROP_CONTRAST),
    ('saturation', cv2.CAP_PROP_SATURATION),
    ('gain', cv2.CAP_PROP_GAIN),
    ('white_balance', cv2.CAP_PROP_WHITE_BALANCE_BLUE_U),
    ('sharpness', cv2.CAP_PROP_SHARPNESS),
    ('backlight_comp', cv2.CAP_PROP_BACKLIGHT),
]


class SourceType(Enum):
    """Type of image source."""
    IMAGE_FILE = "image_file"
    CAMERA = "camera"
    UNKNOWN = "unknown"


def is_empty_frame(frame: Optional[np.ndarray]) -> bool:
    """A frame with zero dimensions signals acquisition failure."""
    return frame is None or frame.size == 0


def decode_fourcc(code: float) -> str:
    """Decode a capture FOURCC property value to text."""
    code = int(code)
    return "".join(chr((code >> (8 * i)) & 0xFF) for i in range(4)).strip("\x00 ")


def _copy_into(target: Optional[np.ndarray], frame: np.ndarray) -> np.ndarray:
    """Copy frame into a reusable buffer, reallocating only on shape change."""
    if target is not None and target.shape == frame.shape and target.dtype == frame.dtype:
        np.copyto(target, frame)
        return target
    return frame.copy()


class ImageSource(ABC):
    """Abstract base class for image sources with context manager support."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures resources are released."""
        self.release()
        return False

    @abstractmethod
    def get_frame(self) -> Optional[np.ndarray]:
        """Get an owned copy of the current frame."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if source is available."""
        pass

    @abstractmethod
    def release(self):
        """Release resources."""
        pass

    @abstractmethod
    def get_source_info(self) -> str:
        """Get human-readable source information."""
        pass

    @abstractmethod
    def get_source_type(self) -> SourceType:
        """Get source type enumeration."""
        pass

    @abstractmethod
    def get_metadata(self) -> Dict:
        """Get source metadata."""
        pass


class ImageFileSource(ImageSource):
    """Image source from static file."""

    def __init__(self, filepath: str):
        self.filepath = str(filepath)
        self.image = None
        self._load_image()

    def _load_image(self):
        """Load image from file."""
        self.image = cv2.imread(self.filepath)
        if self.image is None:
            logger.error(f"Failed to load image: {self.filepath}")
        else:
            logger.info(f"Image loaded: {self.filepath} ({self.image.shape})")

    def get_frame(self) -> Optional[np.ndarray]:
        """Return a copy of the loaded image."""
        if self.image is not None:
            return self.image.copy()
        return None

    def is_available(self) -> bool:
        return self.image is not None

    def release(self):
        if self.image is not None:
            logger.debug(f"Releasing image: {self.filepath}")
        self.image = None

    def get_source_info(self) -> str:
        return f"Image File: {self.filepath}"

    def get_source_type(self) -> SourceType:
        return SourceType.IMAGE_FILE

    def get_metadata(self) -> Dict:
        if self.image is not None:
            height, width = self.image.shape[:2]
            return {
                'source_type': self.get_source_type().value,
                'filepath': self.filepath,
                'width': width,
                'height': height,
                'channels': self.image.shape[2] if len(self.image.shape) > 2 else 1
            }
        return {
            'source_type': self.get_source_type().value,
            'filepath': self.filepath,
            'available': False
        }


class CameraSource(ImageSource):
    """
    Live camera source with a dedicated acquisition thread.

    The acquisition loop keeps two independently locked buffers: the latest
    frame (read by snapshot()) and a display frame handed to frame-ready
    subscribers. At most one frame-ready notification is in flight; frames
    arriving while one is pending skip the notification path but still
    update the latest frame.

    Args:
        camera_index: Default device index for start()
        resolution: Default resolution hint ('Auto' or 'WIDTHxHEIGHT')
        capture_factory: Callable (index, api) -> capture, defaults to cv2.VideoCapture
        fps_probe: Callable (capture) -> measured fps used during negotiation
        dispatcher: Callable taking a zero-argument function to run off the
            acquisition thread; defaults to a single-worker executor
        candidates: Negotiation ladder, highest resolution first
    """

    def __init__(self, camera_index: int = 0,
                 resolution: str = EngineDefaults.AUTO_RESOLUTION,
                 capture_factory: Optional[Callable] = None,
                 fps_probe: Optional[Callable] = None,
                 dispatcher: Optional[Callable[[Callable], object]] = None,
                 candidates: Optional[List[CaptureCandidate]] = None,
                 min_fps: float = EngineDefaults.MIN_ACCEPTABLE_FPS,
                 api_preference: int = DEFAULT_CAPTURE_API):
        self.camera_index = camera_index
        self.resolution = resolution
        self.capture_factory = capture_factory or cv2.VideoCapture
        self.fps_probe = fps_probe or measure_capture_fps
        self.candidates = candidates or default_candidates()
        self.min_fps = min_fps
        self.api_preference = api_preference

        self._dispatcher = dispatcher
        self._executor: Optional[ThreadPoolExecutor] = None

        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._control_lock = threading.RLock()

        self._frame_lock = threading.Lock()
        self._latest_frame: Optional[np.ndarray] = None
        self._display_lock = threading.Lock()
        self._display_buffer: Optional[np.ndarray] = None
        self._notify_pending = threading.Event()

        self._total_frames = 0
        self._fps_meter = FrameRateMeter(EngineDefaults.FPS_WINDOW_S)

        self._frame_ready_callbacks: List[Callable[[np.ndarray], None]] = []
        self._fps_callbacks: List[Callable[[float], None]] = []

        self.frame_width = 0
        self.frame_height = 0
        self.codec = ""
        self.negotiated_fps = 0.0

    # ==================== Properties ====================

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def current_fps(self) -> float:
        return self._fps_meter.rate

    @property
    def frame_count(self) -> int:
        return self._total_frames

    @property
    def camera_info(self) -> str:
        if not self.frame_width:
            return ""
        return f"{self.frame_width}x{self.frame_height} {self.codec}".strip()

    # ==================== Subscribers ====================

    def add_frame_ready_callback(self, callback: Callable[[np.ndarray], None]):
        """Register a frame-ready subscriber; each receives its own frame copy."""
        self._frame_ready_callbacks.append(callback)

    def remove_frame_ready_callback(self, callback: Callable[[np.ndarray], None]):
        if callback in self._frame_ready_callbacks:
            self._frame_ready_callbacks.remove(callback)

    def add_fps_callback(self, callback: Callable[[float], None]):
        self._fps_callbacks.append(callback)

    def remove_fps_callback(self, callback: Callable[[float], None]):
        if callback in self._fps_callbacks:
            self._fps_callbacks.remove(callback)

    # ==================== Lifecycle ====================

    def start(self, camera_index: Optional[int] = None, resolution: Optional[str] = None):
        """
        Open the device and begin acquisition.

        Args:
            camera_index: Device index (defaults to the constructor value)
            resolution: 'Auto' to negotiate, or an explicit 'WIDTHxHEIGHT'

        Raises:
            CameraOpenError: if the device cannot be opened at any attempted resolution
        """
        with self._control_lock:
            if self.is_running:
                self.stop()

            if camera_index is not None:
                self.camera_index = camera_index
            if resolution is not None:
                self.resolution = resolution

            explicit = parse_resolution_hint(self.resolution)
            if explicit is not None:
                candidate = CaptureCandidate(explicit[0], explicit[1])
                logger.info(f"Manual resolution: {candidate.label}")
                capture = self._open_capture(candidate)
                if capture is None:
                    logger.error(f"Failed to open camera {self.camera_index}")
                    raise CameraOpenError(f"Failed to open camera index {self.camera_index}")
                self.negotiated_fps = 0.0
            else:
                negotiator = ResolutionNegotiator(
                    self._open_capture, probe=self.fps_probe, min_fps=self.min_fps
                )
                try:
                    result = negotiator.negotiate(self.candidates)
                except CameraOpenError:
                    logger.error(f"Failed to open camera {self.camera_index}")
                    raise
                capture = result.capture
                self.negotiated_fps = result.measured_fps

            self._capture = capture
            self.frame_width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            self.frame_height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            self.codec = decode_fourcc(capture.get(cv2.CAP_PROP_FOURCC))
            logger.info(f"Camera {self.camera_index} opened: {self.camera_info}")

            self._notify_pending.clear()
            self._fps_meter.reset()
            if self._dispatcher is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="camera-notify")

            # One event per run; a thread left over from a timed-out stop keeps its own
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._capture_loop, args=(capture, self._stop_event),
                name="CameraCapture", daemon=True
            )
            self._thread.start()

    def stop(self):
        """Stop acquisition and release the device. Idempotent."""
        with self._control_lock:
            self._stop_event.set()

            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=EngineDefaults.JOIN_TIMEOUT_S)
                if thread.is_alive():
                    logger.warning("Capture thread did not exit within timeout")
            self._thread = None

            if self._capture is not None:
                logger.debug(f"Releasing camera: {self.camera_index}")
                self._capture.release()
                self._capture = None

            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    def snapshot(self) -> Optional[np.ndarray]:
        """Owned copy of the latest frame, or None if nothing was ever captured."""
        with self._frame_lock:
            if self._latest_frame is None:
                return None
            return self._latest_frame.copy()

    # ==================== ImageSource API ====================

    def get_frame(self) -> Optional[np.ndarray]:
        return self.snapshot()

    def is_available(self) -> bool:
        return self.is_running and self._capture is not None and self._capture.isOpened()

    def release(self):
        self.stop()

    def get_source_info(self) -> str:
        return f"Camera Device: {self.camera_index}"

    def get_source_type(self) -> SourceType:
        return SourceType.CAMERA

    def get_metadata(self) -> Dict:
        metadata = {
            'source_type': self.get_source_type().value,
            'camera_index': self.camera_index,
            'frame_count': self._total_frames,
            'available': self.is_available()
        }
        if self.frame_width:
            metadata.update({
                'width': self.frame_width,
                'height': self.frame_height,
                'codec': self.codec,
                'fps': self._fps_meter.rate
            })
        return metadata

    # ==================== Camera Properties ====================

    def read_camera_properties(self, settings: InspectionSettings) -> bool:
        """Copy the device's hardware properties into settings."""
        capture = self._capture
        if capture is None or not capture.isOpened():
            return False

        props = settings.camera_properties
        for attr, prop_id in CAMERA_PROPERTY_MAP:
            setattr(props, attr, float(capture.get(prop_id)))
        props.saved = True
        logger.info(f"Read camera properties: focus={props.focus}, exposure={props.exposure}, "
                    f"auto_focus={props.auto_focus}, auto_exposure={props.auto_exposure}")
        return True

    def apply_camera_properties(self, settings: InspectionSettings) -> bool:
        """Write saved hardware properties back to the device."""
        capture = self._capture
        props = settings.camera_properties
        if capture is None or not capture.isOpened() or not props.saved:
            return False

        logger.info(f"Applying camera properties: focus={props.focus}, exposure={props.exposure}")
        for attr, prop_id in CAMERA_PROPERTY_MAP:
            capture.set(prop_id, getattr(props, attr))
        return True

    # ==================== Acquisition ====================

    def _open_capture(self, candidate: CaptureCandidate):
        """Open the device in a candidate mode; None if it cannot be opened."""
        try:
            capture = self.capture_factory(self.camera_index, self.api_preference)
        except Exception as e:
            logger.error(f"Error opening camera {self.camera_index}: {e}")
            return None

        if not capture.isOpened():
            capture.release()
            return None

        if candidate.fourcc:
            capture.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*candidate.fourcc))
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, candidate.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, candidate.height)
        capture.set(cv2.CAP_PROP_FPS, candidate.fps)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, EngineDefaults.CAPTURE_BUFFER_SIZE)
        return capture

    def _capture_loop(self, capture, stop_event: threading.Event):
        """Read frames from one capture until its run is stopped; read failures are retried."""
        while not stop_event.is_set():
            try:
                if not capture.isOpened():
                    stop_event.wait(EngineDefaults.CLOSED_RETRY_DELAY_S)
                    continue

                ok, frame = capture.read()
                if stop_event.is_set():
                    break
                if not ok or is_empty_frame(frame):
                    stop_event.wait(EngineDefaults.READ_RETRY_DELAY_S)
                    continue

                with self._frame_lock:
                    self._latest_frame = _copy_into(self._latest_frame, frame)
                self._total_frames += 1

                self._update_fps()

                if not self._notify_pending.is_set():
                    self._notify_pending.set()
                    with self._display_lock:
                        self._display_buffer = _copy_into(self._display_buffer, frame)
                    try:
                        self._dispatch(self._deliver_frame_ready)
                    except Exception:
                        self._notify_pending.clear()
                        raise
            except Exception as e:
                logger.debug(f"Transient capture error: {e}")
                stop_event.wait(EngineDefaults.ERROR_RETRY_DELAY_S)

    def _update_fps(self):
        fps = self._fps_meter.tick()
        if fps is not None and self._fps_callbacks:
            self._dispatch(lambda: self._deliver_fps(fps))

    def _dispatch(self, func: Callable[[], None]):
        if self._dispatcher is not None:
            self._dispatcher(func)
        elif self._executor is not None:
            self._executor.submit(func)
        else:
            # Executor already shut down: nothing will consume the notification
            self._notify_pending.clear()

    def _deliver_frame_ready(self):
        """Runs off the acquisition thread; clears the pending flag when done."""
        try:
            with self._display_lock:
                if self._display_buffer is None:
                    return
                frame = self._display_buffer.copy()

            callbacks = list(self._frame_ready_callbacks)
            for i, callback in enumerate(callbacks):
                try:
                    callback(frame if i == len(callbacks) - 1 else frame.copy())
                except Exception as e:
                    logger.error(f"Frame-ready callback error: {e}")
        finally:
            self._notify_pending.clear()

    def _deliver_fps(self, fps: float):
        for callback in list(self._fps_callbacks):
            try:
                callback(fps)
            except Exception as e:
                logger.error(f"FPS callback error: {e}")


def list_camera_devices(max_index: int = 5, capture_factory: Optional[Callable] = None,
                        api_preference: int = DEFAULT_CAPTURE_API) -> List[int]:
    """Probe device indices and return those that open."""
    factory = capture_factory or cv2.VideoCapture
    devices = []
    for index in range(max_index):
        try:
            capture = factory(index, api_preference)
        except Exception as e:
            logger.debug(f"Camera {index} probe failed: {e}")
            continue
        if capture.isOpened():
            devices.append(index)
        capture.release()
    return devices


class ImageSourceFactory:
    """Factory for creating image sources with unified interface."""

    @staticmethod
    def create_image_source(filepath: str) -> ImageFileSource:
        """Create image file source."""
        return ImageFileSource(filepath)

    @staticmethod
    def create_camera_source(camera_index: int = 0,
                             resolution: str = EngineDefaults.AUTO_RESOLUTION,
                             **kwargs) -> CameraSource:
        """Create (unstarted) camera source."""
        return CameraSource(camera_index, resolution, **kwargs)

    @staticmethod
    def create_camera_source_from_settings(settings: InspectionSettings, **kwargs) -> CameraSource:
        """Create camera source from the persisted device selection."""
        return CameraSource(settings.camera_index, settings.camera_resolution, **kwargs)
