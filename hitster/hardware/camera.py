"""
Camera module for Hitster Player
Handles camera initialization for both picamera2 and OpenCV, and publishes
the most recent frame for the QR decode loop
"""

import asyncio
import glob
import logging

import cv2

from hitster.config.settings import (
    PICAMERA2_AVAILABLE,
    CAMERA_WIDTH,
    CAMERA_HEIGHT
)
from hitster.core.models import Frame

# Import picamera2 if available
if PICAMERA2_AVAILABLE:
    from picamera2 import Picamera2


def initialize_camera(device_index=None):
    """
    Initialize camera - tries picamera2 first, then falls back to OpenCV

    Args:
        device_index: OpenCV device index to use; probes /dev/video* when None

    Returns:
        tuple: (camera_object, camera_type) where camera_type is 'picamera2' or 'opencv'
        Returns (None, None) if camera initialization fails
    """
    # Try picamera2 first (best option for Raspberry Pi with libcamera)
    if PICAMERA2_AVAILABLE and device_index is None:
        picam2 = None
        try:
            picam2 = Picamera2()
            config = picam2.create_preview_configuration(
                main={"size": (CAMERA_WIDTH, CAMERA_HEIGHT)}
            )
            picam2.configure(config)
            picam2.start()

            test_frame = picam2.capture_array()
            if test_frame is not None and test_frame.size > 0:
                print("✓ Camera initialized using picamera2 (libcamera)")
                return picam2, 'picamera2'
        except Exception as e:
            print(f"⚠ picamera2 failed: {e}")
        if picam2 is not None:
            cleanup_camera(picam2, 'picamera2')

    if device_index is not None:
        devices_to_try = [device_index]
    else:
        video_devices = []
        for dev_path in glob.glob('/dev/video*'):
            try:
                video_devices.append(int(dev_path.replace('/dev/video', '')))
            except ValueError:
                continue
        devices_to_try = sorted(set(video_devices + list(range(11))))

    # Suppress OpenCV warnings while probing
    logging.getLogger().setLevel(logging.ERROR)

    try:
        for index in devices_to_try:
            test_camera = cv2.VideoCapture(index)
            if not test_camera.isOpened():
                test_camera.release()
                continue
            test_camera.set(cv2.CAP_PROP_FRAME_WIDTH, CAMERA_WIDTH)
            test_camera.set(cv2.CAP_PROP_FRAME_HEIGHT, CAMERA_HEIGHT)

            ret, _ = test_camera.read()
            if ret:
                print(f"✓ Camera initialized on device {index} (OpenCV/V4L2)")
                return test_camera, 'opencv'
            test_camera.release()
    finally:
        logging.getLogger().setLevel(logging.WARNING)

    print("❌ Failed to initialize camera: Could not read from camera")
    if not PICAMERA2_AVAILABLE:
        print("\n⚠ picamera2 is not installed. On a Raspberry Pi install it with:")
        print("   sudo apt install python3-picamera2")
    print("\nTroubleshooting:")
    print("- Check camera cable connection")
    print("- Try another device with --camera <index>")
    return None, None


def read_frame(camera, camera_type):
    """
    Read a frame from the camera

    Args:
        camera: Camera object (picamera2 or OpenCV VideoCapture)
        camera_type: 'picamera2' or 'opencv'

    Returns:
        tuple: (success, frame) where success is bool and frame is numpy array or None
    """
    if camera_type == 'picamera2':
        try:
            frame = camera.capture_array()
            return frame is not None and frame.size > 0, frame
        except Exception as e:
            print(f"✗ Failed to read from camera: {e}")
            return False, None
    ret, frame = camera.read()
    return ret, frame


def cleanup_camera(camera, camera_type):
    """
    Clean up camera resources

    Args:
        camera: Camera object
        camera_type: 'picamera2' or 'opencv'
    """
    if not camera:
        return
    if camera_type == 'picamera2':
        try:
            camera.stop()
            camera.close()
        except Exception as e:
            print(f"⚠ Error closing picamera2: {e}")
    else:
        camera.release()


def to_rgba(image):
    """Convert a BGR/BGRA/grayscale camera image to an RGBA Frame"""
    if image.ndim == 2:
        pixels = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 4:
        pixels = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        pixels = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    pixels.flags.writeable = False
    return Frame(pixels)


class CameraFrameSource:
    """
    Publishes the latest camera frame in a single slot

    Readers always get the newest complete frame; older frames are dropped
    rather than queued. Each frame is a fresh read-only array, so a reader
    never sees a half-written buffer.
    """

    def __init__(self, device_index=None, read_interval=1 / 30):
        self.device_index = device_index
        self.read_interval = read_interval
        self.camera = None
        self.camera_type = None
        self._latest = None
        self._task = None
        self._running = False

    @property
    def ready(self):
        return self._latest is not None

    def latest(self):
        return self._latest

    async def start(self):
        if self._task is not None:
            return
        self.camera, self.camera_type = await asyncio.to_thread(
            initialize_camera, self.device_index
        )
        if not self.camera:
            raise RuntimeError("Camera not available")
        self._running = True
        self._task = asyncio.create_task(self._capture())

    async def _capture(self):
        while self._running:
            ret, image = await asyncio.to_thread(read_frame, self.camera, self.camera_type)
            if ret and image is not None:
                self._latest = to_rgba(image)
            await asyncio.sleep(self.read_interval)

    async def stop(self):
        # Let an in-flight read finish before the camera is released
        self._running = False
        if self._task is not None:
            await self._task
            self._task = None
        cleanup_camera(self.camera, self.camera_type)
        self.camera = None
        self.camera_type = None
        self._latest = None
