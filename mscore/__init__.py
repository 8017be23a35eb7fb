# mscore/__init__.py
from .dtw import DTWResult, dtw, euclidean_distance, manhattan_distance
from .fastdtw import fast_dtw
from .offset_match import OffsetResult, find_best_offset
from .sampling import perform_auto_sync, sample_video

__version__ = "0.1.0"


def open_video(*args, **kwargs):
    """Lazy wrapper so mscore can be imported without cv2/mediapipe."""
    from .video import OpenCVVideoSource
    return OpenCVVideoSource(*args, **kwargs)


def make_pose_detector(*args, **kwargs):
    """Lazy wrapper so mscore can be imported without cv2/mediapipe."""
    from .video import MediaPipePoseDetector
    return MediaPipePoseDetector(*args, **kwargs)
