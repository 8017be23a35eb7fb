# tests/test_package.py
#
# Package surface: imports without the video extras, error formatting,
# joint tables.

import pytest


def test_mscore_import_without_cv2():
    """mscore must import without cv2/mediapipe installed."""
    import mscore
    for name in ("dtw", "fast_dtw", "find_best_offset", "sample_video",
                 "perform_auto_sync", "open_video", "make_pose_detector"):
        assert hasattr(mscore, name)
    assert mscore.__version__


def test_error_hierarchy():
    from mscore.errors import (
        ExtractionTimeout,
        InsufficientData,
        InsufficientPoses,
        InvalidInput,
        MotionSyncError,
        SamplingCancelled,
        TooShort,
    )
    assert issubclass(InvalidInput, ValueError)
    assert issubclass(InsufficientPoses, InsufficientData)
    assert issubclass(ExtractionTimeout, TimeoutError)
    for cls in (InvalidInput, InsufficientData, TooShort, ExtractionTimeout, SamplingCancelled):
        assert issubclass(cls, MotionSyncError)


def test_error_str_includes_context():
    from mscore.errors import TooShort
    err = TooShort("Video too short.", context={"source": "user", "duration": 1.2})
    assert str(err) == "Video too short. (source: user, duration: 1.2)"
    assert err.message == "Video too short."
    assert str(TooShort("plain")) == "plain"


def test_joint_tables_consistent():
    from mscore.joints import FEATURE_JOINTS, JOINT_NAMES, MEDIAPIPE_TO_NAME
    assert len(JOINT_NAMES) == 17
    assert set(FEATURE_JOINTS) <= set(JOINT_NAMES)
    assert set(MEDIAPIPE_TO_NAME.values()) == set(JOINT_NAMES)


def test_mediapipe_map_uses_named_landmarks():
    from mscore import joints
    named = {
        getattr(joints, attr): attr[len("MP_"):].lower()
        for attr in dir(joints)
        if attr.startswith("MP_")
    }
    assert named == joints.MEDIAPIPE_TO_NAME
    assert joints.MEDIAPIPE_TO_NAME[joints.MP_LEFT_ANKLE] == "left_ankle"
    assert joints.MP_LEFT_ANKLE == 27


def test_open_video_missing_file():
    pytest.importorskip("cv2")
    import mscore
    with pytest.raises(RuntimeError, match="Cannot open video"):
        mscore.open_video("/nonexistent/clip.mp4")
