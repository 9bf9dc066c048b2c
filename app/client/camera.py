"""
Camera helpers for the capture view.

Browsers only expose the camera on secure origins, so the likely reason a
camera cannot open can be worked out from the page address before the
widget is ever shown. Every message points the user to the file picker.
"""

from enum import Enum
from typing import Optional

from client.api_client import LOCAL_HOSTS, bare_hostname


class Facing(str, Enum):
    ENVIRONMENT = "environment"
    USER = "user"

    @property
    def mirrored(self) -> bool:
        # front camera previews are shown mirrored
        return self is Facing.USER

    def toggled(self) -> "Facing":
        return Facing.USER if self is Facing.ENVIRONMENT else Facing.ENVIRONMENT


class CameraIssue(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    INSECURE_CONTEXT = "insecure_context"
    UNSUPPORTED = "unsupported"
    NOT_READY = "not_ready"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return CAMERA_MESSAGES[self]


CAMERA_MESSAGES = {
    CameraIssue.PERMISSION_DENIED: (
        "Camera access was blocked. Allow camera permission for this site in your "
        "browser settings, or use \"Choose from album\" instead."
    ),
    CameraIssue.INSECURE_CONTEXT: (
        "Browsers only allow the camera over a secure (HTTPS) connection. Open the "
        "HTTPS address of this app, or use \"Choose from album\" instead."
    ),
    CameraIssue.UNSUPPORTED: (
        "This browser does not support the live camera. Use \"Choose from album\" instead."
    ),
    CameraIssue.NOT_READY: "The camera is not ready yet. Wait a moment and capture again.",
    CameraIssue.UNKNOWN: "The camera could not be opened. Use \"Choose from album\" instead.",
}


def is_secure_context(scheme: Optional[str], host: Optional[str]) -> bool:
    if not host:
        return True
    if bare_hostname(host) in LOCAL_HOSTS:
        return True
    return (scheme or "").lower() == "https"


def diagnose_camera(scheme: Optional[str], host: Optional[str], reported: Optional[str] = None) -> Optional[CameraIssue]:
    """Return the most likely camera problem, or None if the camera should work.

    `reported` is a CameraIssue value chosen by the user when the camera
    stays blank; it is trusted unless the origin already rules the camera out.
    """
    if not is_secure_context(scheme, host):
        return CameraIssue.INSECURE_CONTEXT
    if reported:
        try:
            return CameraIssue(reported)
        except ValueError:
            return CameraIssue.UNKNOWN
    return None
