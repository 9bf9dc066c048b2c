# ======================================================
# FallGuard AI: Fall Report & Room Safety Analysis
# ======================================================

import os
import sys
import base64
import logging
from pathlib import Path
from urllib.parse import urlsplit

import streamlit as st
from streamlit.errors import StreamlitAPIException
import pandas as pd

# ======================================================
# PATHS
# ======================================================
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from utils.image_prep import ImageProcessingError, normalize_image

from client import api_client, mock_api_client
from client.camera import CameraIssue, Facing, diagnose_camera
from client.session import (
    AppState,
    InvalidTransition,
    Phase,
    Reset,
    Submit,
    error_view,
    retry,
    run_analysis,
    transition,
)
from client.staging import StagingList, make_staged

logger = logging.getLogger(__name__)


def _secret(name):
    try:
        return st.secrets.get(name)
    except (FileNotFoundError, StreamlitAPIException):
        # no secrets.toml in this deployment
        return None


def page_origin():
    """(scheme, host) the browser used to open this page."""
    url = getattr(st.context, "url", None)
    if url:
        parts = urlsplit(url)
        return parts.scheme, parts.netloc
    headers = st.context.headers
    return headers.get("X-Forwarded-Proto", "http"), headers.get("Host")


# URL of the analysis proxy; resolved from the page host when unset
API_URL = os.environ.get("FALLGUARD_API_URL") or _secret("FALLGUARD_API_URL")
USE_MOCK = os.environ.get("FALLGUARD_MOCK") == "1"

CATEGORY_LABELS = {
    "Environment": "🏠 Environment",
    "Physical": "💪 Physical",
    "Medication": "💊 Medication",
    "Care": "🤝 Care",
    "Other": "📌 Other",
}

# ======================================================
# STREAMLIT CONFIG
# ======================================================
st.set_page_config(page_title="FallGuard AI", page_icon="📋", layout="centered")

# ======================================================
# SESSION SAFETY
# ======================================================
defaults = {
    "phase": Phase(),
    "staging": StagingList(),
    "processed_uploads": set(),
    "camera_open": False,
    "facing": Facing.ENVIRONMENT,
    "camera_gen": 0,
    "uploader_gen": 0,
    "endpoint": None,
}
for k, v in defaults.items():
    if k not in st.session_state:
        st.session_state[k] = v

# resolve once per session, never mid-request
if st.session_state.endpoint is None:
    scheme, host = page_origin()
    st.session_state.endpoint = api_client.resolve_endpoint(base_url=API_URL, host=host, scheme=scheme)


# ======================================================
# HELPERS
# ======================================================
def set_phase(phase):
    st.session_state.phase = phase
    st.rerun()


def close_camera():
    # dropping the widget (new key) releases the device stream
    st.session_state.camera_open = False
    st.session_state.camera_gen += 1


def clear_staging():
    st.session_state.staging.clear()
    st.session_state.processed_uploads = set()
    st.session_state.uploader_gen += 1


def stage(source, origin, label, mirror=False):
    """Normalize one image and add it to the staging list.

    A bad image only fails its own entry; the rest of the batch is untouched.
    """
    try:
        b64 = normalize_image(source, mirror=mirror)
    except ImageProcessingError as e:
        logger.warning("Skipping %s: %s", label, e)
        st.error(f"Could not process {label}. Please try another photo.")
        return False
    st.session_state.staging.add(make_staged(b64, origin, label))
    return True


def analyze(images):
    if USE_MOCK:
        return mock_api_client.analyze_images(images)
    return api_client.analyze_images(images, st.session_state.endpoint)


def show_gallery(images):
    cols = st.columns(min(len(images), 4) or 1)
    for i, b64 in enumerate(images):
        cols[i % len(cols)].image(base64.b64decode(b64), caption=f"{i + 1}/{len(images)}", use_container_width=True)


# ======================================================
# HEADER
# ======================================================
st.title("📋 FallGuard AI")

phase = st.session_state.phase
endpoint = st.session_state.endpoint

# ======================================================
# IDLE: capture & staging
# ======================================================
if phase.state is AppState.IDLE:
    st.subheader("Fall report & room safety analysis")
    st.write(
        "Photograph the pages of a fall incident report, or the room where a fall "
        "might happen. The AI summarises the findings, suggests prevention measures "
        "and drafts a note for the handover log."
    )

    camera_issue = diagnose_camera(*page_origin())

    # ---------- Camera ----------
    st.markdown("#### 📷 Take a photo")
    if camera_issue is not None:
        st.warning(camera_issue.message)
    elif not st.session_state.camera_open:
        if st.button("Open camera", use_container_width=True):
            st.session_state.camera_open = True
            st.rerun()
    else:
        front = st.toggle("Front camera (mirrored)", value=st.session_state.facing is Facing.USER)
        facing = Facing.USER if front else Facing.ENVIRONMENT
        if facing is not st.session_state.facing:
            # re-acquire the stream for the other lens
            st.session_state.facing = facing
            st.session_state.camera_gen += 1
            st.rerun()

        shot = st.camera_input("Point the camera at the report or the room", key=f"camera-{st.session_state.camera_gen}")
        if shot is not None:
            if not shot.getvalue():
                st.warning(CameraIssue.NOT_READY.message)
            elif stage(shot, "camera", f"Photo {len(st.session_state.staging) + 1}", mirror=facing.mirrored):
                close_camera()
                st.rerun()

        if st.button("Cancel", key="camera-cancel"):
            close_camera()
            st.rerun()

        with st.expander("Camera not working?"):
            reported = st.selectbox(
                "What happened?",
                [CameraIssue.PERMISSION_DENIED, CameraIssue.UNSUPPORTED, CameraIssue.UNKNOWN],
                format_func=lambda issue: {
                    CameraIssue.PERMISSION_DENIED: "I blocked the camera permission",
                    CameraIssue.UNSUPPORTED: "No camera picture appears",
                    CameraIssue.UNKNOWN: "Something else",
                }[issue],
            )
            st.info(diagnose_camera(*page_origin(), reported=reported.value).message)

    # ---------- Upload ----------
    st.markdown("#### 🖼️ Choose from album")
    uploads = st.file_uploader(
        "Upload one or more images",
        type=["jpg", "jpeg", "png", "webp"],
        accept_multiple_files=True,
        key=f"uploader-{st.session_state.uploader_gen}",
    )
    for f in uploads or []:
        upload_id = getattr(f, "file_id", None) or f"{f.name}-{f.size}"
        if upload_id in st.session_state.processed_uploads:
            continue
        st.session_state.processed_uploads.add(upload_id)
        stage(f, "upload", f.name)

    # ---------- Staging ----------
    staging = st.session_state.staging
    if staging:
        st.markdown(f"#### Selected images ({len(staging)})")
        for i, img in enumerate(staging, 1):
            c1, c2 = st.columns([4, 1])
            c1.image(base64.b64decode(img.data), caption=f"{i}. {img.label}", width=160)
            if c2.button("Remove", key=f"remove-{img.id}"):
                staging.remove(img.id)
                st.rerun()

    if st.button("Analyze", type="primary", disabled=not staging, use_container_width=True):
        close_camera()
        set_phase(transition(phase, Submit(tuple(staging.payloads()))))

    st.info("🔒 Photos are not stored. Each analysis is processed once and discarded.")

# ======================================================
# ANALYZING
# ======================================================
elif phase.state is AppState.ANALYZING:
    with st.spinner(f"Analyzing {len(phase.images)} image(s)... this may take a few seconds"):
        next_phase = run_analysis(phase, analyze)
    set_phase(next_phase)

# ======================================================
# SUCCESS
# ======================================================
elif phase.state is AppState.SUCCESS:
    result = phase.result
    show_gallery(phase.images)

    st.subheader("📝 Handover note")
    st.code(result["handoverNote"], language=None)

    st.subheader("🔍 Summary")
    st.write(result["detectedTextSummary"])

    st.subheader("⚠️ Risk factors / causes")
    st.markdown("\n".join(f"- {cause}" for cause in result["possibleCauses"]) or "_None identified._")

    st.subheader("🛡️ Prevention strategies")
    strategies = result["preventionStrategies"]
    if strategies:
        df = pd.DataFrame(strategies, columns=["category", "measure", "rationale"])
        df["category"] = df["category"].map(lambda c: CATEGORY_LABELS.get(c, c))
        df.columns = ["Category", "Measure", "Rationale"]
        st.dataframe(df, hide_index=True, use_container_width=True)
    else:
        st.write("_No strategies suggested._")

    with st.expander("Raw result"):
        st.json(result)

    if st.button("New analysis", type="primary", use_container_width=True):
        clear_staging()
        set_phase(transition(phase, Reset()))

# ======================================================
# ERROR
# ======================================================
elif phase.state is AppState.ERROR:
    view = error_view(phase.error, endpoint)
    st.subheader(view.title)
    if view.tone == "warning":
        st.warning(view.message)
    else:
        st.error(view.message)
    if view.hints:
        st.markdown("\n".join(f"- {hint}" for hint in view.hints))

    c1, c2 = st.columns(2)
    if c1.button("Retry", type="primary", use_container_width=True):
        try:
            set_phase(retry(phase))
        except InvalidTransition as e:
            logger.warning("Retry rejected: %s", e)
    if c2.button("Start over", use_container_width=True):
        clear_staging()
        set_phase(transition(phase, Reset()))
