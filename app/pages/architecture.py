import streamlit as st

st.set_page_config(page_title="How it works · FallGuard AI", layout="centered")

st.title("🏗️ How FallGuard AI Works")
st.caption("What happens between taking a photo and reading the handover note")

st.divider()

st.subheader("🔄 Request Flow")

st.markdown(
    """
    ```text
    Camera frame / album images
            │
            ▼
    Image Normalization
    (orient, downscale, mirror front camera, JPEG)
            │
            ▼
    Staging List
    (ordered, remove any image before sending)
            │
            ▼
    Analysis Client ── one POST ──▶ Proxy (/analyze)
                                      │
                                      ├─ validate payload
                                      ├─ attach system prompt + schema
                                      ▼
                              Multimodal model (temperature 0.1)
                                      │
            ◀──────── JSON result / typed error ┘
            │
            ▼
    Idle → Analyzing → Success | Error
    ```
    """
)

st.divider()

st.subheader("🧩 Component Breakdown")

with st.expander("1️⃣ Image Normalization", expanded=True):
    st.markdown(
        """
        - Applies EXIF orientation so phone photos are upright
        - Caps the longest edge (1600 px by default), never upscales
        - Mirrors front-camera frames to match the preview you saw
        - Re-encodes as JPEG and sends plain base64
        """
    )

with st.expander("2️⃣ Analysis Client", expanded=False):
    st.markdown(
        """
        - Sends exactly one request per analysis, no automatic retries
        - Talks to the local server during development, the deployed proxy otherwise
        - Turns failures into clear categories: rate limit, missing API key,
          service not found, network down, generic failure
        """
    )

with st.expander("3️⃣ Proxy", expanded=False):
    st.markdown(
        """
        - Keeps the API key on the server, never in the browser
        - Classifies the input as report pages or environment photos
        - Forces a fixed JSON shape: summary, causes, prevention strategies, handover note
        - Low temperature to keep the model from inventing clinical details
        """
    )

with st.expander("4️⃣ Privacy", expanded=False):
    st.markdown(
        """
        - No photo or result is stored anywhere
        - Starting a new analysis discards the previous images and result
        """
    )
