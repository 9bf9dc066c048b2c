# client/mock_api_client.py
# Offline stand-in for the proxy, enabled with FALLGUARD_MOCK=1.

import copy

# -----------------------
# Mock API functions
# -----------------------

SAMPLE_RESULT = {
    "detectedTextSummary": (
        "Report page 1: resident found sitting on the bathroom floor at 03:10, "
        "states she slipped while getting up from the toilet. No injuries written."
    ),
    "possibleCauses": [
        "Night-time toileting without assistance",
        "Wet bathroom floor",
        "Possible postural dizziness on standing",
    ],
    "preventionStrategies": [
        {
            "measure": "Install a grab rail beside the toilet",
            "rationale": "Gives a stable hand-hold when rising from sitting",
            "category": "Environment",
        },
        {
            "measure": "Check lying and standing blood pressure",
            "rationale": "Screens for orthostatic hypotension",
            "category": "Physical",
        },
        {
            "measure": "Offer a scheduled toileting round at night",
            "rationale": "Reduces unassisted trips to the bathroom",
            "category": "Care",
        },
    ],
    "handoverNote": (
        "Resident fell in the bathroom at 03:10, likely related to unassisted "
        "night-time toileting on a wet floor. No injuries recorded. Recommend "
        "grab rail and night toileting round; monitor for dizziness on standing."
    ),
}


def analyze_images(images, endpoint=None, timeout=None):
    # Just print to console locally
    count = 1 if isinstance(images, str) else len(images)
    print(f"[mock] analyzing {count} image(s)")
    return copy.deepcopy(SAMPLE_RESULT)
