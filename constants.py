"""
Constants for the FramesWithin color pipeline.

Centralized definitions for palette extraction, grading limits, exports,
usage tracking, and the AI service boundary.
"""

from typing import Tuple


# =============================================================================
# Palette Extraction
# =============================================================================

DEFAULT_COLOR_COUNT = 10
DEFAULT_QUALITY = 10  # Sample every Nth pixel when quantizing
MAX_QUANTIZE_COLORS = 256  # Upper bound accepted by both quantizer backends

# Last-resort palette entry when quantization fails entirely
FALLBACK_GRAY: Tuple[int, int, int] = (128, 128, 128)

# Hue bands (degrees) for warm/cool classification of the dominant color
WARM_HUE_MAX = 60       # [0, 60] red -> yellow
COOL_HUE_MAX = 240      # (60, 240] green -> cyan -> blue
MAGENTA_HUE_MIN = 300   # (240, 300) still cool; [300, 360] warm again
HUE_RANGE = 360


# =============================================================================
# Grading Engine
# =============================================================================

# Knobs below this magnitude are treated as zero (stage skipped)
ADJUSTMENT_EPSILON = 0.001

# Contrast formula has a pole at 259; clamp input before computing the factor
CONTRAST_MIN = -255.0
CONTRAST_MAX = 258.0
CONTRAST_POLE = 259.0

# Temperature channel offsets at full strength (+/-100)
WARM_RED_GAIN = 20.0
WARM_BLUE_CUT = 10.0
COOL_RED_GAIN = 10.0
COOL_BLUE_CUT = 20.0

# Neutral white point used when mapping AI breakdown Kelvin onto the knob
NEUTRAL_KELVIN = 6500.0
KELVIN_PER_STEP = 40.0
EXPOSURE_STOP_SCALE = 20.0
KNOB_MIN = -100.0
KNOB_MAX = 100.0


# =============================================================================
# Export Settings
# =============================================================================

SWATCH_SIZE = 100
EXPORT_FORMATS = ("png", "jpg", "webp")
DEFAULT_EXPORT_FORMAT = "png"
DEFAULT_IMAGE_QUALITY = 90


# =============================================================================
# Usage Tracking
# =============================================================================

AI_INSIGHTS_LIMIT = 15
STORAGE_LIMIT_GB = 5.0
UPLOADS_LIMIT = 50
MAX_UPLOAD_HISTORY = 50
RECENT_UPLOADS = 10
MONTHLY_WINDOW = 4  # Months shown in usage charts

DEFAULT_STATE_DIR = "~/.frameswithin"
DEFAULT_STATE_FILE = "state.json"
STATE_ENV_VAR = "FRAMESWITHIN_STATE"


# =============================================================================
# AI Service
# =============================================================================

AI_MODEL = "gpt-4o-mini"
API_KEY_ENV_VAR = "OPENAI_API_KEY"
API_KEY_PLACEHOLDER = "your_openai_api_key"

INSIGHTS_TEMPERATURE = 0.7
INSIGHTS_MAX_TOKENS = 1000
BREAKDOWN_TEMPERATURE = 0.3
BREAKDOWN_MAX_TOKENS = 500

INSIGHT_SUGGESTION_COUNT = 5
INSIGHT_CAPTION_COUNT = 5
INSIGHT_HASHTAG_COUNT = 12
INSIGHT_TIP_COUNT = 5


# =============================================================================
# Media Types
# =============================================================================

VIDEO_EXTENSIONS = frozenset({
    ".mp4",
    ".mov",
    ".m4v",
    ".webm",
    ".mkv",
    ".avi",
})
