"""
Engine Defaults
Fixed parameters of the acquisition and measurement pipeline.
"""


class EngineDefaults:
    """Constants shared by the frame source and the measurement engine."""
    
    # ==================== Profile Sampling ====================
    UPSAMPLE_FACTOR = 4
    BAND_LINE_COUNT = 7           # parallel samples straddling the center line
    MIN_BAND_PROFILES = 3         # below this the band average is flagged degraded
    MIN_PROFILE_LENGTH = 5        # shorter profiles have no measurable edges
    
    # ==================== Edge Search ====================
    MIN_EDGE_SEPARATION_FACTOR = 3    # multiple of UPSAMPLE_FACTOR
    MAX_SUBPIXEL_OFFSET = 0.5
    PARABOLA_EPSILON = 1e-6
    INTENSITY_MAX = 255.0
    
    # ==================== Temporal Smoothing ====================
    EMA_WEIGHT = 0.3              # weight of the new sample
    
    # ==================== Camera Negotiation ====================
    # (width, height, fourcc) tried highest-first
    CANDIDATE_RESOLUTIONS = [
        (1920, 1080, "MJPG"),
        (1280, 720, "MJPG"),
        (640, 480, "MJPG"),
    ]
    MIN_ACCEPTABLE_FPS = 15.0
    PROBE_FRAME_COUNT = 10
    TARGET_FPS = 30
    CAPTURE_BUFFER_SIZE = 1
    AUTO_RESOLUTION = "Auto"
    
    # ==================== Acquisition Loop ====================
    READ_RETRY_DELAY_S = 0.001
    ERROR_RETRY_DELAY_S = 0.05
    CLOSED_RETRY_DELAY_S = 0.1
    FPS_WINDOW_S = 1.0
    JOIN_TIMEOUT_S = 2.0
    
    # ==================== Inspection Driver ====================
    INSPECTION_INTERVAL_S = 0.033
