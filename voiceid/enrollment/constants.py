"""Shared defaults for feature extraction, matching, enrollment and realtime identification."""

from __future__ import annotations

# Capture format used by both sessions
SAMPLE_RATE = 44100
CHANNELS = 1

# Human voice band searched by the pitch tracker (Hz)
PITCH_MIN_HZ = 50.0
PITCH_MAX_HZ = 400.0
# Window length for pitch variance estimates (seconds)
PITCH_WINDOW_SEC = 0.1

# Fixed DFT window for the spectral centroid; only bins 0..N/2-1 are used
SPECTRAL_WINDOW = 2048

# Feature weights for the similarity score (sum to 1.0)
WEIGHT_PITCH = 0.35
WEIGHT_PITCH_VARIANCE = 0.20
WEIGHT_ENERGY = 0.15
WEIGHT_ZERO_CROSSING_RATE = 0.15
WEIGHT_SPECTRAL_CENTROID = 0.15

# Floors for the relative difference denominators
EPSILON_HZ = 1.0
EPSILON_UNITLESS = 0.001

# Score must be strictly below this to count as a match (lower = more similar)
MATCH_THRESHOLD_DEFAULT = 0.5
MATCH_THRESHOLD_MIN = 0.05
MATCH_THRESHOLD_MAX = 2.0

# Enrollment: capture block length, and the progress cadence (independent of the block)
ENROLLMENT_BLOCK_SEC = 0.1
PROGRESS_STEP_SEC = 0.1
# Reference recording length used by the command line
ENROLLMENT_DURATION_SEC = 3.0

# Realtime identification
REALTIME_BLOCK_FRAMES = 4096
SILENCE_THRESHOLD_DEFAULT = 0.01
SILENCE_THRESHOLD_MIN = 0.0
SILENCE_THRESHOLD_MAX = 0.5
# ~2 s of silence at 4096 frames / 44.1 kHz
SILENCE_BLOCKS_TO_CLEAR = 20
MIN_BLOCKS_FOR_MATCH = 10
RETAIN_BLOCKS_AFTER_MATCH = 3

# Settings repository keys
SETTINGS_KEY_PROFILES = "voice_profiles"
SETTINGS_KEY_THRESHOLD = "voice_match_threshold"
SETTINGS_KEY_SILENCE_THRESHOLD = "voice_silence_threshold"
