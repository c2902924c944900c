# Face model source ('mediapipe' = bundled MediaPipe face detection + mesh)
FACE_MODEL_SOURCE = 'mediapipe'

# Landmark layout produced by the model: 'mediapipe_468' or 'ibug_68'
LANDMARK_SCHEME = 'mediapipe_468'

# Polling cadence of the detection loop
DETECTION_INTERVAL_MS = 150

# Inference operating point: longer frame side is scaled to this size
DETECTION_INPUT_SIZE = 320

# Minimum face detection score
DETECTION_SCORE_THRESHOLD = 0.5

# Consecutive detections needed before a face counts as present
STABILITY_HITS = 3

# Sliding window of nose offsets kept for head-turn tracking
HEAD_HISTORY_SIZE = 20

# Samples needed before the offset range is evaluated
HEAD_MIN_SAMPLES = 10

# Offset range (pixels) that counts as a left-right head turn
HEAD_TURN_RANGE = 15
