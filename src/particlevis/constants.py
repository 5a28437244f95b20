# --- Configuration Constants ---
DEFAULT_FPS = 30
DEFAULT_RESOLUTION = (1280, 720)
FFT_SIZE = 2048  # Time-domain window read per frame
N_FFT = 2048
HOP_LENGTH = 512
N_MELS = 128  # Number of frequency bins exposed to the engine
MIN_FREQ = 20
MAX_FREQ = 8000  # Cap at 8kHz for visual relevance (most music energy is here)
DB_FLOOR = 80  # Spectrogram noise floor in dB

# Audio sample scale (byte samples centred on 128)
SAMPLE_MIDPOINT = 128.0
AMPLITUDE_GAIN = 5.0

# Particle system defaults
MAX_PARTICLES = 2000
DEFAULT_PARTICLE_COUNT = 300
PARTICLE_BASE_SIZE = 6.0
PARTICLE_SIZE_JITTER = 2.0
GLOW = 0.0
BASE_SPEED = 1.0
POINTER_STRENGTH = 0.0
BAR_COUNT = 32

# Scene defaults
DEFAULT_SHAPE = "circle"
DEFAULT_BEHAVIOUR = "center"
DEFAULT_COLORS = ("#ff3366", "#33ccff", "#ffcc00")
DEFAULT_BACKGROUND = "#000000"
DEFAULT_ALPHA = 1.0
DEFAULT_ROTATION_SPEED = 0.0
DEFAULT_MIC_SENSITIVITY = 0.5
DEFAULT_RESOLUTION_FACTOR = 1.0
MAX_RESOLUTION_FACTOR = 2.0

# Geometry
EMITTER_CIRCLE_RATIO = 0.3  # of min(width, height)
EMITTER_SQUARE_RATIO = 0.5
PRESET_SQUARE_RATIO = 0.6
PRESET_SEGMENTS = 200
PRESET_SQUARE_SEGMENTS = 100
POLAR_RADIUS_RATIO = 0.45
OFFSCREEN_MARGIN = 20
BAR_RESPAWN_OFFSET = 10
BAR_HEIGHT_RATIO = 0.5
BAR_GAP = 2
PATH_POINT_MIN_SPACING = 2

# Behaviour dynamics
GALAXY_DECAY = 0.9995
POLAR_SPIN = 0.05  # Rotation added per frame for spiral/galaxy
POINTER_EPSILON = 0.01

# Ranges used by ParticleEngine.randomize
RANDOM_SIZE_RANGE = (1, 20)
RANDOM_GLOW_RANGE = (0, 30)
RANDOM_SPEED_RANGE = (0.1, 3.0)
RANDOM_POINTER_RANGE = (0, 200)
RANDOM_ROTATION_RANGE = (0.0, 0.2)
