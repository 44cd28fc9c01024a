"""
Centralized constants for the gaitkin analysis engine.

Every clinical threshold used by the analyzers lives here as data so it can be
reviewed and unit-tested independently of the logic that consumes it.

Version: 1.0.0
"""

# ============================================================================
# Landmark Visibility
# ============================================================================

KINEMATIC_VISIBILITY_THRESHOLD = 0.6  # Minimum detector confidence for angle computation
EVENT_VISIBILITY_THRESHOLD = 0.7  # Stricter gate used by the event rules
FRONTAL_VISIBILITY_THRESHOLD = 0.7  # Gate for frontal-plane summary metrics

# ============================================================================
# Buffer Capacities (frames)
# ============================================================================

EVENT_BUFFER_CAPACITY = 20  # Sliding window for incremental event detection
FRONTAL_BUFFER_CAPACITY = 100  # History for frontal-plane metrics
COMPENSATION_BUFFER_CAPACITY = 200  # History for compensation detection
KINEMATIC_BUFFER_CAPACITY = 300  # ~5 s at 60 fps

# ============================================================================
# Minimum Sample Counts
# ============================================================================

MIN_FRAMES_KINEMATICS = 10  # Below this the kinematics are empty
MIN_FRAMES_EVENTS = 5  # Generic event rules
MIN_FRAMES_FOOT_FLAT = 10  # Foot-flat needs a longer history
MIN_FRAMES_LOCAL_EXTREMUM = 7  # Window for max knee flexion / hip extension
MIN_FRAMES_FRONTAL = 20  # Frontal-plane metrics
MIN_FRAMES_ANTALGIC = 50  # Temporal compensation analysis
MIN_FRAMES_TRUNK_BENDING = 30  # Spatial compensation analysis
MIN_SAMPLES_VARIABILITY = 10  # Coefficient of variation needs this many samples
MIN_CYCLES_COMPARISON = 2  # Bilateral cycle comparison

# ============================================================================
# Geometry
# ============================================================================

DIRECTION_NOISE_THRESHOLD = 0.005  # Hip-midpoint x displacement treated as noise
DEFAULT_WALKING_DIRECTION = 1  # +1 walks toward image +x
VERTICAL_REFERENCE_OFFSET = 0.1  # Synthetic reference point distance (normalized units)
NORMALIZED_TO_METERS = 1.8  # Frame width assumed to span ~1.8 m
EPSILON = 1e-10  # Prevents division by zero

# ============================================================================
# Event Detection Rules
# ============================================================================

EVENT_LAG_FRAMES = 2  # Current frame is compared with frame i-2

HEEL_STRIKE_MAX_VELOCITY = 0.005  # |dy| below this counts as "stopped"
TOE_OFF_VELOCITY = -0.008  # Rapid upward ankle motion (image y grows downward)
HEEL_OFF_VELOCITY = -0.003  # Gentle upward ankle motion
FOOT_FLAT_RATIO_MIN = 0.1  # |ankle.y - knee.y| / |knee.y| lower bound
FOOT_FLAT_RATIO_MAX = 0.3  # Upper bound
FOOT_FLAT_STABILITY = 0.01  # sqrt(var_x + var_y) of the ankle
FOOT_FLAT_STABILITY_FRAMES = 5  # Frames used for the stability estimate
MAX_KNEE_FLEXION_ANGLE = 110.0  # Degrees, three-point knee angle
MAX_HIP_EXTENSION_ANGLE = 160.0  # Degrees, thigh against vertical reference

EVENT_CONFIDENCE_CAPS = {
    'heel_strike': 0.9,
    'toe_off': 0.85,
    'foot_flat': 0.8,
    'heel_off': 0.75,
    'max_knee_flexion': 0.8,
    'max_hip_extension': 0.75,
}

# ============================================================================
# Gait Cycle Segmentation
# ============================================================================

MIN_CYCLE_DURATION_SEC = 0.8  # Shorter pairs are double detections
MAX_CYCLE_DURATION_SEC = 2.0  # Longer pairs are stalls

# Phase boundaries as fractions of cycle duration (Perry & Burnfield)
GAIT_PHASES = (
    ('initial_contact', 'Initial Contact', 0.00, 0.02),
    ('loading_response', 'Loading Response', 0.02, 0.12),
    ('mid_stance', 'Mid Stance', 0.12, 0.31),
    ('terminal_stance', 'Terminal Stance', 0.31, 0.50),
    ('pre_swing', 'Pre Swing', 0.50, 0.62),
    ('initial_swing', 'Initial Swing', 0.62, 0.75),
    ('mid_swing', 'Mid Swing', 0.75, 0.87),
    ('terminal_swing', 'Terminal Swing', 0.87, 1.00),
)
STANCE_PHASE_COUNT = 5  # First five phases are stance
TOE_OFF_FRACTION = 0.62  # Nominal stance/swing boundary
TOE_OFF_ANCHOR_WINDOW = (0.40, 0.80)  # Accepted toe-off position when anchoring to events

# ============================================================================
# Normative Kinematic Ranges (degrees, Perry & Burnfield 2010)
# ============================================================================

NORMAL_RANGES = {
    'ankle': {
        'dorsiflexion': (10.0, 20.0),
        'plantarflexion': (15.0, 25.0),
    },
    'knee': {
        'flexion': (60.0, 70.0),  # Peak during swing
        'extension': (-5.0, 5.0),  # Near full extension at heel strike
    },
    'hip': {
        'flexion': (25.0, 35.0),  # Peak during swing
        'extension': (10.0, 20.0),  # Peak during stance
    },
    'pelvis': {
        'tilt': (-5.0, 5.0),
        'obliquity': (-3.0, 3.0),
        'rotation': (-8.0, 8.0),
    },
}

# Deviation rules: (joint, range key, peak key, severe cutoff, label, implication)
KINEMATIC_DEVIATION_RULES = (
    ('ankle', 'dorsiflexion', 'max_ankle_df', 5.0,
     'Limited dorsiflexion',
     'May indicate calf contracture or tibialis anterior weakness'),
    ('knee', 'flexion', 'max_knee_flex', 45.0,
     'Reduced knee flexion',
     'May indicate joint stiffness or an extended-knee gait pattern'),
    ('hip', 'extension', 'max_hip_ext', 5.0,
     'Limited hip extension',
     'May indicate hip flexion contracture or gluteal weakness'),
)

SEVERITY_PENALTIES = {'mild': 5, 'moderate': 15, 'severe': 25}
SEVERITY_WEIGHTS = {'mild': 1, 'moderate': 2, 'severe': 3}

# ============================================================================
# Cycle Comparison / Asymmetry
# ============================================================================

NORMAL_STANCE_PERCENT = 60.0  # Stance share of a healthy cycle
NORMAL_SWING_PERCENT = 40.0  # Swing share of a healthy cycle
STANCE_PERCENT_RANGE = (58.0, 62.0)
STANCE_PERCENT_SEVERE = (50.0, 70.0)
LOADING_RESPONSE_MAX = 15.0
LOADING_RESPONSE_SEVERE = 20.0
SWING_PERCENT_MIN = 38.0
SWING_PERCENT_SEVERE = 30.0
MID_STANCE_MIN = 15.0
FAST_CYCLE_DURATION = 0.8  # Functional score penalty below this
SLOW_CYCLE_DURATION = 1.5  # Functional score penalty above this
FAST_CYCLE_PENALTY = 10
SLOW_CYCLE_PENALTY = 15
EFFICIENCY_DEVIATION_WEIGHT = 2.0

PHASE_ASYMMETRY_MILD = 5.0  # Percentage-point gap flagged
PHASE_ASYMMETRY_MODERATE = 10.0
PHASE_ASYMMETRY_SEVERE = 15.0

ASYMMETRY_INTERPRETATION = (
    (5.0, 'symmetric', 'Symmetric gait pattern'),
    (10.0, 'mild', 'Mild asymmetry, within functional limits'),
    (20.0, 'moderate', 'Moderate asymmetry, clinically relevant'),
    (float('inf'), 'severe', 'Severe asymmetry, requires intervention'),
)

# ============================================================================
# Frontal Plane
# ============================================================================

STEP_WIDTH_WIDE = 0.20
STEP_WIDTH_VERY_WIDE = 0.25
STEP_WIDTH_NARROW = 0.05  # Below this the feet track the midline
SCISSORING_CROSSING_FRACTION = 0.1  # Share of frames with crossed ankles
TRUNK_LEAN_MODERATE = 5.0
TRUNK_LEAN_SEVERE = 10.0
PELVIC_DROP_MODERATE = 5.0
PELVIC_DROP_SEVERE = 8.0
KNEE_VALGUS_MODERATE = 10.0
KNEE_VALGUS_SEVERE = 15.0
CIRCUMDUCTION_EXCURSION = 0.05  # Lateral ankle excursion (normalized units)
HIP_HIKING_AMPLITUDE = 5.0  # Degrees of obliquity reversal
STABILITY_SCALE = 1000.0  # sd of hip-mid x mapped onto 0-100
FRONTAL_SEVERITY_DEDUCTIONS = {'mild': 10, 'moderate': 20, 'severe': 35}

# ============================================================================
# Compensation Patterns
# ============================================================================

CROUCH_KNEE_FLEXION = 25.0
CROUCH_KNEE_FLEXION_SEVERE = 35.0
STIFF_KNEE_FLEXION = 35.0
STIFF_KNEE_FLEXION_SEVERE = 25.0
STEPPAGE_HIP_FLEXION = 45.0
STEPPAGE_HIP_FLEXION_SEVERE = 50.0
ANTALGIC_ASYMMETRY = 20.0
ANTALGIC_ASYMMETRY_SEVERE = 30.0
TRUNK_BENDING_DEVIATION = 0.05  # meters
TRUNK_BENDING_DEVIATION_SEVERE = 0.08

COMPENSATION_CONFIDENCE = {
    'crouch_gait': 0.8,
    'stiff_knee': 0.85,
    'steppage': 0.75,
    'trendelenburg': 0.9,
    'circumduction': 0.7,
    'hip_hiking': 0.75,
    'wide_base': 0.85,
    'antalgic': 0.8,
    'lateral_trunk_bending': 0.7,
}

ENERGY_IMPACT = {
    'circumduction': 15,
    'hip_hiking': 20,
    'crouch_gait': 35,
    'steppage': 25,
    'trendelenburg': 30,
    'wide_base': 20,
}
MOBILITY_IMPACT = {
    'stiff_knee': 25,
    'crouch_gait': 30,
    'antalgic': 20,
    'steppage': 15,
}
FALL_RISK_IMPACT = {
    'steppage': 40,
    'foot_drop': 45,
    'wide_base': 15,
    'trendelenburg': 25,
    'antalgic': 20,
}
PAINFUL_PATTERNS = ('antalgic', 'trendelenburg', 'lateral_trunk_bending')

# ============================================================================
# Pathology Reference Patterns
# ============================================================================

# speed (m/s), cadence (steps/min), symmetry (0-1), stance fraction or None
PATHOLOGY_PATTERNS = {
    'stroke': {
        'name': 'Post-stroke hemiparetic gait',
        'speed': (0.3, 0.8),
        'cadence': (60.0, 90.0),
        'symmetry': (0.2, 1.0),
        'stance_fraction': 0.70,
        'compensations': ('circumduction', 'hip_hiking', 'trendelenburg'),
    },
    'parkinsons': {
        'name': "Parkinsonian gait",
        'speed': (0.4, 0.9),
        'cadence': (80.0, 120.0),
        'symmetry': (0.1, 0.5),
        'stance_fraction': None,
        'compensations': ('crouch_gait', 'stiff_knee'),
    },
    'cerebral_palsy': {
        'name': 'Cerebral palsy gait',
        'speed': (0.2, 0.7),
        'cadence': (50.0, 100.0),
        'symmetry': (0.3, 1.0),
        'stance_fraction': 0.75,
        'compensations': ('crouch_gait', 'stiff_knee', 'circumduction'),
    },
    'multiple_sclerosis': {
        'name': 'Multiple sclerosis gait',
        'speed': (0.3, 0.8),
        'cadence': (70.0, 100.0),
        'symmetry': (0.15, 0.8),
        'stance_fraction': 0.68,
        'compensations': ('steppage', 'circumduction', 'wide_base'),
    },
    'spinal_cord_injury': {
        'name': 'Incomplete spinal cord injury gait',
        'speed': (0.1, 0.5),
        'cadence': (40.0, 80.0),
        'symmetry': (0.4, 1.0),
        'stance_fraction': 0.80,
        'compensations': ('wide_base', 'steppage', 'lateral_trunk_bending'),
    },
}

PATHOLOGY_POINTS = {
    'speed': 20,
    'cadence': 15,
    'symmetry': 15,
    'compensation': 25,
    'stance': 15,
}
STANCE_FRACTION_TOLERANCE = 0.1
PRIMARY_CONFIDENCE = 0.7
DIFFERENTIAL_CONFIDENCE = 0.4

NEUROLOGICAL_CONDITIONS = ('stroke', 'parkinsons', 'multiple_sclerosis', 'cerebral_palsy')
BALANCE_COMPENSATIONS = ('wide_base', 'lateral_trunk_bending', 'trendelenburg', 'steppage')
MAX_INTERVENTIONS = 5
MAX_MONITORING_ITEMS = 8

# ============================================================================
# Normative Population Data
# ============================================================================

# parameter -> unit, reference, {age group: (mean, sd)}
NORMATIVE_DATA = {
    'walking_speed': {
        'unit': 'm/s',
        'reference': 'Bohannon & Andrews, 2011',
        'groups': {'20-39': (1.35, 0.15), '40-59': (1.31, 0.16),
                   '60-79': (1.22, 0.18), '80+': (0.97, 0.21)},
    },
    'cadence': {
        'unit': 'steps/min',
        'reference': 'Perry & Burnfield, 2010',
        'groups': {'20-39': (113.0, 7.0), '60-79': (109.0, 9.0)},
    },
    'step_length': {
        'unit': 'm',
        'reference': 'Perry & Burnfield, 2010',
        'groups': {'20-39': (0.63, 0.05)},
    },
    'stance_phase': {
        'unit': '% of cycle',
        'reference': 'Perry & Burnfield, 2010',
        'groups': {'all': (60.0, 2.0)},
    },
    'swing_phase': {
        'unit': '% of cycle',
        'reference': 'Perry & Burnfield, 2010',
        'groups': {'all': (40.0, 2.0)},
    },
    'double_support': {
        'unit': '% of cycle',
        'reference': 'Perry & Burnfield, 2010',
        'groups': {'all': (20.0, 3.0)},
    },
    'step_time_asymmetry': {
        'unit': '%',
        'reference': 'Plotnik et al., 2007',
        'groups': {'all': (2.1, 1.8)},
    },
}
DEFAULT_PATIENT_AGE = 30
DEFAULT_AGE_GROUP = '20-39'

# Kinematic peaks read against NORMAL_RANGES as mean +/- 1 SD
KINEMATIC_NORMATIVE_PEAKS = {
    'peak_ankle_dorsiflexion': ('max_ankle_df', 'ankle', 'dorsiflexion'),
    'peak_ankle_plantarflexion': ('max_ankle_pf', 'ankle', 'plantarflexion'),
    'peak_knee_flexion': ('max_knee_flex', 'knee', 'flexion'),
    'peak_hip_flexion': ('max_hip_flex', 'hip', 'flexion'),
    'peak_hip_extension': ('max_hip_ext', 'hip', 'extension'),
}

Z_WELL_OUTSIDE = 2.0
Z_OUTSIDE = 1.0
PERCENTILE_BANDS = ((5, '<P5'), (25, 'P5-P25'), (75, 'P25-P75'), (95, 'P75-P95'))

# condition -> parameter -> typical (min, max), severity bands checked severe first
PATHOLOGY_REFERENCE_RANGES = {
    'stroke': {
        'walking_speed': {
            'typical': (0.2, 0.8),
            'severe': (0.2, 0.4), 'moderate': (0.4, 0.6), 'mild': (0.6, 0.8),
            'significance': 'Walking speed strongly correlates with functional independence and fall risk',
        },
        'step_time_asymmetry': {
            'typical': (10.0, 30.0),
            'severe': (25.0, 50.0), 'moderate': (15.0, 25.0), 'mild': (10.0, 15.0),
            'significance': 'High asymmetry indicates unilateral motor impairment and increased fall risk',
        },
    },
    'parkinsons': {
        'walking_speed': {
            'typical': (0.5, 1.0),
            'severe': (0.3, 0.6), 'moderate': (0.6, 0.8), 'mild': (0.8, 1.0),
            'significance': 'Bradykinesia manifests as reduced walking speed and stride length',
        },
        'step_length': {
            'typical': (0.3, 0.5),
            'severe': (0.2, 0.35), 'moderate': (0.35, 0.45), 'mild': (0.45, 0.5),
            'significance': 'Shortened steps are characteristic of parkinsonian gait',
        },
    },
    'cerebral_palsy': {
        'walking_speed': {
            'typical': (0.4, 1.2),
            'severe': (0.2, 0.6), 'moderate': (0.6, 0.8), 'mild': (0.8, 1.2),
            'significance': 'Speed correlates with GMFCS level and functional mobility',
        },
    },
    'elderly': {
        'walking_speed': {
            'typical': (0.8, 1.3),
            'severe': (0.4, 0.8), 'moderate': (0.8, 1.0), 'mild': (1.0, 1.3),
            'significance': 'Walking speed <1.0 m/s indicates mobility limitation and increased fall risk',
        },
    },
}
COMPATIBILITY_CONFIDENCE = {'severe': 0.9, 'moderate': 0.7, 'mild': 0.6}
COMPATIBILITY_DEFAULT_CONFIDENCE = 0.5
COMPATIBILITY_OUT_OF_RANGE_CONFIDENCE = 0.1
ELDERLY_AGE = 65

# ============================================================================
# Rule-based Pattern Classifier
# ============================================================================

SPATIOTEMPORAL_NORMAL_RANGES = {
    'speed_mps': (1.0, 1.6),
    'cadence_spm': (90.0, 120.0),
    'step_length_m': (0.5, 0.8),
    'stance_asymmetry_pct': (0.0, 5.0),
    'step_time_variability': (0.0, 10.0),
    'step_width_m': (0.1, 0.2),
    'gait_symmetry_index': (0.0, 10.0),
}
STEP_INTERVAL_RANGE = (0.1, 3.0)  # Intervals used for variability (seconds)
MIN_STEP_INTERVAL_SEC = 0.05  # Shorter intervals are duplicate detections
LEG_LENGTH_HEIGHT_RATIO = 0.53  # Winter 1990
GRAVITY = 9.81

# ============================================================================
# Export
# ============================================================================

PLOT_DPI = 150  # Resolution for saved figures
EXCEL_FLOAT_PRECISION = 4  # Decimal places for float columns
