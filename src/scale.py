"""Scene scale constants.

Lengths are in world units.  ``SCALE`` shrinks the ride camera and car
dimensions relative to the authored track; the loop generator works in
unscaled units.
"""

SCALE = 0.5

# Loop generator
LOOP_RADIUS = 8.0
HELIX_SEPARATION = 3.5
LOOP_POINTS_COUNT = 20
EXIT_EASE_POINTS = 5
EXIT_CREEP = 4.0
EXIT_THETA_OVERSHOOT = 0.3  # fraction of pi
TRANSITION_POINTS = 4
MIN_FORWARD_LENGTH = 0.1

# Ride camera
CAMERA_HEIGHT = 1.5 * SCALE
CAMERA_LOOK_AHEAD_T = 0.02
CAMERA_LERP = 0.1

# Ride physics
CHAIN_SPEED = 0.9
MIN_RIDE_SPEED = 1.0
GRAVITY = 9.8
GRAVITY_SCALE = 1 / SCALE

# Curve sampling
SAMPLES_PER_POINT = 10
ARC_LENGTH_DIVISIONS = 200
