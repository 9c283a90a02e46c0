"""
Blob Seeker Package
Reactive goal seeking for a wheeled robot: color-blob goal detection,
depth and bumper obstacle detection, and a behavior state machine that
drives the robot to the target while avoiding obstacles.
"""
