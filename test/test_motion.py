import pytest

from blob_seeker.config import SeekerConfig
from blob_seeker.motion import (
    Maneuver, ManeuverRunner, ManeuverStep, MotionPrimitives, Primitive,
    SteeringLaw, VelocityCommand,
)

CONFIG = SeekerConfig()


class FakeClock:
    """Время двигается только через sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, dt):
        self.sleeps.append(dt)
        self.now += dt


def test_seek_saturates_and_keeps_sign():
    cmd = SteeringLaw(CONFIG).command(-50.0)
    assert cmd.angular_z == pytest.approx(0.3)
    assert cmd.linear_x == pytest.approx(0.105)


def test_seek_turns_toward_target_on_the_right():
    cmd = SteeringLaw(CONFIG).command(200.0)
    assert cmd.angular_z == pytest.approx(-0.3)


def test_seek_is_proportional_below_clamp():
    cmd = SteeringLaw(CONFIG).command(0.5)
    assert cmd.angular_z == pytest.approx(-0.5 * 0.7 * 0.7)
    assert SteeringLaw(CONFIG).command(0.0).angular_z == 0.0


def test_primitives():
    p = MotionPrimitives(CONFIG)
    assert p.rotate() == VelocityCommand(0.0, 0.7)
    assert p.advance() == VelocityCommand(0.15, 0.0)
    assert p.retreat() == VelocityCommand(-0.15, 0.0)
    assert p.stop() == VelocityCommand(0.0, 0.0)
    assert p.command(Primitive.RETREAT) == p.retreat()
    assert p.command(Primitive.ROTATE) == p.rotate()
    assert p.command(Primitive.ADVANCE) == p.advance()


def test_runner_emits_each_step_for_its_duration():
    clock = FakeClock()
    primitives = MotionPrimitives(CONFIG)
    runner = ManeuverRunner(primitives, rate=4.0, clock=clock, sleep=clock.sleep)
    maneuver = Maneuver('escape', (
        ManeuverStep(Primitive.RETREAT, 1.0),
        ManeuverStep(Primitive.ROTATE, 0.5),
        ManeuverStep(Primitive.ADVANCE, 1.0),
    ))
    sent = []

    emitted = runner.run(maneuver, sent.append)

    assert emitted == len(sent) == 10
    assert sent[:4] == [primitives.retreat()] * 4
    assert sent[4:6] == [primitives.rotate()] * 2
    assert sent[6:] == [primitives.advance()] * 4
    assert clock.now == pytest.approx(maneuver.duration)


def test_runner_skips_zero_length_steps():
    clock = FakeClock()
    runner = ManeuverRunner(MotionPrimitives(CONFIG), rate=4.0, clock=clock, sleep=clock.sleep)
    maneuver = Maneuver('noop', (ManeuverStep(Primitive.ADVANCE, 0.0),))
    sent = []
    assert runner.run(maneuver, sent.append) == 0
    assert sent == []


def test_runner_ignores_emit_result():
    clock = FakeClock()
    runner = ManeuverRunner(MotionPrimitives(CONFIG), rate=2.0, clock=clock, sleep=clock.sleep)
    maneuver = Maneuver('advance', (ManeuverStep(Primitive.ADVANCE, 1.0),))
    assert runner.run(maneuver, lambda cmd: False) == 2
