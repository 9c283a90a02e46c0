import enum
import math
import time
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class VelocityCommand:
    linear_x: float = 0.0
    angular_z: float = 0.0


class SteeringLaw:
    """П-регулятор курса на цель с насыщением угловой скорости."""

    def __init__(self, config):
        self.gain = config.angular_speed * config.seek_gain_factor
        self.clamp = config.angular_clamp
        self.linear = config.cruise_speed * config.seek_speed_factor

    def command(self, goal_offset: float) -> VelocityCommand:
        # Цель справа (offset > 0) -> поворот по часовой (angular.z < 0)
        angular = -goal_offset * self.gain
        if abs(angular) > self.clamp:
            angular = math.copysign(self.clamp, angular)
        return VelocityCommand(linear_x=self.linear, angular_z=angular)


class Primitive(enum.Enum):
    ROTATE = 'rotate'
    ADVANCE = 'advance'
    RETREAT = 'retreat'


class MotionPrimitives:
    """Одношаговые команды движения."""

    def __init__(self, config):
        self.cruise_speed = config.cruise_speed
        self.angular_speed = config.angular_speed
        self.steering = SteeringLaw(config)

    def rotate(self) -> VelocityCommand:
        return VelocityCommand(0.0, self.angular_speed)

    def advance(self) -> VelocityCommand:
        return VelocityCommand(self.cruise_speed, 0.0)

    def retreat(self) -> VelocityCommand:
        return VelocityCommand(-self.cruise_speed, 0.0)

    def seek(self, goal_offset: float) -> VelocityCommand:
        return self.steering.command(goal_offset)

    def stop(self) -> VelocityCommand:
        return VelocityCommand(0.0, 0.0)

    def command(self, primitive: Primitive) -> VelocityCommand:
        if primitive is Primitive.ROTATE:
            return self.rotate()
        if primitive is Primitive.ADVANCE:
            return self.advance()
        return self.retreat()


@dataclass(frozen=True)
class ManeuverStep:
    primitive: Primitive
    duration: float


@dataclass(frozen=True)
class Maneuver:
    name: str
    steps: Tuple[ManeuverStep, ...]

    @property
    def duration(self) -> float:
        return sum(step.duration for step in self.steps)


class ManeuverRunner:
    """Выполняет манёвр по шагам с ограничением по времени.

    Каждый шаг повторяет свою команду с частотой rate, пока не истечёт его
    длительность. Манёвр не прерывается: восприятие внутри не читается.
    """

    def __init__(self, primitives: MotionPrimitives, rate: float,
                 clock=time.monotonic, sleep=time.sleep):
        self.primitives = primitives
        self.period = 1.0 / rate
        self.clock = clock
        self.sleep = sleep

    def run(self, maneuver: Maneuver, emit) -> int:
        emitted = 0
        for step in maneuver.steps:
            cmd = self.primitives.command(step.primitive)
            deadline = self.clock() + step.duration
            while self.clock() < deadline:
                emit(cmd)
                emitted += 1
                self.sleep(min(self.period, max(0.0, deadline - self.clock())))
        return emitted
