"""Конечный автомат выбора поведения.

Приоритет: объезд > сближение > поиск, плюс выход из объезда в REACHED,
когда "препятствие" занимает заметную часть кадра и само является целью.
"""
import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from .motion import Maneuver, ManeuverStep, MotionPrimitives, Primitive, VelocityCommand
from .perception import PerceptionSnapshot


class ControllerState(enum.Enum):
    SEARCH = 'search'
    APPROACH = 'approach'
    AVOID = 'avoid'
    REACHED = 'reached'


@dataclass(frozen=True)
class Decision:
    state: ControllerState
    command: Optional[VelocityCommand] = None
    maneuver: Optional[Maneuver] = None


def escape_maneuvers(config) -> Tuple[Maneuver, Maneuver]:
    """Манёвры объезда: после удара бампером и после исчезновения препятствия."""
    bumper = Maneuver('bumper_escape', (
        ManeuverStep(Primitive.RETREAT, config.bumper_retreat_duration),
        ManeuverStep(Primitive.ROTATE, config.bumper_rotate_duration),
        ManeuverStep(Primitive.ADVANCE, config.bumper_advance_duration),
    ))
    clear = Maneuver('clear_advance', (
        ManeuverStep(Primitive.ADVANCE, config.clear_advance_duration),
    ))
    return bumper, clear


def transition(state: ControllerState, snapshot: PerceptionSnapshot, config,
               primitives: Optional[MotionPrimitives] = None) -> Decision:
    """Один шаг автомата: (состояние, снимок) -> (новое состояние, действие)."""
    if primitives is None:
        primitives = MotionPrimitives(config)

    if state is ControllerState.SEARCH:
        if snapshot.obstacle_found:
            return Decision(ControllerState.AVOID)
        if snapshot.goal_found:
            return Decision(ControllerState.APPROACH)
        return Decision(ControllerState.SEARCH, command=primitives.rotate())

    if state is ControllerState.APPROACH:
        if snapshot.obstacle_found:
            return Decision(ControllerState.AVOID)
        if not snapshot.goal_found:
            return Decision(ControllerState.SEARCH)
        return Decision(ControllerState.APPROACH, command=primitives.seek(snapshot.goal_offset))

    if state is ControllerState.AVOID:
        # Большой блоб цели сам выглядит как препятствие: цель достигнута
        if snapshot.goal_area > config.reached_area:
            stop = primitives.stop() if config.stop_on_reached else None
            return Decision(ControllerState.REACHED, command=stop)
        bumper_escape, clear_advance = escape_maneuvers(config)
        if snapshot.bumper_contact:
            return Decision(ControllerState.SEARCH, maneuver=bumper_escape)
        if snapshot.obstacle_found:
            return Decision(ControllerState.AVOID, command=primitives.rotate())
        return Decision(ControllerState.SEARCH, maneuver=clear_advance)

    # REACHED - поглощающее состояние
    return Decision(ControllerState.REACHED)


class BehaviorArbiter:
    """Хранит текущее состояние автомата и применяет transition() раз в такт."""

    def __init__(self, config, primitives: Optional[MotionPrimitives] = None):
        self.config = config
        self.primitives = primitives if primitives is not None else MotionPrimitives(config)
        self.state = ControllerState.SEARCH

    @property
    def finished(self) -> bool:
        return self.state is ControllerState.REACHED

    def tick(self, snapshot: PerceptionSnapshot) -> Decision:
        decision = transition(self.state, snapshot, self.config, self.primitives)
        self.state = decision.state
        return decision
