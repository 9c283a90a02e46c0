from dataclasses import dataclass, fields, replace
from typing import Tuple


class ConfigError(ValueError):
    """Недопустимая конфигурация. Единственная фатальная ошибка при старте."""


@dataclass(frozen=True)
class SeekerConfig:
    """Параметры контроллера. Значения по умолчанию соответствуют TurtleBot + Astra."""

    # Подпись цвета цели (розовый при уличном освещении)
    target_color: Tuple[int, int, int] = (185, 66, 36)
    # Минимальная суммарная площадь блобов цели (пикс²), строгое неравенство
    goal_area_threshold: float = 3000.0

    image_width: int = 640
    image_height: int = 480

    # Глубина ближе порога считается препятствием (метры)
    near_threshold: float = 0.7
    # Сколько близких точек нужно, чтобы поднять флаг препятствия
    point_threshold: int = 10
    # Область интереса: строки [start, end) по всей ширине кадра
    roi_row_start: int = 180
    roi_row_end: int = 420

    cruise_speed: float = 0.15
    angular_speed: float = 0.7
    angular_clamp: float = 0.3
    # K = angular_speed * seek_gain_factor
    seek_gain_factor: float = 0.7
    seek_speed_factor: float = 0.7

    # Доля кадра, при которой препятствие считается самой целью
    reached_area_fraction: float = 0.10

    tick_rate: float = 10.0
    maneuver_rate: float = 20.0

    bumper_retreat_duration: float = 2.0
    bumper_rotate_duration: float = 2.0
    bumper_advance_duration: float = 2.0
    clear_advance_duration: float = 5.0

    stop_on_reached: bool = True
    sensor_timeout: float = 1.0

    @property
    def reached_area(self) -> float:
        return self.reached_area_fraction * self.image_width * self.image_height

    @classmethod
    def from_mapping(cls, values) -> 'SeekerConfig':
        """Собрать конфигурацию из словаря (например, из параметров ROS).

        Неизвестные ключи игнорируются, отсутствующие берутся по умолчанию.
        Результат уже проверен через validate().
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        if 'target_color' in kwargs:
            try:
                kwargs['target_color'] = tuple(int(c) for c in kwargs['target_color'])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"target_color must be a list of integers: {e}") from e
        return replace(cls(), **kwargs).validate()

    def validate(self) -> 'SeekerConfig':
        if len(self.target_color) != 3 or any(not 0 <= c <= 255 for c in self.target_color):
            raise ConfigError(f"target_color must be three values in [0, 255], got {self.target_color}")

        if self.image_width <= 0 or self.image_height <= 0:
            raise ConfigError(
                f"image dimensions must be positive, got {self.image_width}x{self.image_height}")

        if not 0 <= self.roi_row_start < self.roi_row_end <= self.image_height:
            raise ConfigError(
                f"ROI rows [{self.roi_row_start}, {self.roi_row_end}) "
                f"do not fit into image height {self.image_height}")

        positive = (
            'goal_area_threshold', 'near_threshold', 'point_threshold',
            'cruise_speed', 'angular_speed', 'angular_clamp',
            'seek_gain_factor', 'seek_speed_factor',
            'tick_rate', 'maneuver_rate', 'sensor_timeout',
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")

        if not 0.0 < self.reached_area_fraction <= 1.0:
            raise ConfigError(
                f"reached_area_fraction must be in (0, 1], got {self.reached_area_fraction}")

        durations = (
            'bumper_retreat_duration', 'bumper_rotate_duration',
            'bumper_advance_duration', 'clear_advance_duration',
        )
        for name in durations:
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")

        return self
