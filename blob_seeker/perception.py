"""Слияние восприятия: блобы цвета, кадр глубины и бампер.

Каждый обработчик - чистая функция snapshot -> snapshot. Общий снимок
хранится в PerceptionMailbox и заменяется целиком под блокировкой, поэтому
цикл управления никогда не видит частично обновлённые поля.
"""
import enum
import threading
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

import numpy as np


class MalformedFrame(ValueError):
    """Кадр не соответствует ожидаемому формату и должен быть отброшен."""


@dataclass(frozen=True)
class Blob:
    red: int
    green: int
    blue: int
    x: float
    y: float
    area: float

    @property
    def color(self) -> Tuple[int, int, int]:
        return (self.red, self.green, self.blue)


@dataclass(frozen=True)
class BlobFrame:
    blobs: Tuple[Blob, ...] = ()

    @property
    def count(self) -> int:
        return len(self.blobs)


class BumperEvent(enum.Enum):
    RELEASED = 0
    PRESSED = 1


@dataclass(frozen=True)
class PerceptionSnapshot:
    goal_found: bool = False
    # Смещение цели от оптической оси (пиксели, + вправо), валидно только при goal_found
    goal_offset: float = 0.0
    goal_area: float = 0.0
    obstacle_found: bool = False
    bumper_contact: bool = False


class BlobCentroidEstimator:
    """Взвешенный по площади центроид блобов целевого цвета."""

    def __init__(self, config):
        self.target_color = tuple(config.target_color)
        self.area_threshold = config.goal_area_threshold
        self.half_width = config.image_width / 2.0

    def measure(self, frame: BlobFrame) -> Tuple[float, Optional[float]]:
        """Вернуть (суммарная площадь, x центроида) по блобам целевого цвета.

        x центроида равен None, если ни один блоб не подошёл.
        """
        area_sum = 0.0
        weighted_x = 0.0
        for blob in frame.blobs:
            if blob.color != self.target_color:
                continue
            area_sum += blob.area
            weighted_x += blob.area * blob.x
        if area_sum <= 0:
            return area_sum, None
        return area_sum, weighted_x / area_sum

    def update(self, snapshot: PerceptionSnapshot, frame: BlobFrame) -> PerceptionSnapshot:
        # Пустой кадр не сбрасывает прошлое решение
        if frame.count == 0:
            return snapshot

        area_sum, centroid_x = self.measure(frame)
        if area_sum > self.area_threshold:
            return replace(
                snapshot,
                goal_found=True,
                goal_offset=centroid_x - self.half_width,
                goal_area=area_sum,
            )
        return replace(snapshot, goal_found=False, goal_area=area_sum)


class ObstacleFieldSampler:
    """Подсчёт близких точек глубины в нижней средней части кадра."""

    def __init__(self, config):
        self.shape = (config.image_height, config.image_width)
        self.rows = slice(config.roi_row_start, config.roi_row_end)
        self.near_threshold = config.near_threshold
        self.point_threshold = config.point_threshold

    def count_near(self, depth: np.ndarray) -> int:
        depth = np.asarray(depth)
        if depth.shape != self.shape:
            raise MalformedFrame(f"depth frame has shape {depth.shape}, expected {self.shape}")

        roi = depth[self.rows, :]
        # NaN/inf и нули - невалидные измерения
        near = np.isfinite(roi) & (roi > 0) & (roi < self.near_threshold)
        return int(np.count_nonzero(near))

    def update(self, snapshot: PerceptionSnapshot, near_count: int) -> PerceptionSnapshot:
        if near_count > self.point_threshold:
            return replace(snapshot, obstacle_found=True)
        # Глубина не может снять флаг, поднятый бампером
        return replace(snapshot, obstacle_found=snapshot.bumper_contact)


class BumperMonitor:

    def update(self, snapshot: PerceptionSnapshot, event: BumperEvent) -> PerceptionSnapshot:
        if event is BumperEvent.PRESSED:
            return replace(snapshot, bumper_contact=True, obstacle_found=True)
        # obstacle_found снимет только следующий кадр глубины
        return replace(snapshot, bumper_contact=False)


class PerceptionMailbox:
    """Ячейка с последним снимком восприятия.

    publish() применяет функцию обновления под узкой блокировкой: связанные
    поля меняются одной заменой, а правило sticky-OR читает согласованный
    bumper_contact. Тяжёлые вычисления выполняются до вызова publish().
    """

    def __init__(self, initial: Optional[PerceptionSnapshot] = None):
        self._lock = threading.Lock()
        self._snapshot = initial if initial is not None else PerceptionSnapshot()

    def snapshot(self) -> PerceptionSnapshot:
        with self._lock:
            return self._snapshot

    def publish(self, update) -> PerceptionSnapshot:
        with self._lock:
            self._snapshot = update(self._snapshot)
            return self._snapshot


class SensorWatchdog:
    """Отслеживает потоки, от которых давно не было кадров."""

    def __init__(self, streams: Iterable[str], timeout: float, now: float):
        self.timeout = timeout
        self._last_seen = {name: now for name in streams}
        self._seen = {name: False for name in self._last_seen}

    def mark(self, stream: str, now: float) -> None:
        self._last_seen[stream] = now
        self._seen[stream] = True

    def stale(self, now: float) -> List[str]:
        return [name for name, t in self._last_seen.items() if now - t > self.timeout]

    def report(self, now: float) -> Tuple[List[str], List[str]]:
        """Разделить просроченные потоки на (ни разу не присланные, замолчавшие)."""
        stale = self.stale(now)
        return ([name for name in stale if not self._seen[name]],
                [name for name in stale if self._seen[name]])
