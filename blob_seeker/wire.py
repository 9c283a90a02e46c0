"""Преобразование содержимого сообщений ROS в кадры восприятия.

Функции работают с полями сообщений напрямую (msg.layout, msg.data), не
импортируя пакеты сообщений, поэтому проверяются без рантайма ROS.

Блобы передаются в std_msgs/Float32MultiArray построчно:
[red, green, blue, x, y, area] * count.
"""
import math
from typing import List, Optional, Sequence

import numpy as np

from .perception import Blob, BlobFrame, BumperEvent, MalformedFrame

BLOB_FIELDS = 6


def blob_frame_from_array(data: Sequence[float], declared_count: Optional[int] = None) -> BlobFrame:
    """Разобрать плоский массив блобов. Несовпадение длины и счётчика - MalformedFrame."""
    data = list(data)
    if declared_count is None:
        if len(data) % BLOB_FIELDS:
            raise MalformedFrame(f"blob array length {len(data)} is not a multiple of {BLOB_FIELDS}")
        declared_count = len(data) // BLOB_FIELDS
    if declared_count < 0 or len(data) != declared_count * BLOB_FIELDS:
        raise MalformedFrame(
            f"blob frame declares {declared_count} blobs but carries {len(data)} values")

    blobs = []
    for i in range(declared_count):
        try:
            values = [float(v) for v in data[i * BLOB_FIELDS:(i + 1) * BLOB_FIELDS]]
        except (TypeError, ValueError) as e:
            raise MalformedFrame(f"blob {i} has non-numeric fields: {e}") from e
        # NaN/inf дали бы NaN в команде скорости
        if not all(math.isfinite(v) for v in values):
            raise MalformedFrame(f"blob {i} has non-finite fields {values}")
        red, green, blue, x, y, area = values
        if area < 0:
            raise MalformedFrame(f"blob {i} has negative area {area}")
        blobs.append(Blob(int(red), int(green), int(blue), x, y, area))
    return BlobFrame(tuple(blobs))


def blob_frame_from_msg(msg) -> BlobFrame:
    dims = msg.layout.dim
    if not dims:
        return blob_frame_from_array(msg.data)
    if len(dims) > 1 and dims[1].size != BLOB_FIELDS:
        raise MalformedFrame(f"blob stride is {dims[1].size}, expected {BLOB_FIELDS}")
    return blob_frame_from_array(msg.data, declared_count=dims[0].size)


def blob_frame_to_array(frame: BlobFrame) -> List[float]:
    data = []
    for blob in frame.blobs:
        data.extend([float(blob.red), float(blob.green), float(blob.blue),
                     float(blob.x), float(blob.y), float(blob.area)])
    return data


def depth_from_image(image: np.ndarray, encoding: str) -> np.ndarray:
    """Глубина в метрах. 32FC1 - уже метры, 16UC1 - миллиметры (0 = нет данных)."""
    if encoding == '32FC1':
        return np.asarray(image, dtype=np.float32)
    if encoding == '16UC1':
        depth = np.asarray(image, dtype=np.float32) / 1000.0
        depth[np.asarray(image) == 0] = np.nan
        return depth
    raise MalformedFrame(f"unsupported depth encoding: {encoding}")


def bumper_event_from_flag(pressed: bool) -> BumperEvent:
    return BumperEvent.PRESSED if pressed else BumperEvent.RELEASED
