"""Эталонный источник блобов в стиле CMVision.

Классы цветов задаются порогами в пространстве YUV, каждый найденный блоб
помечается цветом своего класса. Контроллеру важен только этот цвет.
"""
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from .perception import Blob, BlobFrame

_COLOR_LINE = re.compile(
    r'^\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)\s+([\d.]+)\s+(\d+)\s+(\S+)')
_THRESHOLD_LINE = re.compile(
    r'^\(\s*(\d+)\s*:\s*(\d+)\s*,\s*(\d+)\s*:\s*(\d+)\s*,\s*(\d+)\s*:\s*(\d+)\s*\)')


class ColorFileError(ValueError):
    """Файл цветов не читается или не разбирается."""


@dataclass(frozen=True)
class ColorClass:
    name: str
    color: Tuple[int, int, int]
    lower: Tuple[int, int, int]
    upper: Tuple[int, int, int]


def parse_color_file(text: str) -> List[ColorClass]:
    """Разобрать файл цветов CMVision.

    Пример:
        [Colors]
        (185, 66, 36) 0.000000 10 PINK
        [Thresholds]
        ( 127:187, 142:161, 175:197 )

    Строки [Thresholds] сопоставляются строкам [Colors] по порядку.
    """
    colors = []
    thresholds = []
    section = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        if line.startswith('['):
            section = line.strip('[]').lower()
            continue
        if section == 'colors':
            m = _COLOR_LINE.match(line)
            if m is None:
                raise ValueError(f"bad color line: {raw!r}")
            r, g, b = (int(v) for v in m.group(1, 2, 3))
            colors.append(((r, g, b), m.group(6)))
        elif section == 'thresholds':
            m = _THRESHOLD_LINE.match(line)
            if m is None:
                raise ValueError(f"bad threshold line: {raw!r}")
            y0, y1, u0, u1, v0, v1 = (int(v) for v in m.groups())
            thresholds.append(((y0, u0, v0), (y1, u1, v1)))

    if len(colors) != len(thresholds):
        raise ValueError(f"{len(colors)} colors but {len(thresholds)} thresholds")

    return [ColorClass(name, color, lower, upper)
            for (color, name), (lower, upper) in zip(colors, thresholds)]


def load_color_file(path: str) -> List[ColorClass]:
    try:
        with open(path) as f:
            return parse_color_file(f.read())
    except (OSError, ValueError) as e:
        raise ColorFileError(f"cannot load color file {path}: {e}") from e


def find_blobs(bgr: np.ndarray, classes: Sequence[ColorClass], min_area: int = 1) -> BlobFrame:
    """Найти связные области каждого класса цвета в BGR изображении."""
    yuv = cv2.cvtColor(bgr, cv2.COLOR_BGR2YUV)
    blobs = []
    for cls in classes:
        mask = cv2.inRange(yuv, np.array(cls.lower, np.uint8), np.array(cls.upper, np.uint8))
        n, _, stats, centroids = cv2.connectedComponentsWithStats(mask, connectivity=8)
        # Метка 0 - фон
        for i in range(1, n):
            area = int(stats[i, cv2.CC_STAT_AREA])
            if area < min_area:
                continue
            cx, cy = centroids[i]
            blobs.append(Blob(*cls.color, x=float(cx), y=float(cy), area=float(area)))
    return BlobFrame(tuple(blobs))
