import threading

import numpy as np
import pytest

from blob_seeker.config import SeekerConfig
from blob_seeker.perception import (
    Blob, BlobCentroidEstimator, BlobFrame, BumperEvent, BumperMonitor,
    MalformedFrame, ObstacleFieldSampler, PerceptionMailbox, PerceptionSnapshot,
    SensorWatchdog,
)

CONFIG = SeekerConfig()
PINK = CONFIG.target_color


def pink(x, area, y=240.0):
    return Blob(*PINK, x=x, y=y, area=area)


def depth_frame(fill=5.0):
    return np.full((480, 640), fill, dtype=np.float32)


# ---- BlobCentroidEstimator ----

def test_empty_frame_keeps_goal_fields():
    estimator = BlobCentroidEstimator(CONFIG)
    before = PerceptionSnapshot(goal_found=True, goal_offset=-42.0, goal_area=5000.0)
    assert estimator.update(before, BlobFrame()) is before


def test_centroid_is_area_weighted_mean():
    estimator = BlobCentroidEstimator(CONFIG)
    area, cx = estimator.measure(BlobFrame((pink(10, 100), pink(20, 200))))
    assert area == 300
    assert cx == pytest.approx(16.6667, abs=1e-3)


def test_goal_offset_relative_to_image_center():
    estimator = BlobCentroidEstimator(CONFIG)
    snap = estimator.update(PerceptionSnapshot(), BlobFrame((pink(10, 1000), pink(20, 2000), pink(400, 1))))
    assert snap.goal_found
    assert snap.goal_area == 3001
    expected = (10 * 1000 + 20 * 2000 + 400) / 3001 - 320
    assert snap.goal_offset == pytest.approx(expected)


def test_area_threshold_is_strict():
    estimator = BlobCentroidEstimator(CONFIG)
    at = estimator.update(PerceptionSnapshot(goal_found=True), BlobFrame((pink(300, 3000),)))
    above = estimator.update(PerceptionSnapshot(), BlobFrame((pink(300, 3000.5),)))
    assert not at.goal_found
    assert above.goal_found


def test_other_colors_are_ignored():
    estimator = BlobCentroidEstimator(CONFIG)
    other = Blob(238, 114, 76, x=100.0, y=100.0, area=50000.0)
    snap = estimator.update(PerceptionSnapshot(goal_found=True), BlobFrame((other,)))
    assert not snap.goal_found
    assert snap.goal_area == 0


def test_lost_goal_keeps_obstacle_fields():
    estimator = BlobCentroidEstimator(CONFIG)
    before = PerceptionSnapshot(goal_found=True, obstacle_found=True, bumper_contact=True)
    snap = estimator.update(before, BlobFrame((pink(100, 10),)))
    assert not snap.goal_found
    assert snap.obstacle_found and snap.bumper_contact


# ---- ObstacleFieldSampler ----

def test_counts_only_near_points_inside_roi():
    sampler = ObstacleFieldSampler(CONFIG)
    depth = depth_frame()
    depth[0:180, :] = 0.1       # выше области интереса
    depth[420:, :] = 0.1        # ниже области интереса
    depth[200, 0:7] = 0.5
    depth[419, 630:635] = 0.69
    depth[300, 100] = 0.7       # на пороге - не близко
    assert sampler.count_near(depth) == 12


def test_invalid_depth_samples_are_not_near():
    sampler = ObstacleFieldSampler(CONFIG)
    depth = depth_frame()
    depth[200, 0:20] = np.nan
    depth[201, 0:20] = 0.0
    depth[202, 0:20] = -1.0
    depth[203, 0:20] = np.inf
    assert sampler.count_near(depth) == 0


def test_wrong_shape_is_malformed():
    sampler = ObstacleFieldSampler(CONFIG)
    with pytest.raises(MalformedFrame):
        sampler.count_near(np.zeros((240, 320), dtype=np.float32))


@pytest.mark.parametrize('count, bumper, expected', [
    (11, False, True),
    (11, True, True),
    (10, False, False),
    (10, True, True),
    (0, True, True),
])
def test_obstacle_flag_is_sticky_or_with_bumper(count, bumper, expected):
    sampler = ObstacleFieldSampler(CONFIG)
    snap = PerceptionSnapshot(obstacle_found=True, bumper_contact=bumper)
    assert sampler.update(snap, count).obstacle_found is expected


# ---- BumperMonitor ----

def test_bumper_press_forces_obstacle():
    snap = BumperMonitor().update(PerceptionSnapshot(), BumperEvent.PRESSED)
    assert snap.bumper_contact and snap.obstacle_found


def test_bumper_release_leaves_obstacle_until_next_depth_frame():
    monitor = BumperMonitor()
    sampler = ObstacleFieldSampler(CONFIG)
    snap = monitor.update(PerceptionSnapshot(), BumperEvent.PRESSED)
    snap = sampler.update(snap, 0)
    assert snap.obstacle_found

    snap = monitor.update(snap, BumperEvent.RELEASED)
    assert not snap.bumper_contact
    assert snap.obstacle_found

    snap = sampler.update(snap, 0)
    assert not snap.obstacle_found


# ---- PerceptionMailbox / SensorWatchdog ----

def test_mailbox_applies_updates_atomically():
    mailbox = PerceptionMailbox()
    estimator = BlobCentroidEstimator(CONFIG)
    frames = [BlobFrame((pink(x, 4000),)) for x in range(0, 640, 8)]

    def producer():
        for frame in frames:
            mailbox.publish(lambda s, f=frame: estimator.update(s, f))

    threads = [threading.Thread(target=producer) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(200):
        snap = mailbox.snapshot()
        if snap.goal_found:
            # смещение всегда соответствует площади одного и того же кадра
            assert snap.goal_area == 4000
            assert (snap.goal_offset + 320) % 8 == 0
    for t in threads:
        t.join()
    assert mailbox.snapshot().goal_offset == pytest.approx(632 - 320)


def test_watchdog_reports_silent_streams():
    dog = SensorWatchdog(('blobs', 'depth'), timeout=1.0, now=0.0)
    assert dog.stale(0.5) == []
    dog.mark('blobs', 1.2)
    assert dog.stale(1.5) == ['depth']
    assert dog.report(1.5) == (['depth'], [])
    assert dog.stale(2.5) == ['blobs', 'depth']


def test_watchdog_separates_missing_from_silent_streams():
    dog = SensorWatchdog(('blobs', 'depth'), timeout=1.0, now=0.0)
    assert dog.report(0.5) == ([], [])
    dog.mark('depth', 0.8)
    assert dog.report(1.5) == (['blobs'], [])
    assert dog.report(2.0) == (['blobs'], ['depth'])
    dog.mark('blobs', 2.0)
    assert dog.report(2.5) == ([], ['depth'])
