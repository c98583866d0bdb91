#!/usr/bin/env python3
"""Capture and recognise gestures from a synthetic arm-joint stream.

Records "swipe_right" and "raise" templates from generated joint paths,
then plays a slower swipe and prints what the engine recognises.

Usage:
    python examples/demo_synthetic.py --stride 1 --save templates.json
"""

import argparse
import sys

import numpy as np

sys.path.insert(0, "src")
from gesture_dtw import EngineConfig, GestureRecognitionEngine


REST = np.array([
    [0.30, 0.60],  # elbow_left
    [0.35, 0.70],  # wrist_left
    [0.36, 0.74],  # hand_left
    [0.64, 0.74],  # hand_right
    [0.65, 0.70],  # wrist_right
    [0.70, 0.60],  # elbow_right
])


def swipe_right(frames):
    """Right arm sweeps horizontally outwards."""
    for t in np.linspace(0.0, 1.0, frames):
        pts = REST.copy()
        pts[3:5, 0] += 0.3 * t
        pts[3, 1] -= 0.2
        yield pts


def raise_arms(frames):
    """Both hands lift together."""
    for t in np.linspace(0.0, 1.0, frames):
        pts = REST.copy()
        pts[1:5, 1] -= 0.4 * t
        yield pts


def main():
    parser = argparse.ArgumentParser(description="Synthetic DTW gesture demo")
    parser.add_argument("--stride", type=int, default=1, help="Keep 1 of every N frames")
    parser.add_argument("--threshold", type=float, default=0.05, help="Match threshold")
    parser.add_argument("--save", default=None, help="Save captured templates to this file")
    args = parser.parse_args()

    engine = GestureRecognitionEngine(EngineConfig(
        dimensionality=12,
        match_threshold=args.threshold,
        downsample_stride=args.stride,
        min_frames_before_match=6,
    ))

    for name, gen in [("swipe_right", swipe_right), ("raise", raise_arms)]:
        engine.start_capture(name)
        for pts in gen(20):
            engine.push_points(pts)
        template = engine.stop_capture()
        print(f"Captured '{template.name}' ({template.length} frames)")

    if args.save:
        engine.store.save(args.save)
        print(f"Saved templates to {args.save}")

    print("\nPlaying a slow swipe with a dropped joint...")
    for i, pts in enumerate(swipe_right(30)):
        if i == 10:
            pts = pts.copy()
            pts[0] = np.nan
        result = engine.push_points(pts)
        if result is not None and result.matched:
            print(f"  frame {i:2d}: {result.name} (distance={result.distance:.4f})")

    stats = engine.stats
    print(f"\n{stats.frames_pushed} frames, {stats.frames_dropped} dropped, "
          f"{stats.matching_passes} passes, {stats.matches} matches")


if __name__ == "__main__":
    main()
