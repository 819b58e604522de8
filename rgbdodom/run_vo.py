"""Run the visual odometry over an RGB-D dataset and write the trajectory.

The dataset directory holds ``associate.txt``, whose lines read
``rgb_time rgb_file depth_time depth_file``. Camera poses are written to
``myvo4.txt`` as ``time tx ty tz qx qy qz qw``.
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import Path

import imageio.v3 as iio

from .camera import Camera
from .config import set_parameter_file
from .frame import Frame
from .se3 import SE3
from .visual_odometry import VisualOdometry, VOState

__all__ = ["Association", "read_associations", "format_pose_line", "main"]

OUTPUT_FILE = "myvo4.txt"


@dataclass(frozen=True)
class Association:
    """A colour image and a depth image recorded together."""

    rgb_time: str
    rgb_file: str
    depth_time: str
    depth_file: str


def read_associations(path) -> list[Association]:
    """Read an association file; an incomplete trailing record is ignored."""
    tokens = Path(path).read_text(encoding="utf-8").split()
    return [Association(*record) for record in zip(*[iter(tokens)] * 4)]


def format_pose_line(timestamp, t_w_c: SE3) -> str:
    """One trajectory line: ``time tx ty tz qx qy qz qw``."""
    values = [*t_w_c.translation.tolist(), *t_w_c.rotation.quaternion.tolist()]
    return " ".join([str(timestamp), *(f"{v:g}" for v in values)])


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def main(argv=None) -> int:
    """Command entry point: ``run_vo parameter_file``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("usage: run_vo parameter_file")
        return 1

    try:
        config = set_parameter_file(args[0])
    except (FileNotFoundError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1

    vo = VisualOdometry.from_config(config)
    dataset_dir = Path(config.get("dataset_dir", str))
    print(f"dataset: {dataset_dir}")
    associate = dataset_dir / "associate.txt"
    if not associate.is_file():
        print("please generate the associate file called associate.txt!")
        return 1

    entries = read_associations(associate)
    camera = Camera.from_config(config)
    print(f"read total {len(entries)} entries")

    with open(OUTPUT_FILE, "w", encoding="utf-8") as out:
        for loop, entry in enumerate(entries):
            print(f"****** loop {loop} ******")
            try:
                color = iio.imread(dataset_dir / entry.rgb_file)
                depth = iio.imread(dataset_dir / entry.depth_file)
            except (OSError, ValueError):
                break
            frame = Frame.create()
            frame.camera = camera
            frame.color = color
            frame.depth = depth
            frame.time_stamp = _to_float(entry.rgb_time)

            start = time.perf_counter()
            vo.add_frame(frame)
            print(f"VO costs time: {time.perf_counter() - start}")

            if vo.state is VOState.LOST:
                break
            out.write(format_pose_line(entry.rgb_time, frame.t_c_w.inverse()) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())