# rgbdodom

`rgbdodom` tracks a camera through a sequence of RGB-D images (a colour
image and a depth image per frame) and writes the camera trajectory to a
text file. The building blocks are usable on their own as a library.

## Modules

- `rgbdodom.jet`: the dual number `Jet` (a scalar part `a` and an
  infinitesimal vector `v`), with arithmetic, comparisons on the scalar
  part, and `is_finite`, `is_infinite`, `is_nan`, `is_normal`.
- `rgbdodom.jetmath`: `fabs`, `log`, `exp`, `sqrt`, `cos`, `acos`, `sin`,
  `asin`, `tan`, `atan`, `sinh`, `cosh`, `tanh`, `atan2` and `pow`. Each
  takes plain numbers or jets. A domain error gives NaN or infinity and
  raises nothing.
- `rgbdodom.autodiff`: `differentiate` evaluates a function on jets. It
  returns the value and one Jacobian per parameter block. `EvaluationError`
  is raised when the function returns `None` or `False`.
  `make_perturbation` seeds a block of jets.
- `rgbdodom.se3`: `SO3` and `SE3` with `exp`/`log` maps, `inverse`,
  composition and point transforms. SE3 tangent vectors are ordered
  `(upsilon, omega)`. `SO3.quaternion` gives `(x, y, z, w)`.
- `rgbdodom.camera`: the pinhole `Camera` (`fx`, `fy`, `cx`, `cy`,
  `depth_scale`). It converts points with `world2camera`, `camera2world`,
  `camera2pixel`, `pixel2camera`, `pixel2world` and `world2pixel`.
- `rgbdodom.config`: `Config.load` reads a flat YAML mapping. A leading
  `%YAML:1.0` header line is accepted. `set_parameter_file` and `get` give
  module-level access.
- `rgbdodom.frame`, `rgbdodom.mappoint`, `rgbdodom.map`: `Frame` holds the
  images and the pose, and has `find_depth`, `cam_center` and
  `is_in_frame`. `MapPoint` is a landmark. `Map` holds key-frames and
  landmarks, each indexed by id.
- `rgbdodom.features`: `OrbExtractor` finds FAST corners on an image
  pyramid and ranks them by Harris response. It orients them by intensity
  centroid and computes 256-bit rotated binary descriptors.
  `match_descriptors` does brute-force nearest-neighbour matching in
  Hamming distance. `hamming_distance` compares two descriptors.
- `rgbdodom.g2o_types`: reprojection and 3-D error terms with their pose
  Jacobians (`EdgeProjectXYZRGBD`, `EdgeProjectXYZRGBDPoseOnly`,
  `EdgeProjectXYZ2UVPoseOnly`).
- `rgbdodom.pnp`: `solve_pnp_ransac` runs RANSAC over six-point linear
  solutions, with a fixed random seed, so results repeat.
  `optimize_pose` refines a pose by Levenberg-Marquardt on the pixel
  reprojection error.
- `rgbdodom.visual_odometry`: the `VisualOdometry` tracker and its state
  `VOState` (`INITIALIZING`, `OK`, `LOST`).
- `rgbdodom.run_vo`: the `run-vo` command. It also holds
  `read_associations` and `format_pose_line`.

## Installation

```
pip install .
```

## Running on a dataset

Write a YAML parameter file with these keys:

```yaml
dataset_dir: /path/to/rgbd_dataset
camera.fx: 517.3
camera.fy: 516.5
camera.cx: 325.1
camera.cy: 249.7
camera.depth_scale: 5000
number_of_features: 500
scale_factor: 1.2
level_pyramid: 4
match_ratio: 2.0
max_num_lost: 10
min_inliers: 10
keyframe_rotation: 0.1
keyframe_translation: 0.1
map_point_erase_ratio: 0.1
```

`dataset_dir` must contain `associate.txt`. Its whitespace-separated
records read `rgb_time rgb_file depth_time depth_file`, and the paths are
relative to `dataset_dir`. Then run:

```
run-vo parameters.yaml
```

Frames are tracked in order. For each tracked frame, the camera-to-world
pose is written to `myvo4.txt` in the current directory:

```
timestamp tx ty tz qx qy qz qw
```

Tracking stops when the tracker is lost, meaning it rejected more than
`max_num_lost` pose estimates in a row. It also stops when an image cannot
be read. Progress goes to standard output. Details are sent through the
`logging` module.

## Using the library

```python
import numpy as np
from rgbdodom.camera import Camera
from rgbdodom.se3 import SE3

camera = Camera(fx=517.3, fy=516.5, cx=325.1, cy=249.7, depth_scale=5000)
pose = SE3.identity()
pixel = camera.world2pixel(np.array([0.1, -0.2, 2.0]), pose)
point = camera.pixel2world(pixel, pose, 2.0)
```

Automatic differentiation:

```python
from rgbdodom.autodiff import differentiate
from rgbdodom import jetmath

def f(x, y):
    return [x[0] * x[0] + jetmath.sin(y[0])]

values, jacobians = differentiate(f, [[3.0], [0.0]], 1, [True, True])
# values == [9.0]; jacobians == [[[6.0]], [[1.0]]]
```

## What it does not do

- There is no viewer. The package does not display images, landmarks or
  the camera in 3-D. It only writes the trajectory file.
- The map is not saved. Landmarks and key-frames live in memory for one
  run.
- There is no loop closure and no global optimisation. Only the pose of
  each frame is refined.

## Tests

```
pip install .[test]
pytest
```