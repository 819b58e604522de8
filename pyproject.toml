[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rgbdodom"
version = "0.4.0"
description = "RGB-D visual odometry with ORB-style features, RANSAC PnP, SE(3) geometry, dual-number autodiff and a landmark map"
requires-python = ">=3.10"
keywords = ["slam", "visual-odometry", "rgbd", "pnp", "automatic-differentiation", "se3"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "pyyaml",
    "imageio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
run-vo = "rgbdodom.run_vo:main"

[tool.hatch.build.targets.wheel]
packages = ["rgbdodom"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
