"""RGB-D visual odometry: dual-number autodiff, SE(3) geometry, camera model, features, PnP and tracking."""

__version__ = "0.4.0"

__all__ = [
    "autodiff",
    "camera",
    "config",
    "features",
    "frame",
    "g2o_types",
    "jet",
    "jetmath",
    "map",
    "mappoint",
    "pnp",
    "run_vo",
    "se3",
    "visual_odometry",
]