[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dofun"
version = "0.1.0"
description = "Image and video frame processing: cartoon and blur effects, smoothing filters, and YOLACT instance-segmentation post-processing"
requires-python = ">=3.10"
keywords = ["image processing", "video", "cartoon", "yolact", "segmentation", "filters"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Multimedia :: Graphics",
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "numpy",
    "scipy",
    "pillow",
    "imageio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dofun = "dofun.player:main"

[tool.hatch.build.targets.wheel]
packages = ["dofun"]

[tool.pytest.ini_options]
addopts = "-ra"
