[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtpcodecs"
version = "0.1.0"
description = "RTP payloaders and depacketizers for G.711, G.722, Opus, H.264, H.265, VP8 and VP9"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtp", "h264", "h265", "hevc", "vp8", "vp9", "opus", "g711", "g722", "payloader", "depacketizer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtpcodecs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
