"""fwbuild: build orchestration for firmware projects."""

__version__ = "0.1.0"
