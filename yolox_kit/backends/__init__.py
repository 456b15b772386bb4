"""
Optional inference backends for yolox_kit.

Backends are kept in a separate module so core functionality (decode/NMS/remap)
stays lightweight and can be used without installing inference runtimes.

A backend is any callable taking the NHWC input tensor and returning the flat
output buffer, or None while the model is not ready.
"""

from __future__ import annotations

__all__ = []
