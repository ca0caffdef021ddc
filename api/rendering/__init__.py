"""Rendering module for presentation concerns.

This module handles all presentation/rendering logic:
- Certificate SVG generation
- PDF conversion
- JPEG conversion

This separates presentation concerns from the issuing workflow in services.
"""

from rendering.certificates import (
    generate_certificate_svg,
    png_to_jpeg,
    svg_to_jpeg,
    svg_to_pdf,
    svg_to_png,
)

__all__ = [
    "generate_certificate_svg",
    "png_to_jpeg",
    "svg_to_jpeg",
    "svg_to_pdf",
    "svg_to_png",
]
