"""Certificate rendering - SVG, PDF and JPEG generation.

This module handles the visual/presentation aspects of certificates:
- SVG template rendering
- PDF conversion
- Raster (PNG/JPEG) conversion

The issuing workflow (validation, storage, email) lives in
services/certificates_service.py.
"""

import html
import io
import re
import textwrap
from datetime import datetime

from PIL import Image

CERTIFICATE_TITLE = "Certificate of Registration"
ISSUER_NAME = "Certificate Generation System"

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800

# Address block: roughly 70 characters of 16px sans-serif per line
ADDRESS_WRAP_WIDTH = 70
ADDRESS_MAX_LINES = 4

JPEG_QUALITY = 90

# Control characters XML 1.0 forbids; tab, LF and CR are allowed
_XML_ILLEGAL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_CAIRO_HINT = (
    "requires the Cairo library. "
    "On macOS: brew install cairo. "
    "On Ubuntu/Debian: apt-get install libcairo2-dev. "
    "On Alpine: apk add cairo-dev."
)


def _svg_text(value: str) -> str:
    """Escape a user-supplied value for SVG text content."""
    return html.escape(_XML_ILLEGAL_RE.sub(" ", value), quote=True)


def wrap_address(address: str) -> list[str]:
    """Split an address into display lines.

    Wraps at ADDRESS_WRAP_WIDTH and keeps at most ADDRESS_MAX_LINES lines;
    when text is cut, the last kept line ends with an ellipsis.
    """
    lines = textwrap.wrap(" ".join(address.split()), width=ADDRESS_WRAP_WIDTH)
    if len(lines) <= ADDRESS_MAX_LINES:
        return lines

    kept = lines[:ADDRESS_MAX_LINES]
    last = kept[-1]
    if len(last) > ADDRESS_WRAP_WIDTH - 1:
        last = last[: ADDRESS_WRAP_WIDTH - 1].rstrip()
    kept[-1] = f"{last}…"
    return kept


def generate_certificate_svg(
    name: str,
    email: str,
    gst_number: str,
    business_name: str,
    business_address: str,
    issued_at: datetime,
) -> str:
    """Generate an SVG certificate.

    Args:
        name: Person the certificate is issued to
        email: Contact email printed in the footer
        gst_number: GSTIN of the business
        business_name: Registered business name
        business_address: Registered business address (wrapped)
        issued_at: When the certificate was issued

    Returns:
        SVG content as a string
    """
    issued_date = issued_at.strftime("%B %d, %Y")

    safe_name = _svg_text(name)
    safe_email = _svg_text(email)
    safe_gst = _svg_text(gst_number)
    safe_business = _svg_text(business_name)

    address_lines = wrap_address(_XML_ILLEGAL_RE.sub(" ", business_address))
    address_tspans = "\n".join(
        f'    <tspan x="600" dy="{0 if i == 0 else 24}">{_svg_text(line)}</tspan>'
        for i, line in enumerate(address_lines)
    )

    # PDF base-14 fonts so viewers render without embedding
    sans_font = "Helvetica, Arial, sans-serif"
    serif_font = "Times, 'Times New Roman', Georgia, serif"
    mono_font = "Courier, 'Courier New', monospace"

    svg = f"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {CANVAS_WIDTH} {CANVAS_HEIGHT}" width="{CANVAS_WIDTH}" height="{CANVAS_HEIGHT}">
  <defs>
    <linearGradient id="frameGradient" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0" stop-color="#c9a227"/>
      <stop offset="1" stop-color="#8a6d12"/>
    </linearGradient>
    <radialGradient id="bgGradient" cx="50%" cy="45%" r="75%">
      <stop offset="0%" stop-color="#fffdf6"/>
      <stop offset="100%" stop-color="#f3ead2"/>
    </radialGradient>
  </defs>

  <rect width="{CANVAS_WIDTH}" height="{CANVAS_HEIGHT}" fill="url(#bgGradient)"/>

  <!-- Double frame -->
  <rect x="30" y="30" width="1140" height="740" fill="none" stroke="url(#frameGradient)" stroke-width="6" rx="6"/>
  <rect x="48" y="48" width="1104" height="704" fill="none" stroke="url(#frameGradient)" stroke-width="1.5" rx="4"/>

  <text x="600" y="140" font-family="{serif_font}" font-size="52" fill="#3b2f0b" text-anchor="middle" font-weight="bold" letter-spacing="2">
    {CERTIFICATE_TITLE}
  </text>

  <text x="600" y="200" font-family="{sans_font}" font-size="14" fill="#6b5a26" text-anchor="middle" letter-spacing="4">
    THIS IS TO CERTIFY THAT
  </text>

  <text x="600" y="270" font-family="{serif_font}" font-size="44" fill="#1f2937" text-anchor="middle" font-style="italic">
    {safe_name}
  </text>
  <line x1="330" y1="290" x2="870" y2="290" stroke="#c9a227" stroke-width="1"/>

  <text x="600" y="340" font-family="{sans_font}" font-size="14" fill="#6b5a26" text-anchor="middle" letter-spacing="4">
    ON BEHALF OF
  </text>

  <text x="600" y="395" font-family="{serif_font}" font-size="34" fill="#1f2937" text-anchor="middle" font-weight="bold">
    {safe_business}
  </text>

  <text x="600" y="450" font-family="{sans_font}" font-size="18" fill="#374151" text-anchor="middle">
    GSTIN: <tspan font-family="{mono_font}" font-weight="bold" fill="#111827">{safe_gst}</tspan>
  </text>

  <text x="600" y="500" font-family="{sans_font}" font-size="16" fill="#4b5563" text-anchor="middle">
{address_tspans}
  </text>

  <!-- Issue date -->
  <g transform="translate(250, 680)">
    <text x="0" y="0" font-family="{sans_font}" font-size="11" fill="#6b5a26" text-anchor="middle" letter-spacing="2">
      ISSUED
    </text>
    <text x="0" y="26" font-family="{serif_font}" font-size="18" fill="#1f2937" text-anchor="middle">
      {issued_date}
    </text>
  </g>

  <!-- Seal -->
  <g transform="translate(950, 670)">
    <circle cx="0" cy="0" r="48" fill="none" stroke="url(#frameGradient)" stroke-width="3"/>
    <circle cx="0" cy="0" r="40" fill="none" stroke="url(#frameGradient)" stroke-width="1"/>
    <path d="M-12 -2 L-4 8 L14 -12" fill="none" stroke="#8a6d12" stroke-width="4" stroke-linecap="round" stroke-linejoin="round"/>
  </g>

  <text x="600" y="735" font-family="{sans_font}" font-size="11" fill="#6b7280" text-anchor="middle">
    Issued by {ISSUER_NAME} to {safe_email}
  </text>
</svg>"""

    return svg


def _import_cairosvg(output_kind: str):
    try:
        import cairosvg
    except OSError as e:
        if "cairo" in str(e).lower():
            raise RuntimeError(f"{output_kind} generation {_CAIRO_HINT}") from e
        raise
    return cairosvg


def svg_to_pdf(svg_content: str) -> bytes:
    """Convert SVG string to PDF bytes using CairoSVG.

    Raises:
        RuntimeError: If cairo library is not installed on the system
    """
    cairosvg = _import_cairosvg("PDF")
    return cairosvg.svg2pdf(bytestring=svg_content.encode("utf-8"))


def svg_to_png(svg_content: str, *, scale: float = 1.0) -> bytes:
    """Convert SVG string to PNG bytes using CairoSVG.

    scale=1.0 yields a CANVAS_WIDTH x CANVAS_HEIGHT raster.

    Raises:
        RuntimeError: If cairo library is not installed on the system
    """
    cairosvg = _import_cairosvg("PNG")
    return cairosvg.svg2png(bytestring=svg_content.encode("utf-8"), scale=scale)


def png_to_jpeg(png_content: bytes, *, quality: int = JPEG_QUALITY) -> bytes:
    """Re-encode PNG bytes as JPEG using Pillow.

    Transparent pixels are flattened onto white since JPEG has no alpha.
    """
    with Image.open(io.BytesIO(png_content)) as image:
        if image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.getchannel("A"))
        else:
            flattened = image.convert("RGB")

    buffer = io.BytesIO()
    flattened.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def svg_to_jpeg(svg_content: str, *, quality: int = JPEG_QUALITY) -> bytes:
    """Rasterize SVG to JPEG (via PNG)."""
    return png_to_jpeg(svg_to_png(svg_content), quality=quality)
