"""Jinja2 template engine for outgoing email bodies.

Provides a module-level ``templates`` instance so services can import it
directly. Autoescaping is on, so recipient-supplied values are safe to
interpolate into HTML templates.
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

_templates_dir = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(_templates_dir))
