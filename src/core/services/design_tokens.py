"""Design tokens: `theme.json` (WordPress), `tailwind.config.js` y variables CSS.

Las tres salidas se generan desde la misma entrada validada (`DesignTokenInput`)
para que el editor de bloques y Tailwind compartan paleta y tipografía.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from core.domain.models import Blueprint, as_document
from core.errors import DesignTokenError

logger = logging.getLogger(__name__)

HEX_PATTERN = r"^#[0-9A-Fa-f]{6}$"
_SHORT_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{3})$")
_LONG_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")
SHADES: tuple[int, ...] = (50, 100, 200, 300, 400, 500, 600, 700, 800, 900, 950)

DEFAULT_PRIMARY = "#0F2942"
DEFAULT_SECONDARY = "#4DA6FF"
DEFAULT_ACCENT = "#F59E0B"
DEFAULT_MUTED = "#6B7280"
DEFAULT_BORDER = "#E5E7EB"


class TokenColors(BaseModel):
    primary: str = Field(..., pattern=HEX_PATTERN)
    secondary: str = Field(..., pattern=HEX_PATTERN)
    accent: str | None = Field(default=None, pattern=HEX_PATTERN)
    background: str = Field(default="#FFFFFF", pattern=HEX_PATTERN)
    text: str = Field(default="#1F2937", pattern=HEX_PATTERN)
    muted: str | None = Field(default=None, pattern=HEX_PATTERN)
    border: str | None = Field(default=None, pattern=HEX_PATTERN)


class TokenTypography(BaseModel):
    headings: str = "Inter"
    body: str = "Inter"
    headings_weight: str = "700"
    body_weight: str = "400"


class DesignTokenInput(BaseModel):
    colors: TokenColors
    typography: TokenTypography = Field(default_factory=TokenTypography)
    border_radius: str = "0.5rem"


@dataclass(frozen=True)
class DesignTokens:
    theme_json: dict[str, Any]
    tailwind_config: str
    css_variables: str


def _coerce(tokens: DesignTokenInput | dict[str, Any]) -> DesignTokenInput:
    if isinstance(tokens, DesignTokenInput):
        return tokens
    try:
        return DesignTokenInput.model_validate(tokens)
    except ValidationError as exc:
        raise DesignTokenError(f"Invalid design token input: {exc}") from exc


def _round(value: float) -> int:
    return int(value + 0.5)


def generate_color_variants(hex_color: str) -> dict[str, str]:
    """Escala 50..950 alrededor de un color base (500 ~ base).

    Tonos < 500 mezclan con blanco; tonos > 500 escalan hacia negro.
    """

    if not isinstance(hex_color, str) or len(hex_color) != 7 or not hex_color.startswith("#"):
        raise DesignTokenError(f"Invalid hex color: {hex_color!r}")
    try:
        r, g, b = (int(hex_color[i : i + 2], 16) for i in (1, 3, 5))
    except ValueError as exc:
        raise DesignTokenError(f"Invalid hex color: {hex_color!r}") from exc

    variants: dict[str, str] = {}
    for shade in SHADES:
        factor = (shade - 500) / 500
        if factor < 0:
            mix = -factor
            rgb = (_round(c + (255 - c) * mix) for c in (r, g, b))
        else:
            keep = 1 - factor
            rgb = (_round(c * keep) for c in (r, g, b))
        variants[str(shade)] = "#" + "".join(f"{c:02x}" for c in rgb)

    variants["DEFAULT"] = hex_color
    return variants


def _font_stack(family: str) -> str:
    return f'"{family}", ui-sans-serif, system-ui, sans-serif'


def _heading(size: str, weight: str, line_height: str, *, colored: bool) -> dict[str, Any]:
    element: dict[str, Any] = {
        "typography": {
            "fontFamily": "var(--wp--preset--font-family--headings)",
            "fontSize": f"var(--wp--preset--font-size--{size})",
            "fontWeight": weight,
            "lineHeight": line_height,
        }
    }
    if colored:
        element["color"] = {"text": "var(--wp--preset--color--primary)"}
    return element


_FONT_SIZES = (
    ("xs", "0.75rem", "Extra Small"),
    ("sm", "0.875rem", "Small"),
    ("base", "1rem", "Base"),
    ("lg", "1.125rem", "Large"),
    ("xl", "1.25rem", "Extra Large"),
    ("2xl", "1.5rem", "2X Large"),
    ("3xl", "1.875rem", "3X Large"),
    ("4xl", "2.25rem", "4X Large"),
    ("5xl", "3rem", "5X Large"),
    ("6xl", "3.75rem", "6X Large"),
)


def generate_theme_json(tokens: DesignTokenInput | dict[str, Any]) -> dict[str, Any]:
    """`theme.json` v3 para un block theme."""

    data = _coerce(tokens)
    colors, typo = data.colors, data.typography
    weight = typo.headings_weight

    palette = [
        ("primary", colors.primary, "Primary"),
        ("secondary", colors.secondary, "Secondary"),
        ("accent", colors.accent or colors.secondary, "Accent"),
        ("background", colors.background, "Background"),
        ("foreground", colors.text, "Foreground"),
        ("muted", colors.muted or DEFAULT_MUTED, "Muted"),
        ("border", colors.border or DEFAULT_BORDER, "Border"),
        ("white", "#FFFFFF", "White"),
        ("black", "#000000", "Black"),
    ]

    return {
        "$schema": "https://schemas.wp.org/trunk/theme.json",
        "version": 3,
        "settings": {
            "appearanceTools": True,
            "color": {
                "custom": True,
                "customDuotone": True,
                "customGradient": True,
                "defaultDuotone": False,
                "defaultGradients": False,
                "defaultPalette": False,
                "palette": [{"slug": s, "color": c, "name": n} for s, c, n in palette],
            },
            "typography": {
                "customFontSize": True,
                "dropCap": False,
                "fluid": True,
                "fontFamilies": [
                    {"fontFamily": _font_stack(typo.headings), "name": "Headings", "slug": "headings"},
                    {"fontFamily": _font_stack(typo.body), "name": "Body", "slug": "body"},
                ],
                "fontSizes": [{"slug": s, "size": size, "name": n} for s, size, n in _FONT_SIZES],
            },
            "spacing": {
                "customSpacingSize": True,
                "spacingScale": {"steps": 10},
                "units": ["px", "em", "rem", "%", "vw", "vh"],
            },
            "layout": {"contentSize": "1200px", "wideSize": "1400px"},
            "border": {"color": True, "radius": True, "style": True, "width": True},
        },
        "styles": {
            "color": {
                "background": "var(--wp--preset--color--background)",
                "text": "var(--wp--preset--color--foreground)",
            },
            "typography": {
                "fontFamily": "var(--wp--preset--font-family--body)",
                "fontSize": "var(--wp--preset--font-size--base)",
                "lineHeight": "1.6",
            },
            "elements": {
                "h1": _heading("5xl", weight, "1.2", colored=True),
                "h2": _heading("4xl", weight, "1.25", colored=True),
                "h3": _heading("3xl", weight, "1.3", colored=True),
                "h4": _heading("2xl", "600", "1.35", colored=False),
                "h5": _heading("xl", "600", "1.4", colored=False),
                "h6": _heading("lg", "600", "1.4", colored=False),
                "link": {
                    "color": {"text": "var(--wp--preset--color--secondary)"},
                    ":hover": {"color": {"text": "var(--wp--preset--color--primary)"}},
                },
                "button": {
                    "color": {
                        "background": "var(--wp--preset--color--primary)",
                        "text": "var(--wp--preset--color--white)",
                    },
                    "typography": {"fontWeight": "600"},
                    "border": {"radius": data.border_radius},
                },
            },
        },
        "customTemplates": [],
        "templateParts": [],
    }


def _js_object(value: dict[str, str]) -> str:
    return json.dumps(value, indent=8).replace('"', "'")


def generate_tailwind_config(tokens: DesignTokenInput | dict[str, Any]) -> str:
    data = _coerce(tokens)
    colors, typo, radius = data.colors, data.typography, data.border_radius

    primary = generate_color_variants(colors.primary)
    secondary = generate_color_variants(colors.secondary)
    accent = generate_color_variants(colors.accent) if colors.accent else secondary
    muted = colors.muted or DEFAULT_MUTED

    return f"""/** @type {{import('tailwindcss').Config}} */
export default {{
  content: [
    './**/*.php',
    './src/**/*.{{js,jsx,ts,tsx}}',
    './templates/**/*.php',
    './patterns/**/*.php',
  ],
  theme: {{
    extend: {{
      colors: {{
        primary: {_js_object(primary)},
        secondary: {_js_object(secondary)},
        accent: {_js_object(accent)},
        background: '{colors.background}',
        foreground: '{colors.text}',
        muted: {{
          DEFAULT: '{muted}',
          foreground: '{muted}',
        }},
        border: '{colors.border or DEFAULT_BORDER}',
      }},
      fontFamily: {{
        headings: ['{typo.headings}', 'ui-sans-serif', 'system-ui', 'sans-serif'],
        body: ['{typo.body}', 'ui-sans-serif', 'system-ui', 'sans-serif'],
        sans: ['{typo.body}', 'ui-sans-serif', 'system-ui', 'sans-serif'],
      }},
      borderRadius: {{
        DEFAULT: '{radius}',
        lg: 'calc({radius} + 0.25rem)',
        xl: 'calc({radius} + 0.5rem)',
        '2xl': 'calc({radius} + 1rem)',
      }},
      container: {{
        center: true,
        padding: {{
          DEFAULT: '1rem',
          sm: '2rem',
          lg: '4rem',
          xl: '5rem',
        }},
        screens: {{
          sm: '640px',
          md: '768px',
          lg: '1024px',
          xl: '1200px',
          '2xl': '1400px',
        }},
      }},
    }},
  }},
  plugins: [],
}};
"""


def generate_css_variables(tokens: DesignTokenInput | dict[str, Any]) -> str:
    data = _coerce(tokens)
    colors, typo, radius = data.colors, data.typography, data.border_radius

    return f""":root {{
  /* Colors */
  --color-primary: {colors.primary};
  --color-secondary: {colors.secondary};
  --color-accent: {colors.accent or colors.secondary};
  --color-background: {colors.background};
  --color-foreground: {colors.text};
  --color-muted: {colors.muted or DEFAULT_MUTED};
  --color-border: {colors.border or DEFAULT_BORDER};

  /* Typography */
  --font-headings: '{typo.headings}', ui-sans-serif, system-ui, sans-serif;
  --font-body: '{typo.body}', ui-sans-serif, system-ui, sans-serif;
  --font-weight-headings: {typo.headings_weight};
  --font-weight-body: {typo.body_weight};

  /* Border Radius */
  --radius: {radius};
  --radius-lg: calc({radius} + 0.25rem);
  --radius-xl: calc({radius} + 0.5rem);
  --radius-2xl: calc({radius} + 1rem);
}}
"""


def normalize_hex(value: Any) -> str | None:
    """`#RRGGBB` para entradas hex (`#fff`, `1e293b`...); `None` si no lo es."""

    if not isinstance(value, str):
        return None
    text = value.strip()
    short = _SHORT_HEX_RE.match(text)
    if short:
        return "#" + "".join(ch * 2 for ch in short.group(1)).upper()
    full = _LONG_HEX_RE.match(text)
    return f"#{full.group(1)}" if full else None


def clean_brand_colors(colors: dict[str, Any] | None) -> tuple[dict[str, str], list[str]]:
    """Separa los colores utilizables de los que no son hex.

    Devuelve `(colores normalizados, avisos)`; las claves inválidas se omiten
    para que el preset o los defaults ocupen su lugar.
    """

    clean: dict[str, str] = {}
    warnings: list[str] = []
    for key, value in (colors or {}).items():
        if value in (None, ""):
            continue
        normalized = normalize_hex(value)
        if normalized is None:
            warnings.append(f"Brand color {key} {value!r} is not a hex value; using the default palette")
            continue
        clean[key] = normalized
    return clean, warnings


def blueprint_brand_colors(doc: dict[str, Any]) -> tuple[dict[str, str], list[str]]:
    """Colores del cliente (o de `brand_profile` si el cliente no trae ninguno válido)."""

    client = ((doc.get("client_profile") or {}).get("brand") or {}).get("colors")
    colors, warnings = clean_brand_colors(client)
    if not colors:
        colors, more = clean_brand_colors((doc.get("brand_profile") or {}).get("colors"))
        warnings += more
    return colors, warnings


def extract_tokens_from_blueprint(blueprint: Blueprint | dict[str, Any]) -> DesignTokenInput:
    """Tokens del blueprint; los colores del cliente tienen prioridad sobre `brand_profile`."""

    doc = as_document(blueprint)
    brand_profile = doc.get("brand_profile") or {}

    colors, warnings = blueprint_brand_colors(doc)
    for warning in warnings:
        logger.warning(warning)
    typography = brand_profile.get("typography") or {}

    return _coerce(
        {
            "colors": {
                "primary": colors.get("primary") or DEFAULT_PRIMARY,
                "secondary": colors.get("secondary") or DEFAULT_SECONDARY,
                "accent": colors.get("accent") or colors.get("secondary") or DEFAULT_ACCENT,
                "background": colors.get("background") or "#FFFFFF",
                "text": colors.get("text") or "#1F2937",
                "muted": colors.get("muted"),
                "border": colors.get("border"),
            },
            "typography": {
                "headings": typography.get("headings") or typography.get("heading_font") or "Inter",
                "body": typography.get("body") or typography.get("body_font") or "Inter",
                "headings_weight": str(typography.get("headings_weight") or "700"),
                "body_weight": str(typography.get("body_weight") or "400"),
            },
            "border_radius": brand_profile.get("border_radius") or "0.5rem",
        }
    )


def generate_all_tokens(tokens: DesignTokenInput | dict[str, Any]) -> DesignTokens:
    data = _coerce(tokens)
    return DesignTokens(
        theme_json=generate_theme_json(data),
        tailwind_config=generate_tailwind_config(data),
        css_variables=generate_css_variables(data),
    )
