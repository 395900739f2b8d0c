"""Preset report themes and their application to chart configurations."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from report.models import StyleConfig

DEFAULT_THEME = "default"

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class ThemeColors:
    primary: str
    secondary: str
    background: str
    text: str
    grid: str
    accent: Tuple[str, ...]


@dataclass(frozen=True)
class ThemeFonts:
    title: str
    body: str
    title_size: int
    body_size: int
    axis_size: int


@dataclass(frozen=True)
class ThemeChart:
    border_width: int
    point_radius: int
    tension: float
    opacity: float


@dataclass(frozen=True)
class Theme:
    """A named palette, font set and chart geometry."""

    key: str
    name: str
    colors: ThemeColors
    fonts: ThemeFonts
    chart: ThemeChart

    def template_tokens(self) -> Dict[str, str]:
        """Values for the theme placeholders of the report template."""
        return {
            "THEME_NAME": self.name,
            "PRIMARY_COLOR": self.colors.primary,
            "SECONDARY_COLOR": self.colors.secondary,
            "BACKGROUND_COLOR": self.colors.background,
            "TEXT_COLOR": self.colors.text,
            "GRID_COLOR": self.colors.grid,
            "TITLE_FONT": self.fonts.title,
            "BODY_FONT": self.fonts.body,
            "TITLE_FONT_SIZE": str(self.fonts.title_size),
            "BODY_FONT_SIZE": str(self.fonts.body_size),
        }


_SEGOE = "'Segoe UI', Tahoma, Geneva, Verdana, sans-serif"

PRESET_THEMES: Dict[str, Theme] = {
    "default": Theme(
        key="default",
        name="默认主题",
        colors=ThemeColors(
            primary="#4facfe",
            secondary="#00f2fe",
            background="#ffffff",
            text="#333333",
            grid="rgba(0, 0, 0, 0.1)",
            accent=(
                "#FF6384",
                "#36A2EB",
                "#FFCE56",
                "#4BC0C0",
                "#9966FF",
                "#FF9F40",
                "#FF6384",
                "#C9CBCF",
            ),
        ),
        fonts=ThemeFonts(title=_SEGOE, body=_SEGOE, title_size=16, body_size=12, axis_size=14),
        chart=ThemeChart(border_width=2, point_radius=6, tension=0.4, opacity=0.8),
    ),
    "dark": Theme(
        key="dark",
        name="深色主题",
        colors=ThemeColors(
            primary="#667eea",
            secondary="#764ba2",
            background="#2d3748",
            text="#ffffff",
            grid="rgba(255, 255, 255, 0.1)",
            accent=(
                "#FF6B6B",
                "#4ECDC4",
                "#45B7D1",
                "#96CEB4",
                "#FFEAA7",
                "#DDA0DD",
                "#98D8C8",
                "#F7DC6F",
            ),
        ),
        fonts=ThemeFonts(title=_SEGOE, body=_SEGOE, title_size=18, body_size=12, axis_size=14),
        chart=ThemeChart(border_width=2, point_radius=6, tension=0.4, opacity=0.9),
    ),
    "business": Theme(
        key="business",
        name="商务主题",
        colors=ThemeColors(
            primary="#2c3e50",
            secondary="#34495e",
            background="#ecf0f1",
            text="#2c3e50",
            grid="rgba(44, 62, 80, 0.1)",
            accent=(
                "#3498db",
                "#e74c3c",
                "#2ecc71",
                "#f39c12",
                "#9b59b6",
                "#1abc9c",
                "#34495e",
                "#95a5a6",
            ),
        ),
        fonts=ThemeFonts(
            title="'Arial', sans-serif",
            body="'Arial', sans-serif",
            title_size=16,
            body_size=11,
            axis_size=12,
        ),
        chart=ThemeChart(border_width=1, point_radius=4, tension=0.2, opacity=0.85),
    ),
    "colorful": Theme(
        key="colorful",
        name="彩色主题",
        colors=ThemeColors(
            primary="#ff6b6b",
            secondary="#4ecdc4",
            background="#f8f9fa",
            text="#495057",
            grid="rgba(73, 80, 87, 0.1)",
            accent=(
                "#ff6b6b",
                "#4ecdc4",
                "#45b7d1",
                "#96ceb4",
                "#ffeaa7",
                "#dda0dd",
                "#98d8c8",
                "#f7dc6f",
                "#ff7675",
                "#74b9ff",
                "#a29bfe",
                "#fd79a8",
            ),
        ),
        fonts=ThemeFonts(
            title="'Comic Sans MS', cursive",
            body="'Comic Sans MS', cursive",
            title_size=18,
            body_size=13,
            axis_size=14,
        ),
        chart=ThemeChart(border_width=3, point_radius=8, tension=0.6, opacity=0.7),
    ),
}


def get_theme(name: Optional[str] = None) -> Theme:
    """Return the named preset, falling back to the default theme."""
    return PRESET_THEMES.get((name or DEFAULT_THEME).strip().lower(), PRESET_THEMES[DEFAULT_THEME])


def with_alpha(color: str, alpha: float) -> str:
    """Return ``color`` with the given opacity (``#rrggbb`` and ``rgb(...)`` inputs)."""
    match = _HEX_RE.match(color)
    if match:
        value = match.group(1)
        r, g, b = (int(value[i : i + 2], 16) for i in (0, 2, 4))
        return f"rgba({r}, {g}, {b}, {alpha})"
    if color.startswith("rgb("):
        return "rgba(" + color[4:].replace(")", f", {alpha})")
    return color


def apply_theme_to_chart(config: Dict[str, Any], theme: Theme) -> Dict[str, Any]:
    """Recolor datasets and restyle fonts, legend and axes in place."""
    colors = theme.colors
    chart_type = config.get("type")
    for index, dataset in enumerate(config.get("data", {}).get("datasets", [])):
        accent = colors.accent[index % len(colors.accent)]
        if chart_type == "pie":
            dataset["backgroundColor"] = list(colors.accent[: len(dataset.get("data", []))])
            dataset["borderColor"] = colors.background
        elif chart_type == "line":
            dataset["borderColor"] = accent
            dataset["backgroundColor"] = with_alpha(accent, 0.3)
            dataset["pointBackgroundColor"] = accent
            dataset["pointBorderColor"] = colors.background
            dataset["pointBorderWidth"] = theme.chart.border_width
            dataset["pointRadius"] = theme.chart.point_radius
            dataset["tension"] = theme.chart.tension
        else:
            dataset["backgroundColor"] = with_alpha(accent, theme.chart.opacity)
            dataset["borderColor"] = accent
            dataset["borderWidth"] = theme.chart.border_width

    options = config.setdefault("options", {})
    plugins = options.setdefault("plugins", {})
    if "title" in plugins:
        plugins["title"]["font"] = {
            "family": theme.fonts.title,
            "size": theme.fonts.title_size,
            "weight": "bold",
        }
        plugins["title"]["color"] = colors.text
    if "legend" in plugins:
        plugins["legend"]["labels"] = {
            "font": {"family": theme.fonts.body, "size": theme.fonts.body_size},
            "color": colors.text,
        }
    for scale in options.get("scales", {}).values():
        scale["ticks"] = {
            **scale.get("ticks", {}),
            "font": {"family": theme.fonts.body, "size": theme.fonts.axis_size},
            "color": colors.text,
        }
        scale["grid"] = {**scale.get("grid", {}), "color": colors.grid}
        if "title" in scale:
            scale["title"]["font"] = {"family": theme.fonts.body, "size": theme.fonts.axis_size}
            scale["title"]["color"] = colors.text
    return config


def apply_style_options(config: Dict[str, Any], style: StyleConfig) -> Dict[str, Any]:
    """Apply custom colors and the animation/legend/tooltip/grid switches in place."""
    datasets = config.get("data", {}).get("datasets", [])
    if style.custom_colors:
        for index, dataset in enumerate(datasets):
            if index >= len(style.custom_colors):
                break
            color = style.custom_colors[index]
            if config.get("type") == "pie":
                dataset["backgroundColor"] = list(style.custom_colors)
                break
            dataset["borderColor"] = color
            alpha = 0.3 if config.get("type") == "line" else 0.8
            dataset["backgroundColor"] = with_alpha(color, alpha)

    options = config.setdefault("options", {})
    plugins = options.setdefault("plugins", {})
    if style.animation is not None:
        options["animation"] = style.animation
    if style.responsive is not None:
        options["responsive"] = style.responsive
    if style.show_legend is not None:
        plugins.setdefault("legend", {})["display"] = style.show_legend
    if style.show_tooltips is not None:
        plugins.setdefault("tooltip", {})["enabled"] = style.show_tooltips
    if style.show_grid is False:
        for scale in options.get("scales", {}).values():
            scale.setdefault("grid", {})["display"] = False
    return config
