from __future__ import annotations

import tinycss2
import tinycss2.color3

RGBA = tuple[float, float, float, float]


def first_color(value: str) -> RGBA | None:
    """Return the first literal colour in a declaration value.

    Keywords such as ``currentColor``, ``inherit`` and custom properties are
    not literals and yield ``None``, as do values without any colour token.
    """
    for token in tinycss2.parse_component_value_list(value, skip_comments=True):
        if token.type in ("whitespace", "comment"):
            continue
        if token.type == "function" and token.lower_name in ("var", "calc", "env"):
            return None
        color = tinycss2.color3.parse_color(token)
        if color is None or isinstance(color, str):
            continue
        return (color.red, color.green, color.blue, color.alpha)
    return None


def _channel(value: float) -> float:
    if value <= 0.03928:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def relative_luminance(color: RGBA) -> float:
    red, green, blue, _ = color
    return 0.2126 * _channel(red) + 0.7152 * _channel(green) + 0.0722 * _channel(blue)


def contrast_ratio(foreground: RGBA, background: RGBA) -> float:
    lighter, darker = sorted(
        (relative_luminance(foreground), relative_luminance(background)),
        reverse=True,
    )
    return (lighter + 0.05) / (darker + 0.05)
