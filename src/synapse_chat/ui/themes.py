"""Theme definitions for the TUI.

Both themes derive from the Catppuccin palettes: Mocha for the dark
preference and Latte for the light one. The persisted theme preference
("dark" or "light") maps onto these names in ``THEME_BY_PREFERENCE``.
"""

from textual.theme import Theme

from .config import DARK_THEME, LIGHT_THEME

# Catppuccin flavour palettes (only the colours the themes use)
MOCHA = {
    "crust": "#11111b",
    "mantle": "#181825",
    "base": "#1e1e2e",
    "surface0": "#313244",
    "surface1": "#45475a",
    "overlay0": "#6c7086",
    "subtext0": "#a6adc8",
    "subtext1": "#bac2de",
    "text": "#cdd6f4",
    "rosewater": "#f5e0dc",
    "lavender": "#b4befe",
    "blue": "#89b4fa",
    "mauve": "#cba6f7",
    "yellow": "#f9e2af",
    "green": "#a6e3a1",
    "peach": "#fab387",
    "red": "#f38ba8",
}

LATTE = {
    "crust": "#dce0e8",
    "mantle": "#e6e9ef",
    "base": "#eff1f5",
    "surface0": "#ccd0da",
    "surface1": "#bcc0cc",
    "overlay0": "#9ca0b0",
    "subtext0": "#6c6f85",
    "subtext1": "#5c5f77",
    "text": "#4c4f69",
    "rosewater": "#dc8a78",
    "lavender": "#7287fd",
    "blue": "#1e66f5",
    "mauve": "#8839ef",
    "yellow": "#df8e1d",
    "green": "#40a02b",
    "peach": "#fe640b",
    "red": "#d20f39",
}


def _catppuccin_theme(name: str, palette: dict[str, str], dark: bool) -> Theme:
    """Build a Textual theme from a Catppuccin flavour palette."""
    p = palette
    return Theme(
        name=name,
        primary=p["blue"],
        secondary=p["mauve"],
        accent=p["yellow"],
        foreground=p["text"],
        background=p["crust"] if dark else p["base"],
        success=p["green"],
        warning=p["peach"],
        error=p["red"],
        surface=p["base"] if dark else p["mantle"],
        panel=p["mantle"] if dark else p["crust"],
        dark=dark,
        variables={
            "block-cursor-foreground": p["crust"],
            "block-cursor-background": p["rosewater"],
            "block-cursor-text-style": "bold",
            "block-hover-background": f"{p['surface0']} 20%",
            "input-cursor-background": p["text"],
            "input-cursor-foreground": p["crust"],
            "input-selection-background": f"{p['blue']} 30%",
            "border": p["surface1"],
            "border-blurred": p["surface0"],
            "scrollbar": p["surface0"],
            "scrollbar-hover": p["surface1"],
            "scrollbar-active": p["blue"],
            "scrollbar-background": p["mantle"],
            "scrollbar-corner-color": p["mantle"],
            "footer-foreground": p["subtext1"],
            "footer-background": p["crust"],
            "footer-key-foreground": p["yellow"],
            "footer-key-background": p["surface0"],
            "footer-description-foreground": p["subtext0"],
            "text-muted": p["overlay0"],
            "text-disabled": p["surface1"],
            "link-color": p["blue"],
            "link-color-hover": p["lavender"],
            "button-foreground": p["text"],
            "button-color-foreground": p["crust"],
            "button-focus-text-style": "bold reverse",
        },
    )


CATPPUCCIN_MOCHA = _catppuccin_theme(DARK_THEME, MOCHA, dark=True)
CATPPUCCIN_LATTE = _catppuccin_theme(LIGHT_THEME, LATTE, dark=False)

THEMES = (CATPPUCCIN_MOCHA, CATPPUCCIN_LATTE)

THEME_BY_PREFERENCE = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}
