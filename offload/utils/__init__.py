from .colors import DEFAULT_COLOR, hex_to_rgb, rgb_to_hex

__all__ = ["DEFAULT_COLOR", "hex_to_rgb", "rgb_to_hex"]
