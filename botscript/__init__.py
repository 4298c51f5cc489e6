"""Bot Script Builder - graph store and compiler behind the visual bot-script canvas."""
