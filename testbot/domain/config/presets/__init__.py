"""Built-in phase command presets, loaded via importlib.resources."""
