"""Page configuration files and loaders.

Form defaults, select choices and UI labels live in JSON files next to
this module so they can be changed without touching code.
"""

from .defaults import get_calculator_config, get_config_value, get_default_form_values, load_config

__all__ = ['load_config', 'get_calculator_config', 'get_config_value', 'get_default_form_values']
