"""
Configuration module.

Default parameters, YAML-backed loading with tiered precedence, and
validation of session settings.
"""
