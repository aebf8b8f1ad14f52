"""
Server Configuration Manager

Live, hot-reloadable configuration for a network server: defaults, a JSON
file overlay, and file-change-triggered reloads that never corrupt the
running configuration.
"""

__version__ = "1.0.0"
