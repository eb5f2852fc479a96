"""Core building blocks shared by the feel and combat engines.

This package contains the engine-agnostic pieces:
- data/: enums and the numpy ring buffer used by rolling windows
- events/: the event catalog and the synchronous event bus
- exceptions.py: error taxonomy
- tuning.py: YAML-backed tuning configuration
"""
