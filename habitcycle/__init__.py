"""habitcycle: cycle prediction and plugin-data core for habit tracker plugins.

Subpackages:
    engine/  - Prediction engine, calendar overlay projector, YAML config
    plugins/ - Namespaced plugin-data merge, plugin registry, cycle and notes plugins
    models/  - Pydantic schemas for the host habit entity and plugin namespaces
"""

__version__ = "0.1.0"
