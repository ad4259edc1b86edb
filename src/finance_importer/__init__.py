"""Personal finance import core: SMS, CSV and broker statement parsing."""

__version__ = "0.1.0"
