"""Building blocks for relaying KNX group telegrams to and from an MQTT broker."""

__version__ = "0.1.0"