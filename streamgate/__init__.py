"""StreamGate: HLS playlist rewriting and segment delivery gateway."""

__version__ = "1.0.0"
